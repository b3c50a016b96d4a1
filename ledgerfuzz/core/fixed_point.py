"""Binary fixed-point decoding (Qm.n wire formats).

Storage fields such as stake shares and swap sqrt prices are stored as raw
integers whose low ``frac_bits`` bits are the fractional part. Two decoders
are provided:

  - ``decode_approx``: float64, for comparison-grade reads
  - ``decode_exact``: Decimal, for sums and ratios that must not pick up
    floating error across many additions

Both accept the raw value as an ``int``, hex text (``"0x..."``), decimal
text, or the wire struct form ``{"bits": ...}``.
"""

from __future__ import annotations

import decimal
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from ledgerfuzz.core.errors import DecodeError

# Enough digits for an exact 128-bit integer part plus a 64-bit fraction.
EXACT_PRECISION = 96


@dataclass(frozen=True)
class FixedPointFormat:
    """Bit layout of an unsigned binary fixed-point number."""
    int_bits: int
    frac_bits: int

    def __post_init__(self) -> None:
        if self.int_bits < 0 or self.frac_bits < 0:
            raise ValueError(f"Invalid fixed-point format Q{self.int_bits}.{self.frac_bits}")

    @property
    def width(self) -> int:
        return self.int_bits + self.frac_bits

    @property
    def unit(self) -> int:
        """Raw bit pattern that decodes to exactly 1."""
        return 1 << self.frac_bits

    def __str__(self) -> str:
        return f"Q{self.int_bits}.{self.frac_bits}"


U64F64 = FixedPointFormat(64, 64)
I96F32 = FixedPointFormat(96, 32)
U96F32 = FixedPointFormat(96, 32)
Q128 = FixedPointFormat(128, 0)


@dataclass(frozen=True)
class FixedPointValue:
    """A raw bit pattern tagged with its format."""
    bits: int
    fmt: FixedPointFormat

    @property
    def integer_part(self) -> int:
        return self.bits >> self.fmt.frac_bits

    @property
    def fractional_part(self) -> int:
        return self.bits & (self.fmt.unit - 1)

    def to_float(self) -> float:
        return self.integer_part + self.fractional_part / float(self.fmt.unit)

    def to_decimal(self) -> Decimal:
        with decimal.localcontext() as ctx:
            ctx.prec = EXACT_PRECISION
            return Decimal(self.integer_part) + Decimal(self.fractional_part) / Decimal(self.fmt.unit)

    def is_zero(self) -> bool:
        return self.bits == 0


def parse_bits(raw: Any) -> int:
    """Turn a raw wire value into a non-negative integer bit pattern."""
    if isinstance(raw, dict):
        if "bits" not in raw:
            raise DecodeError("Fixed-point struct has no 'bits' field", raw)
        raw = raw["bits"]

    if isinstance(raw, bool):
        raise DecodeError("Boolean is not a fixed-point bit pattern", raw)

    if isinstance(raw, int):
        bits = raw
    elif isinstance(raw, (str, bytes)):
        text = raw.decode() if isinstance(raw, bytes) else raw
        text = text.strip().replace("_", "")
        try:
            if text.lower().startswith("0x"):
                bits = int(text[2:], 16)
            else:
                bits = int(text, 10)
        except ValueError as exc:
            raise DecodeError(f"Not a hex or integer bit pattern: {raw!r}", raw) from exc
    else:
        raise DecodeError(f"Unsupported bit pattern type {type(raw).__name__}", raw)

    if bits < 0:
        raise DecodeError(f"Negative bit pattern {bits} for an unsigned format", raw)
    return bits


def to_value(raw: Any, fmt: FixedPointFormat) -> FixedPointValue:
    bits = parse_bits(raw)
    if fmt.width and bits.bit_length() > fmt.width:
        raise DecodeError(
            f"Bit pattern of {bits.bit_length()} bits does not fit {fmt}", raw,
        )
    return FixedPointValue(bits=bits, fmt=fmt)


def decode_approx(raw: Any, int_bits: int, frac_bits: int) -> float:
    """Lossy float decode of a Q``int_bits``.``frac_bits`` value."""
    return to_value(raw, FixedPointFormat(int_bits, frac_bits)).to_float()


def decode_exact(raw: Any, int_bits: int, frac_bits: int) -> Decimal:
    """Exact Decimal decode of a Q``int_bits``.``frac_bits`` value."""
    return to_value(raw, FixedPointFormat(int_bits, frac_bits)).to_decimal()


def encode(value: Decimal | float | int, fmt: FixedPointFormat) -> int:
    """Encode a non-negative number into the raw bit pattern (truncating)."""
    if value < 0:
        raise DecodeError(f"Cannot encode negative value {value} into {fmt}", value)
    with decimal.localcontext() as ctx:
        ctx.prec = EXACT_PRECISION
        scaled = Decimal(value) * Decimal(fmt.unit)
        return int(scaled.to_integral_value(rounding=decimal.ROUND_FLOOR))
