"""Typed decoders for raw storage values.

One explicit function per field shape, so callers never probe a raw value
for ``.toNumber``-style accessors at runtime. Every decoder raises
``DecodeError`` on malformed input.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable

from ledgerfuzz.core.errors import DecodeError
from ledgerfuzz.core.fixed_point import U64F64, FixedPointValue, parse_bits, to_value

U16_MAX = (1 << 16) - 1
U64_MAX = (1 << 64) - 1


def integer(raw: Any, bits: int = 64) -> int:
    """Unsigned integer of at most ``bits`` bits (int, hex or decimal text)."""
    if isinstance(raw, dict) and "bits" in raw:
        raise DecodeError("Fixed-point struct where a plain integer was expected", raw)
    value = parse_bits(raw)
    if value.bit_length() > bits:
        raise DecodeError(f"{value} does not fit u{bits}", raw)
    return value


def u16(raw: Any) -> int:
    return integer(raw, 16)


def u64(raw: Any) -> int:
    return integer(raw, 64)


def u128(raw: Any) -> int:
    return integer(raw, 128)


def i32(raw: Any) -> int:
    if isinstance(raw, bool):
        raise DecodeError("Boolean where an i32 was expected", raw)
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"Not an integer: {raw!r}", raw) from exc
    if not -(1 << 31) <= value < (1 << 31):
        raise DecodeError(f"{value} does not fit i32", raw)
    return value


def boolean(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str) and raw.lower() in ("true", "false"):
        return raw.lower() == "true"
    raise DecodeError(f"Not a boolean: {raw!r}", raw)


def account(raw: Any) -> str:
    if not isinstance(raw, str) or not raw:
        raise DecodeError(f"Not an account id: {raw!r}", raw)
    return raw


def u64f64(raw: Any) -> FixedPointValue:
    return to_value(raw, U64F64)


def u64f64_exact(raw: Any) -> Decimal:
    return u64f64(raw).to_decimal()


def opaque(raw: Any) -> Any:
    return raw


def option(item: Callable[[Any], Any]) -> Callable[[Any], Any]:
    """Decoder for an optional value: an explicit null stays ``None``."""

    def _decode(raw: Any) -> Any:
        return None if raw is None else item(raw)

    return _decode


def vec(item: Callable[[Any], Any]) -> Callable[[Any], tuple[Any, ...]]:
    """Decoder for a vector whose items are decoded by ``item``."""

    def _decode(raw: Any) -> tuple[Any, ...]:
        if not isinstance(raw, (list, tuple)):
            raise DecodeError(f"Not a vector: {raw!r}", raw)
        return tuple(item(x) for x in raw)

    return _decode


# ── Composite shapes ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class WeightedEdge:
    """One (proportion, account) pair from a parent/child list."""
    proportion: int
    account: str


def weighted_edge(raw: Any) -> WeightedEdge:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise DecodeError(f"Not a (proportion, account) pair: {raw!r}", raw)
    return WeightedEdge(proportion=u64(raw[0]), account=account(raw[1]))


weighted_edges = vec(weighted_edge)


@dataclass(frozen=True)
class PendingChildren:
    """Child list scheduled to replace the current one after a cooldown."""
    children: tuple[WeightedEdge, ...]
    cooldown_block: int


def pending_children(raw: Any) -> PendingChildren:
    if isinstance(raw, dict):
        children, cooldown = raw.get("children", ()), raw.get("cooldown", 0)
    elif isinstance(raw, (list, tuple)) and len(raw) == 2:
        children, cooldown = raw
    else:
        raise DecodeError(f"Not a pending child-key entry: {raw!r}", raw)
    return PendingChildren(children=weighted_edges(children), cooldown_block=u64(cooldown))


def uid_weight(raw: Any) -> tuple[int, int]:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise DecodeError(f"Not a (uid, value) pair: {raw!r}", raw)
    return u16(raw[0]), u16(raw[1])


uid_weights = vec(uid_weight)


@dataclass(frozen=True)
class Position:
    """A range-bound liquidity position of the subnet swap."""
    tick_low: int
    tick_high: int
    liquidity: int


def position(raw: Any) -> Position:
    if not isinstance(raw, dict):
        raise DecodeError(f"Not a position struct: {raw!r}", raw)
    try:
        pos = Position(
            tick_low=i32(raw["tick_low"]),
            tick_high=i32(raw["tick_high"]),
            liquidity=u64(raw["liquidity"]),
        )
    except KeyError as exc:
        raise DecodeError(f"Position is missing field {exc}", raw) from exc
    if pos.tick_low >= pos.tick_high:
        raise DecodeError(f"Position tick range [{pos.tick_low}, {pos.tick_high}] is empty", raw)
    return pos


@dataclass(frozen=True)
class AccountInfo:
    free: int
    reserved: int = 0
    nonce: int = 0


def account_info(raw: Any) -> AccountInfo:
    if not isinstance(raw, dict):
        raise DecodeError(f"Not an account info struct: {raw!r}", raw)
    data = raw.get("data", raw)
    try:
        return AccountInfo(
            free=u64(data["free"]),
            reserved=u64(data.get("reserved", 0)),
            nonce=int(raw.get("nonce", 0)),
        )
    except KeyError as exc:
        raise DecodeError(f"Account info is missing field {exc}", raw) from exc
