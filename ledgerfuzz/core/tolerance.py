"""Approximate equality for ints, floats and Decimals.

Operands must be of the same numeric kind; mixing them is almost always a
decoding bug upstream (an exact Decimal compared against a lossy float), so
it raises ``TypeMismatchError`` instead of being coerced.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Union

from ledgerfuzz.core.errors import TypeMismatchError

Number = Union[int, float, Decimal]

# Integer relative tolerances are numerators over this denominator
# (rel=1_000_000 means 1e-6).
DEFAULT_REL_DENOMINATOR = 10**12


def _kind(value: object) -> type:
    # bool is an int subclass but never a meaningful operand here
    if isinstance(value, bool):
        raise TypeMismatchError(f"Boolean operand {value!r} is not numeric")
    for kind in (int, float, Decimal):
        if isinstance(value, kind):
            return kind
    raise TypeMismatchError(f"Unsupported operand type {type(value).__name__}")


def _same_kind(*values: object) -> type:
    kinds = {_kind(v) for v in values}
    if len(kinds) != 1:
        names = ", ".join(sorted(k.__name__ for k in kinds))
        raise TypeMismatchError(f"Operands must share one numeric type, got {names}")
    return kinds.pop()


def approx_equal_abs(a: Number, b: Number, epsilon: Number) -> bool:
    """Return ``|a - b| <= epsilon``.

    ``a`` and ``b`` must be the same type. ``epsilon`` may be that type or a
    plain int (ints combine exactly with floats and Decimals).
    """
    kind = _same_kind(a, b)
    eps_kind = _kind(epsilon)
    if eps_kind is not kind and eps_kind is not int:
        raise TypeMismatchError(
            f"Tolerance of type {eps_kind.__name__} cannot be used with {kind.__name__} operands"
        )
    diff = a - b if a >= b else b - a
    return diff <= epsilon


def approx_equal_rel(
    a: Number,
    b: Number,
    rel: Number,
    denominator: int = DEFAULT_REL_DENOMINATOR,
) -> bool:
    """Relative-tolerance equality.

    float / Decimal:  ``|a-b| / max(|a|, |b|, 1) <= rel``
    int:              ``|a-b| * denominator <= max(|a|, |b|, 1) * rel``
                      (``rel`` is a numerator over ``denominator``)
    """
    kind = _same_kind(a, b, rel)
    diff = abs(a - b)
    if kind is int:
        scale = max(abs(a), abs(b), 1)
        return diff * denominator <= scale * rel

    one = Decimal(1) if kind is Decimal else 1.0
    scale = max(abs(a), abs(b), one)
    return diff <= scale * rel
