"""Random sampling for contract parameters and contract selection."""

from __future__ import annotations

import random
from typing import Any, Sequence, TypeVar

from ledgerfuzz.core.errors import InvalidRangeError

T = TypeVar("T")

# Largest integer a double represents exactly (2**53 - 1).
MAX_SAFE_INTEGER = 9_007_199_254_740_991
CHUNK_BITS = 53


class RandomSampler:
    """Uniform and weighted draws over arbitrary-width integer ranges.

    All randomness flows from one ``random.Random`` so a campaign is
    reproducible from its seed.
    """

    def __init__(self, seed: int | None = None, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random(seed)

    @property
    def rng(self) -> random.Random:
        return self._rng

    def random(self) -> float:
        return self._rng.random()

    def uniform_inclusive(self, lo: int, hi: int) -> int:
        """Uniform integer in ``[lo, hi]``; ranges may exceed 64 bits."""
        lo, hi = int(lo), int(hi)
        if hi < lo:
            raise InvalidRangeError(f"max < min ({hi} < {lo})")
        span = hi - lo + 1

        if span <= MAX_SAFE_INTEGER:
            return lo + int(self._rng.random() * span)

        # Rejection sampling: draw 53-bit chunks until the masked value
        # falls strictly below the span.
        bits = span.bit_length()
        mask = (1 << bits) - 1
        while True:
            candidate = 0
            produced = 0
            while produced < bits:
                candidate = (candidate << CHUNK_BITS) | self._rng.getrandbits(CHUNK_BITS)
                produced += CHUNK_BITS
            candidate &= mask
            if candidate < span:
                return lo + candidate

    def choice(self, values: Sequence[T]) -> T:
        if not values:
            raise InvalidRangeError("Cannot choose from an empty list")
        return values[int(self._rng.random() * len(values))]

    def weighted_select(self, alternatives: Sequence[tuple[float, T]]) -> T:
        """Pick one item from ``(weight, item)`` pairs.

        Weights are integrated into a cumulative partition; the final
        cumulative value is the effective total, so weights need not sum to 1.
        """
        if not alternatives:
            raise InvalidRangeError("Cannot select from an empty list of alternatives")

        bounds: list[tuple[float, Any]] = []
        acc = 0.0
        for weight, item in alternatives:
            if weight < 0:
                raise InvalidRangeError(f"Negative weight {weight} for {item!r}")
            acc += weight
            bounds.append((acc, item))
        if acc <= 0:
            raise InvalidRangeError("Weights sum to zero")

        r = self._rng.random() * acc
        for bound, item in bounds:
            if r <= bound:
                return item
        return bounds[-1][1]
