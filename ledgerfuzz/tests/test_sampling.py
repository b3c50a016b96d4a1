"""Tests for ledgerfuzz.core.sampling: uniform and weighted draws."""

from __future__ import annotations

import random
from collections import Counter

import pytest
from hypothesis import given
from hypothesis import strategies as st

from ledgerfuzz.core.errors import InvalidRangeError
from ledgerfuzz.core.sampling import MAX_SAFE_INTEGER, RandomSampler


class FixedRandom(random.Random):
    """``random()`` always returns ``value``."""

    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


class TestUniformInclusive:
    def test_single_value_range(self):
        assert RandomSampler(1).uniform_inclusive(5, 5) == 5

    def test_inverted_range(self):
        with pytest.raises(InvalidRangeError):
            RandomSampler(1).uniform_inclusive(10, 9)

    def test_covers_both_ends(self):
        sampler = RandomSampler(3)
        seen = {sampler.uniform_inclusive(0, 3) for _ in range(400)}
        assert seen == {0, 1, 2, 3}

    def test_upper_end_reachable_with_max_draw(self):
        sampler = RandomSampler(rng=FixedRandom(0.999999999))
        assert sampler.uniform_inclusive(0, 9) == 9

    def test_beyond_53_bits(self):
        sampler = RandomSampler(11)
        lo, hi = 2**100, 2**100 + 2**80
        for _ in range(50):
            assert lo <= sampler.uniform_inclusive(lo, hi) <= hi

    def test_wide_range_reaches_high_bits(self):
        sampler = RandomSampler(5)
        draws = [sampler.uniform_inclusive(0, 2**128 - 1) for _ in range(20)]
        assert any(d > MAX_SAFE_INTEGER for d in draws)

    def test_seed_reproducible(self):
        a = [RandomSampler(42).uniform_inclusive(0, 10**30) for _ in range(3)]
        b = [RandomSampler(42).uniform_inclusive(0, 10**30) for _ in range(3)]
        assert a == b

    @given(st.integers(min_value=-(2**70), max_value=2**70), st.integers(min_value=0, max_value=2**70))
    def test_always_in_range(self, lo, width):
        value = RandomSampler(0).uniform_inclusive(lo, lo + width)
        assert lo <= value <= lo + width


class TestChoice:
    def test_empty(self):
        with pytest.raises(InvalidRangeError):
            RandomSampler(1).choice([])

    def test_member(self):
        assert RandomSampler(1).choice(["a", "b"]) in {"a", "b"}


class TestWeightedSelect:
    def test_cumulative_partition(self):
        alternatives = [(0.2, "transfer"), (0.4, "stake"), (0.4, "unstake")]
        assert RandomSampler(rng=FixedRandom(0.1)).weighted_select(alternatives) == "transfer"
        assert RandomSampler(rng=FixedRandom(0.5)).weighted_select(alternatives) == "stake"
        assert RandomSampler(rng=FixedRandom(0.9)).weighted_select(alternatives) == "unstake"

    def test_weights_need_not_sum_to_one(self):
        alternatives = [(1, "a"), (3, "b")]
        assert RandomSampler(rng=FixedRandom(0.3)).weighted_select(alternatives) == "b"

    def test_distribution(self):
        sampler = RandomSampler(9)
        counts = Counter(sampler.weighted_select([(1, "rare"), (9, "common")]) for _ in range(2000))
        assert counts["common"] > counts["rare"] * 4

    def test_zero_weight_never_chosen(self):
        sampler = RandomSampler(2)
        picks = {sampler.weighted_select([(1, "a"), (0, "never")]) for _ in range(200)}
        assert picks == {"a"}

    def test_empty(self):
        with pytest.raises(InvalidRangeError):
            RandomSampler(1).weighted_select([])

    def test_negative_weight(self):
        with pytest.raises(InvalidRangeError):
            RandomSampler(1).weighted_select([(-1, "a"), (2, "b")])

    def test_all_zero(self):
        with pytest.raises(InvalidRangeError):
            RandomSampler(1).weighted_select([(0, "a")])
