"""Tests for ledgerfuzz.invariants.algorithms: pure checking helpers."""

from __future__ import annotations

from decimal import Decimal

import pytest

from ledgerfuzz.invariants.algorithms import (
    U64_MAX,
    check_bijection,
    check_bound,
    check_conservation,
    check_edge_weight_sums,
    find_cycles,
    missing_edges,
    position_reserves,
    tick_to_sqrt_price,
)


class TestBijection:
    def test_exact_inverse(self):
        forward = {0: "a", 1: "b"}
        reverse = {"a": 0, "b": 1}
        assert check_bijection(forward, reverse, 2, domain=range(2)) == []

    def test_size_mismatch(self):
        findings = check_bijection({0: "a"}, {"a": 0}, 2)
        assert any("expected 2" in f.message for f in findings)

    def test_gap_in_domain(self):
        forward = {0: "a", 2: "b"}
        reverse = {"a": 0, "b": 2}
        messages = [f.message for f in check_bijection(forward, reverse, 2, domain=range(2))]
        assert any("missing 1" in m for m in messages)
        assert any("2 outside" in m for m in messages)

    def test_duplicate_values(self):
        forward = {0: "a", 1: "a"}
        reverse = {"a": 0}
        findings = check_bijection(forward, reverse)
        dup = [f for f in findings if "maps 2 keys" in f.message]
        assert dup and dup[0].keys == (0, 1)

    def test_pointwise_mismatch_reported_both_ways(self):
        forward = {0: "a", 1: "b"}
        reverse = {"a": 1, "b": 0}
        findings = check_bijection(forward, reverse, 2)
        assert len([f for f in findings if " but " in f.message]) == 4

    def test_dangling_reverse_entry(self):
        findings = check_bijection({0: "a"}, {"a": 0, "b": 1})
        assert any("has no forward entry" in f.message for f in findings)


class TestConservation:
    def test_holds(self):
        assert check_conservation([1, 2, 3], 10, pending=4) is None

    def test_off_by_one(self):
        finding = check_conservation([1, 2, 3], 10, label="SubnetAlphaOut(1)")
        assert finding is not None
        assert "SubnetAlphaOut(1)" in finding.message

    def test_tolerance(self):
        assert check_conservation([Decimal("1.0004")], Decimal(1), tolerance=Decimal("0.001")) is None

    def test_bound(self):
        assert check_bound(3, 3) is None
        assert "exceeds" in check_bound(4, 3).message


class TestFindCycles:
    def test_acyclic(self):
        assert find_cycles({"a": ["b", "c"], "b": ["c"], "c": []}) == []

    def test_two_cycle(self):
        assert find_cycles({"a": ["b"], "b": ["a"]}) == [["a", "b", "a"]]

    def test_self_loop(self):
        assert find_cycles({"a": ["a"]}) == [["a", "a"]]

    def test_cycle_in_tail(self):
        cycles = find_cycles({"root": ["x"], "x": ["y"], "y": ["z"], "z": ["x"]})
        assert cycles == [["x", "y", "z", "x"]]

    def test_deep_chain_does_not_recurse(self):
        adjacency = {i: [i + 1] for i in range(20_000)}
        assert find_cycles(adjacency) == []
        adjacency[20_000] = [0]
        (cycle,) = find_cycles(adjacency)
        assert cycle[0] == cycle[-1] == 0
        assert len(cycle) == 20_002


class TestEdges:
    def test_weight_sums(self):
        findings = check_edge_weight_sums({"p1": [1, 2], "p2": [0], "p3": [U64_MAX, 1], "p4": []})
        owners = {f.keys[0] for f in findings}
        assert owners == {"p2", "p3"}

    def test_missing_edges(self):
        assert missing_edges([("a", "b"), ("a", "c")], [("a", "b")]) == [("a", "c")]


class TestLiquidityMath:
    def test_tick_zero(self):
        assert tick_to_sqrt_price(0) == 1

    def test_tick_symmetry(self):
        product = tick_to_sqrt_price(100) * tick_to_sqrt_price(-100)
        assert abs(product - 1) < Decimal("1e-25")

    def test_in_range_position_holds_both(self):
        tao, alpha = position_reserves(10**12, -1000, 1000, Decimal(1))
        assert tao > 0 and alpha > 0

    def test_price_below_range_is_all_alpha(self):
        tao, alpha = position_reserves(10**12, 100, 200, Decimal("0.5"))
        assert tao == 0
        assert alpha > 0

    def test_price_above_range_is_all_tao(self):
        tao, alpha = position_reserves(10**12, -200, -100, Decimal(2))
        assert tao > 0
        assert alpha == 0

    def test_empty_range(self):
        with pytest.raises(ValueError):
            position_reserves(1, 5, 5, Decimal(1))
