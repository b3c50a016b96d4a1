"""Explicit registration of invariant rules."""

from __future__ import annotations

from typing import Iterable, Iterator

from ledgerfuzz.core.config import Settings, get_settings
from ledgerfuzz.invariants.base import Rule
from ledgerfuzz.invariants.rules import (
    AlphaOutConservation,
    ChildIndex,
    ChildKeysAcyclic,
    ChildProportions,
    EpochTopology,
    HotkeyMembership,
    HotkeyOwnership,
    KeysUidsBijection,
    ParentIndex,
    ShareTotals,
    StakingHotkeyIndex,
    SubnetSizeBound,
    SwapLiquidity,
    ValidatorPermitBound,
    WeightsBounds,
)


class RuleRegistry:
    """Ordered set of rules keyed by ``rule_id``."""

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules: dict[str, Rule] = {}
        for rule in rules:
            self.register(rule)

    def register(self, rule: Rule) -> Rule:
        if rule.rule_id in self._rules:
            raise ValueError(f"Rule {rule.rule_id!r} is already registered")
        self._rules[rule.rule_id] = rule
        return rule

    def get(self, rule_id: str) -> Rule:
        try:
            return self._rules[rule_id]
        except KeyError:
            raise KeyError(f"Unknown rule {rule_id!r}") from None

    def names(self) -> list[str]:
        return list(self._rules)

    def select(self, rule_ids: Iterable[str] | None = None) -> list[Rule]:
        """Rules for ``rule_ids`` in the given order, or all rules."""
        if rule_ids is None:
            return list(self._rules.values())
        return [self.get(rule_id) for rule_id in rule_ids]

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)


def build_default_registry(settings: Settings | None = None) -> RuleRegistry:
    """Registry holding the full rule catalog, tuned from ``settings``."""
    settings = settings or get_settings()
    concurrency = settings.max_partition_concurrency
    return RuleRegistry([
        KeysUidsBijection(concurrency),
        SubnetSizeBound(concurrency),
        HotkeyOwnership(concurrency),
        HotkeyMembership(),
        AlphaOutConservation(),
        StakingHotkeyIndex(),
        ShareTotals(settings.share_tolerance_divisor),
        EpochTopology(concurrency),
        ValidatorPermitBound(concurrency),
        WeightsBounds(concurrency),
        ChildKeysAcyclic(),
        ChildProportions(),
        ParentIndex(),
        ChildIndex(),
        SwapLiquidity(settings.liquidity_rel_tolerance, concurrency),
    ])
