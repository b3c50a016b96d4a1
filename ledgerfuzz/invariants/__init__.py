"""Storage invariant checking: rules, registry and engine."""

from ledgerfuzz.invariants.base import PartitionedRule, Rule
from ledgerfuzz.invariants.engine import InvariantEngine
from ledgerfuzz.invariants.registry import RuleRegistry, build_default_registry

__all__ = [
    "InvariantEngine",
    "PartitionedRule",
    "Rule",
    "RuleRegistry",
    "build_default_registry",
]
