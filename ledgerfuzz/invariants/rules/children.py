"""Parent/child hotkey delegation rules.

``ChildKeys`` and ``ParentKeys`` are keyed ``(hotkey, netuid)``, so each is
scanned once and grouped by subnet; the four rules share that loading code.
"""

from __future__ import annotations

from collections import defaultdict

from ledgerfuzz.core.types import Violation
from ledgerfuzz.invariants.algorithms import U64_MAX, check_edge_weight_sums, find_cycles, missing_edges
from ledgerfuzz.invariants.base import Rule
from ledgerfuzz.ledger import storage
from ledgerfuzz.ledger.fields import WeightedEdge
from ledgerfuzz.ledger.snapshot import StorageSnapshot

# {netuid: {hotkey: edges}}
EdgeIndex = dict[int, dict[str, tuple[WeightedEdge, ...]]]


async def child_edges(snapshot: StorageSnapshot) -> EdgeIndex:
    index: EdgeIndex = defaultdict(dict)
    async for (parent, netuid), edges in snapshot.entries(storage.CHILD_KEYS):
        index[netuid][parent] = edges
    return index


async def parent_edges(snapshot: StorageSnapshot) -> EdgeIndex:
    index: EdgeIndex = defaultdict(dict)
    async for (child, netuid), edges in snapshot.entries(storage.PARENT_KEYS):
        index[netuid][child] = edges
    return index


async def pending_child_edges(snapshot: StorageSnapshot) -> EdgeIndex:
    index: EdgeIndex = defaultdict(dict)
    async for (netuid, parent), pending in snapshot.entries(storage.PENDING_CHILD_KEYS):
        index[netuid][parent] = pending.children
    return index


def _pairs(index: dict[str, tuple[WeightedEdge, ...]], *, reverse: bool = False) -> list[tuple[str, str]]:
    """Flatten to ``(parent, child)`` pairs; ``reverse`` reads a child -> parents index."""
    if reverse:
        return [(edge.account, child) for child, edges in index.items() for edge in edges]
    return [(parent, edge.account) for parent, edges in index.items() for edge in edges]


class ChildKeysAcyclic(Rule):
    rule_id = "children.acyclic"
    description = "Current and pending parent -> child edges form no cycle on any subnet"

    async def check(self, snapshot: StorageSnapshot) -> list[Violation]:
        current = await child_edges(snapshot)
        pending = await pending_child_edges(snapshot)

        violations = []
        for netuid in sorted(set(current) | set(pending)):
            adjacency: dict[str, list[str]] = defaultdict(list)
            for parent, child in _pairs(current.get(netuid, {})) + _pairs(pending.get(netuid, {})):
                if child not in adjacency[parent]:
                    adjacency[parent].append(child)
            for cycle in find_cycles(adjacency):
                violations.append(self.violation(
                    f"Delegation cycle on subnet {netuid}: {' -> '.join(cycle)}",
                    tuple(cycle[:-1]), netuid,
                ))
        return violations


class ChildProportions(Rule):
    rule_id = "children.proportions"
    description = "Each parent's child proportions (current and pending) sum within (0, u64::MAX]"

    def __init__(self, scale: int = U64_MAX) -> None:
        self.scale = scale

    async def check(self, snapshot: StorageSnapshot) -> list[Violation]:
        violations = []
        for label, index in (
            ("ChildKeys", await child_edges(snapshot)),
            ("PendingChildKeys", await pending_child_edges(snapshot)),
        ):
            for netuid in sorted(index):
                weights = {
                    parent: [edge.proportion for edge in edges]
                    for parent, edges in index[netuid].items()
                }
                for finding in check_edge_weight_sums(weights, self.scale):
                    violations.append(self.violation(
                        f"{label} on subnet {netuid}: {finding.message}",
                        finding.keys + (netuid,), netuid,
                    ))
        return violations


class ParentIndex(Rule):
    rule_id = "children.parent_index"
    description = "Every ChildKeys edge p -> c is mirrored in ParentKeys(c)"

    async def check(self, snapshot: StorageSnapshot) -> list[Violation]:
        children = await child_edges(snapshot)
        parents = await parent_edges(snapshot)
        violations = []
        for netuid in sorted(children):
            mirrored = _pairs(parents.get(netuid, {}), reverse=True)
            for parent, child in missing_edges(_pairs(children[netuid]), mirrored):
                violations.append(self.violation(
                    f"ChildKeys({parent}, {netuid}) lists {child}, but ParentKeys({child}, {netuid}) "
                    f"does not list {parent}",
                    (parent, child, netuid), netuid,
                ))
        return violations


class ChildIndex(Rule):
    rule_id = "children.child_index"
    description = "Every ParentKeys edge is mirrored in ChildKeys(p)"

    async def check(self, snapshot: StorageSnapshot) -> list[Violation]:
        children = await child_edges(snapshot)
        parents = await parent_edges(snapshot)
        violations = []
        for netuid in sorted(parents):
            mirrored = _pairs(children.get(netuid, {}))
            for parent, child in missing_edges(_pairs(parents[netuid], reverse=True), mirrored):
                violations.append(self.violation(
                    f"ParentKeys({child}, {netuid}) lists {parent}, but ChildKeys({parent}, {netuid}) "
                    f"does not list {child}",
                    (parent, child, netuid), netuid,
                ))
        return violations
