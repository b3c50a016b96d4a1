"""Weights and bonds matrices stay inside the subnet's uid range."""

from __future__ import annotations

from collections import Counter
from typing import Any

from ledgerfuzz.core.types import Violation
from ledgerfuzz.invariants.base import PartitionedRule
from ledgerfuzz.ledger import storage
from ledgerfuzz.ledger.snapshot import StorageSnapshot


class WeightsBounds(PartitionedRule):
    rule_id = "weights.bounds"
    description = (
        "Weights and Bonds rows exist only for uids < SubnetworkN, every target uid is "
        "< SubnetworkN and no row names a target twice"
    )

    async def check_partition(self, snapshot: StorageSnapshot, partition: Any) -> list[Violation]:
        netuid = partition
        size = await snapshot.read(storage.SUBNETWORK_N, netuid)
        violations = []

        for storage_map in (storage.WEIGHTS, storage.BONDS):
            name = storage_map.name
            async for (_, uid), row in snapshot.entries(storage_map, netuid):
                if uid >= size:
                    violations.append(self.violation(
                        f"{name}({netuid}, {uid}) exists for a uid outside 0..{size - 1}",
                        (netuid, uid), netuid,
                    ))
                targets = Counter(target for target, _ in row)
                for target in sorted(targets):
                    if target >= size:
                        violations.append(self.violation(
                            f"{name}({netuid}, {uid}) targets uid {target} outside 0..{size - 1}",
                            (netuid, uid), netuid,
                        ))
                    if targets[target] > 1:
                        violations.append(self.violation(
                            f"{name}({netuid}, {uid}) lists target uid {target} {targets[target]} times",
                            (netuid, uid), netuid,
                        ))
        return violations
