"""Epoch topology: per-uid vectors and registration blocks agree with SubnetworkN."""

from __future__ import annotations

from typing import Any

from ledgerfuzz.core.types import Violation
from ledgerfuzz.invariants.base import PartitionedRule
from ledgerfuzz.ledger import storage
from ledgerfuzz.ledger.snapshot import StorageSnapshot


class EpochTopology(PartitionedRule):
    rule_id = "epoch.topology"
    description = (
        "BlockAtRegistration exists for every uid in Uids, and every epoch vector "
        "has exactly SubnetworkN entries"
    )

    async def check_partition(self, snapshot: StorageSnapshot, partition: Any) -> list[Violation]:
        netuid = partition
        violations = []
        size = await snapshot.read(storage.SUBNETWORK_N, netuid)

        uids = set((await snapshot.collect(storage.UIDS, netuid)).values())
        registered_at = {key[1] for key in await snapshot.collect(storage.BLOCK_AT_REGISTRATION, netuid)}
        for uid in sorted(uids - registered_at):
            violations.append(self.violation(
                f"BlockAtRegistration missing for (netuid {netuid}, uid {uid})",
                (netuid, uid), netuid,
            ))

        for vector in storage.EPOCH_VECTORS:
            values = await snapshot.read(vector, netuid)
            if len(values) != size:
                violations.append(self.violation(
                    f"{vector.name}({netuid}) has length {len(values)}, expected {size}",
                    (netuid,), netuid,
                ))
        return violations
