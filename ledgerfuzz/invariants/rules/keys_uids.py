"""Neuron registry rules: the Keys/Uids bijection and subnet size."""

from __future__ import annotations

from typing import Any

from ledgerfuzz.core.types import Violation
from ledgerfuzz.invariants.algorithms import check_bijection, check_bound
from ledgerfuzz.invariants.base import PartitionedRule
from ledgerfuzz.ledger import storage
from ledgerfuzz.ledger.snapshot import StorageSnapshot


async def registered_hotkeys(snapshot: StorageSnapshot, netuid: int) -> dict[int, str]:
    """``{uid: hotkey}`` from ``Keys(netuid, *)``."""
    return {key[1]: hotkey for key, hotkey in (await snapshot.collect(storage.KEYS, netuid)).items()}


class KeysUidsBijection(PartitionedRule):
    rule_id = "keys_uids.bijection"
    description = (
        "Keys(netuid, uid) -> hotkey and Uids(netuid, hotkey) -> uid are exact inverses "
        "over the contiguous uids 0..SubnetworkN-1"
    )

    async def check_partition(self, snapshot: StorageSnapshot, partition: Any) -> list[Violation]:
        netuid = partition
        size = await snapshot.read(storage.SUBNETWORK_N, netuid)
        keys = await registered_hotkeys(snapshot, netuid)
        uids = {key[1]: uid for key, uid in (await snapshot.collect(storage.UIDS, netuid)).items()}

        findings = check_bijection(
            keys,
            uids,
            size,
            domain=range(size),
            forward_name=f"Keys({netuid}, *)",
            reverse_name=f"Uids({netuid}, *)",
        )
        return self.from_findings(findings, partition=netuid)


class SubnetSizeBound(PartitionedRule):
    rule_id = "subnet.size_bound"
    description = "SubnetworkN(netuid) <= MaxAllowedUids(netuid)"

    async def check_partition(self, snapshot: StorageSnapshot, partition: Any) -> list[Violation]:
        netuid = partition
        size = await snapshot.read(storage.SUBNETWORK_N, netuid)
        maximum = await snapshot.read(storage.MAX_ALLOWED_UIDS, netuid)
        finding = check_bound(
            size, maximum,
            label=f"SubnetworkN({netuid})",
            bound_label=f"MaxAllowedUids({netuid})",
        )
        return self.from_findings([finding], partition=netuid)
