"""Hotkey ownership and subnet membership rules."""

from __future__ import annotations

from collections import defaultdict
from typing import Any

from ledgerfuzz.core.types import Violation
from ledgerfuzz.invariants.base import PartitionedRule, Rule
from ledgerfuzz.invariants.rules.keys_uids import registered_hotkeys
from ledgerfuzz.ledger import queries, storage
from ledgerfuzz.ledger.snapshot import StorageSnapshot


class HotkeyOwnership(PartitionedRule):
    rule_id = "hotkeys.ownership"
    description = (
        "Every registered hotkey is listed in OwnedHotkeys of its Owner, and every "
        "hotkey in that list is owned by the same coldkey"
    )

    async def check_partition(self, snapshot: StorageSnapshot, partition: Any) -> list[Violation]:
        netuid = partition
        violations = []
        owners: dict[str, str | None] = {}

        async def owner_of(hotkey: str) -> str | None:
            if hotkey not in owners:
                owners[hotkey] = await snapshot.read(storage.OWNER, hotkey)
            return owners[hotkey]

        for hotkey in sorted(set((await registered_hotkeys(snapshot, netuid)).values())):
            coldkey = await owner_of(hotkey)
            if coldkey is None:
                violations.append(self.violation(
                    f"Registered hotkey {hotkey} has no Owner", (hotkey,), netuid,
                ))
                continue

            owned = await snapshot.read(storage.OWNED_HOTKEYS, coldkey)
            if hotkey not in owned:
                violations.append(self.violation(
                    f"OwnedHotkeys({coldkey}) does not contain hotkey {hotkey}",
                    (coldkey, hotkey), netuid,
                ))
            for listed in owned:
                listed_owner = await owner_of(listed)
                if listed_owner != coldkey:
                    violations.append(self.violation(
                        f"OwnedHotkeys({coldkey}) contains {listed}, but its owner is {listed_owner}",
                        (coldkey, listed), netuid,
                    ))
        return violations


class HotkeyMembership(Rule):
    """Membership flags and per-hotkey subnet records match the registry.

    ``IsNetworkMember`` is keyed by hotkey first, so it is scanned once for
    all subnets and grouped, instead of once per subnet.
    """

    rule_id = "hotkeys.membership"
    description = (
        "IsNetworkMember(h, n) is set for exactly the hotkeys registered on n; "
        "Axons, NeuronCertificates and Prometheus only hold registered hotkeys"
    )

    async def check(self, snapshot: StorageSnapshot) -> list[Violation]:
        members: dict[int, set[str]] = defaultdict(set)
        async for (hotkey, netuid), flag in snapshot.entries(storage.IS_NETWORK_MEMBER):
            if flag:
                members[netuid].add(hotkey)

        violations = []
        for netuid in await queries.subnets_available(snapshot):
            registered = set((await registered_hotkeys(snapshot, netuid)).values())
            flagged = members.get(netuid, set())

            for hotkey in sorted(registered - flagged):
                violations.append(self.violation(
                    f"Registered hotkey {hotkey} is not IsNetworkMember({hotkey}, {netuid})",
                    (hotkey, netuid), netuid,
                ))
            for hotkey in sorted(flagged - registered):
                violations.append(self.violation(
                    f"IsNetworkMember({hotkey}, {netuid}) is set for an unregistered hotkey",
                    (hotkey, netuid), netuid,
                ))

            for storage_map in (storage.AXONS, storage.NEURON_CERTIFICATES, storage.PROMETHEUS):
                async for (_, hotkey), _value in snapshot.entries(storage_map, netuid):
                    if hotkey not in registered:
                        violations.append(self.violation(
                            f"{storage_map.name} contains hotkey {hotkey} not registered on subnet {netuid}",
                            (netuid, hotkey), netuid,
                        ))
        return violations
