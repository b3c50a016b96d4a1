"""Validator permit rules."""

from __future__ import annotations

from typing import Any

from ledgerfuzz.core.types import Violation
from ledgerfuzz.invariants.algorithms import check_bound
from ledgerfuzz.invariants.base import PartitionedRule
from ledgerfuzz.ledger import storage
from ledgerfuzz.ledger.snapshot import StorageSnapshot


class ValidatorPermitBound(PartitionedRule):
    rule_id = "validators.permit_bound"
    description = "Number of set ValidatorPermit flags <= MaxAllowedValidators(netuid)"

    async def check_partition(self, snapshot: StorageSnapshot, partition: Any) -> list[Violation]:
        netuid = partition
        permits = await snapshot.read(storage.VALIDATOR_PERMIT, netuid)
        maximum = await snapshot.read(storage.MAX_ALLOWED_VALIDATORS, netuid)
        finding = check_bound(
            sum(1 for p in permits if p), maximum,
            label=f"Validator permits on subnet {netuid}",
            bound_label=f"MaxAllowedValidators({netuid})",
        )
        return self.from_findings([finding], partition=netuid)
