"""Runs registered invariant rules against a snapshot and aggregates a report."""

from __future__ import annotations

import logging
import time
from typing import Iterable

from ledgerfuzz.core.errors import error_message
from ledgerfuzz.core.types import InvariantReport, RuleOutcome
from ledgerfuzz.invariants.base import Rule
from ledgerfuzz.invariants.registry import RuleRegistry
from ledgerfuzz.ledger.snapshot import StorageSnapshot

logger = logging.getLogger(__name__)


class InvariantEngine:
    """Evaluates rules one after another; partitions inside a rule may overlap.

    A rule that raises (scan failure, undecodable value, missing mandatory
    field, or a transport error) is recorded as errored and the remaining
    rules still run. The report is only ``ok`` with no violations and no
    errors.
    """

    def __init__(self, registry: RuleRegistry) -> None:
        self.registry = registry

    async def run(
        self,
        snapshot: StorageSnapshot,
        rule_ids: Iterable[str] | None = None,
    ) -> InvariantReport:
        rules = self.registry.select(rule_ids)
        start = time.monotonic()
        outcomes = [await self._run_rule(rule, snapshot) for rule in rules]

        report = InvariantReport(
            outcomes=outcomes,
            block=snapshot.at,
            duration_seconds=time.monotonic() - start,
        )
        logger.info(
            "Invariant run finished: %d rules, %d violations, %d errors",
            len(outcomes), len(report.violations), len(report.errors),
            extra={"duration_ms": round(report.duration_seconds * 1000)},
        )
        return report

    async def _run_rule(self, rule: Rule, snapshot: StorageSnapshot) -> RuleOutcome:
        start = time.monotonic()
        outcome = RuleOutcome(rule_id=rule.rule_id, description=rule.description)
        try:
            violations, partitions = await rule.evaluate(snapshot)
        except Exception as exc:
            outcome.error = f"{type(exc).__name__}: {error_message(exc)}"
            logger.error(
                "Rule %s could not complete: %s", rule.rule_id, outcome.error,
                extra={"rule_id": rule.rule_id},
            )
        else:
            outcome.violations = violations
            outcome.partitions_checked = partitions
            for violation in violations:
                logger.warning(
                    "Constraint violated: %s", violation,
                    extra={"rule_id": rule.rule_id, "partition": violation.partition},
                )

        outcome.duration_seconds = time.monotonic() - start
        logger.debug(
            "Rule %s: %s", rule.rule_id, outcome.status.value,
            extra={"rule_id": rule.rule_id, "duration_ms": round(outcome.duration_seconds * 1000)},
        )
        return outcome
