"""Fuzz orchestrator: invariant pass followed by a random contract campaign."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Iterable

from ledgerfuzz.contracts.base import ContractRun
from ledgerfuzz.contracts.runner import ContractRunner
from ledgerfuzz.contracts.selector import ContractRegistry, ContractSelector, build_default_contracts
from ledgerfuzz.core.config import Settings, get_settings
from ledgerfuzz.core.errors import error_message
from ledgerfuzz.core.logging import setup_logging
from ledgerfuzz.core.sampling import RandomSampler
from ledgerfuzz.core.types import InvariantReport
from ledgerfuzz.invariants.engine import InvariantEngine
from ledgerfuzz.invariants.registry import RuleRegistry, build_default_registry
from ledgerfuzz.ledger.actors import ActorRegistry
from ledgerfuzz.ledger.interfaces import LedgerMutation, LedgerQuery
from ledgerfuzz.ledger.journal import RunJournal
from ledgerfuzz.ledger.snapshot import StorageSnapshot

logger = logging.getLogger(__name__)


@dataclass
class CampaignResult:
    """Tally of one campaign."""
    iterations: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    report: InvariantReport | None = None
    elapsed_sec: float = 0.0

    @property
    def ok(self) -> bool:
        report_ok = self.report is None or self.report.ok
        return report_ok and self.failed == 0 and not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "iterations": self.iterations,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "errors": list(self.errors),
            "invariants_ok": None if self.report is None else self.report.ok,
            "elapsed_sec": round(self.elapsed_sec, 2),
        }


class FuzzOrchestrator:
    """Coordinates invariant checks and contract runs against one ledger.

    Campaign flow:
    1. INVARIANTS: run the rule catalog once against a fresh snapshot
       (when ``check_invariants_first`` is set)
    2. CONTRACTS: ``iterations`` times: pick a contract by weight, choose
       its parameters, execute it and journal the outcome
    """

    def __init__(
        self,
        query: LedgerQuery,
        mutation: LedgerMutation,
        *,
        registry: RuleRegistry,
        contracts: ContractRegistry,
        journal: RunJournal | None = None,
        settings: Settings | None = None,
        sampler: RandomSampler | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.query = query
        self.mutation = mutation
        self.journal = journal or RunJournal(self._settings.journal_path)
        self.engine = InvariantEngine(registry)
        self.sampler = sampler or RandomSampler(self._settings.seed)
        self.runner = ContractRunner(self.sampler)
        self.selector = ContractSelector(contracts, self._settings.contract_weights, self.sampler)

    async def check_invariants(
        self,
        rule_ids: Iterable[str] | None = None,
        *,
        at: Any = None,
    ) -> InvariantReport:
        """Run the rule catalog on one snapshot.

        Pass ``at`` to pin every rule to one block; with ``None`` each read
        sees the latest state, so cross-map rules may straddle a new block.
        """
        snapshot = StorageSnapshot(self.query, at=at, page_size=self._settings.scan_page_size)
        report = await self.engine.run(snapshot, rule_ids)
        if not report.ok:
            logger.warning(
                "Invariant check failed: %d violations, %d rule errors",
                len(report.violations), len(report.errors),
            )
        return report

    async def run_contract_once(self) -> ContractRun | None:
        """One weighted pick; ``None`` when no instance of it exists right now."""
        contract = self.selector.pick()
        params = await self.runner.choose_parameters(contract)
        if params is None:
            logger.info("Skipping %s: no parameters available", contract.name, extra={"contract": contract.name})
            return None

        run = await self.runner.execute(contract, params)
        summary = json.dumps(run.summary(), default=str)
        if run.ok:
            await self.journal.log_ok(f"{contract.name} {summary}")
        else:
            await self.journal.log_error(f"{contract.name} {summary}")
        return run

    async def run(self, iterations: int | None = None, *, at: Any = None) -> CampaignResult:
        """Invariant pass (pinned to ``at``) followed by ``iterations`` contract runs."""
        iterations = self._settings.contract_iterations if iterations is None else iterations
        if iterations < 0:
            raise ValueError("iterations must not be negative")

        result = CampaignResult(iterations=iterations)
        start = time.monotonic()

        if self._settings.check_invariants_first:
            result.report = await self.check_invariants(at=at)

        for i in range(iterations):
            try:
                run = await self.run_contract_once()
            except Exception as exc:
                message = f"iteration {i}: {type(exc).__name__}: {error_message(exc)}"
                logger.exception("Campaign %s", message)
                result.errors.append(message)
                continue

            if run is None:
                result.skipped += 1
            elif run.ok:
                result.passed += 1
            else:
                result.failed += 1

        result.elapsed_sec = time.monotonic() - start
        logger.info(
            "Campaign finished: %d passed, %d failed, %d skipped, %d errors",
            result.passed, result.failed, result.skipped, len(result.errors),
            extra={"duration_ms": round(result.elapsed_sec * 1000)},
        )
        return result


async def run_campaign(
    query: LedgerQuery,
    mutation: LedgerMutation,
    actors: ActorRegistry,
    *,
    settings: Settings | None = None,
    iterations: int | None = None,
    at: Any = None,
) -> CampaignResult:
    """Entry point: configure logging, build the default catalogs, run one campaign."""
    settings = settings or get_settings()
    setup_logging(env=settings.app_env, log_level=settings.log_level, seed=settings.seed)
    logger.info("Starting campaign in %s", settings.app_env)

    orchestrator = FuzzOrchestrator(
        query,
        mutation,
        registry=build_default_registry(settings),
        contracts=build_default_contracts(query, mutation, actors, settings),
        settings=settings,
    )
    return await orchestrator.run(iterations, at=at)
