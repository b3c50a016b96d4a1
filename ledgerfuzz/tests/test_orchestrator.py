"""Tests for ledgerfuzz.pipeline.orchestrator: full campaigns on the simulator."""

from __future__ import annotations

import logging
import re
from typing import Any, Callable

import pytest

from ledgerfuzz.contracts import ContractRegistry, FunctionContract, ParameterDescriptor, build_default_contracts
from ledgerfuzz.core.logging import CampaignLogFilter, JSONFormatter
from ledgerfuzz.invariants import build_default_registry
from ledgerfuzz.ledger import storage
from ledgerfuzz.ledger.interfaces import Page
from ledgerfuzz.ledger.journal import RunJournal
from ledgerfuzz.ledger.memory import InMemoryLedger
from ledgerfuzz.pipeline import FuzzOrchestrator, run_campaign
from ledgerfuzz.tests.conftest import NETUID, build_world

LINE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}>(OK|ERROR) (Transfer|Stake|Unstake) \{.*\}$")


class BlockLandsMidScan:
    """Serves reads from a ledger and lets a new block land after the first page."""

    def __init__(self, ledger: InMemoryLedger, on_first_page: Callable[[], None]) -> None:
        self.ledger = ledger
        self.on_first_page = on_first_page
        self.pages = 0

    async def read_field(self, map_id: str, key: tuple, at: Any = None) -> Any:
        return await self.ledger.read_field(map_id, key, at)

    async def scan_page(self, map_id, prefix, cursor, page_size, at=None) -> Page:
        page = await self.ledger.scan_page(map_id, prefix, cursor, page_size, at)
        self.pages += 1
        if self.pages == 1:
            self.on_first_page()
        return page


def make_orchestrator(ledger, actors, settings, contracts=None) -> FuzzOrchestrator:
    return FuzzOrchestrator(
        ledger,
        ledger,
        registry=build_default_registry(settings),
        contracts=contracts or build_default_contracts(ledger, ledger, actors, settings),
        journal=RunJournal(settings.journal_path),
        settings=settings,
    )


class TestFuzzOrchestrator:
    @pytest.mark.asyncio
    async def test_campaign_keeps_ledger_consistent(self, ledger, actors, settings):
        orchestrator = make_orchestrator(ledger, actors, settings)
        result = await orchestrator.run(iterations=25)

        assert result.report is not None and result.report.ok
        assert result.errors == []
        assert result.passed + result.failed + result.skipped == 25
        assert result.passed > 0

        after = await orchestrator.check_invariants()
        assert after.ok, after.summary()

        lines = open(settings.journal_path, encoding="utf-8").read().splitlines()
        assert len(lines) == result.passed + result.failed
        assert all(LINE.match(line) for line in lines)
        assert sum(">OK " in line for line in lines) == result.passed

    @pytest.mark.asyncio
    async def test_weights_restrict_contracts(self, ledger, actors, settings):
        settings = settings.model_copy(update={"contract_weights": {"Transfer": 1.0}})
        orchestrator = make_orchestrator(ledger, actors, settings)
        result = await orchestrator.run(iterations=5)
        assert result.passed == 5
        assert {op for op, _, _ in ledger.submissions} == {"Balances.transfer_keep_alive"}

    @pytest.mark.asyncio
    async def test_same_seed_same_campaign(self, simulator, actors, settings):
        orchestrator = make_orchestrator(simulator.ledger, actors, settings)
        await orchestrator.run(iterations=6)
        first = list(simulator.ledger.submissions)

        twin = build_world(actors)
        await make_orchestrator(twin.ledger, actors, settings).run(iterations=6)
        assert twin.ledger.submissions == first

    @pytest.mark.asyncio
    async def test_invariant_failure_reported_before_campaign(self, ledger, actors, settings):
        ledger.set(storage.MAX_ALLOWED_UIDS.name, (NETUID,), 1)
        result = await make_orchestrator(ledger, actors, settings).run(iterations=1)
        assert not result.report.ok
        assert not result.ok
        assert result.to_dict()["invariants_ok"] is False

    @pytest.mark.asyncio
    async def test_invariant_pass_can_be_disabled(self, ledger, actors, settings):
        settings = settings.model_copy(update={"check_invariants_first": False})
        result = await make_orchestrator(ledger, actors, settings).run(iterations=0)
        assert result.report is None
        assert result.ok

    @pytest.mark.asyncio
    async def test_no_instance_is_skipped(self, ledger, actors, settings):
        contracts = ContractRegistry()
        contracts.register(FunctionContract(
            "Idle",
            parameters=[ParameterDescriptor.choice("actor", [])],
            precondition=lambda p: None,
            action=lambda p: None,
            postcondition=lambda p, pre, res: True,
        ))
        settings = settings.model_copy(update={"contract_weights": {"Idle": 1.0}})
        orchestrator = make_orchestrator(ledger, actors, settings, contracts)
        assert await orchestrator.run_contract_once() is None
        result = await orchestrator.run(iterations=3)
        assert result.skipped == 3

    @pytest.mark.asyncio
    async def test_unexpected_error_does_not_stop_campaign(self, ledger, actors, settings):
        def broken(chosen):
            raise RuntimeError("descriptor bug")

        contracts = ContractRegistry()
        contracts.register(FunctionContract(
            "Broken",
            parameters=[broken],
            precondition=lambda p: None,
            action=lambda p: None,
            postcondition=lambda p, pre, res: True,
        ))
        settings = settings.model_copy(update={"contract_weights": {"Broken": 1.0}})
        result = await make_orchestrator(ledger, actors, settings, contracts).run(iterations=4)
        assert len(result.errors) == 4
        assert result.errors[0] == "iteration 0: RuntimeError: descriptor bug"
        assert not result.ok

    @pytest.mark.asyncio
    async def test_negative_iterations(self, ledger, actors, settings):
        with pytest.raises(ValueError):
            await make_orchestrator(ledger, actors, settings).run(iterations=-1)

    @pytest.mark.asyncio
    async def test_pinned_invariant_pass_ignores_new_blocks(self, ledger, actors, settings):
        def mint_alpha_out():
            alpha_out = ledger.get(storage.SUBNET_ALPHA_OUT.name, (NETUID,))
            ledger.set(storage.SUBNET_ALPHA_OUT.name, (NETUID,), alpha_out + 1)
            ledger.finalize_block()

        pinned = ledger.block
        query = BlockLandsMidScan(ledger, mint_alpha_out)
        orchestrator = FuzzOrchestrator(
            query,
            ledger,
            registry=build_default_registry(settings),
            contracts=build_default_contracts(ledger, ledger, actors, settings),
            journal=RunJournal(settings.journal_path),
            settings=settings,
        )

        report = await orchestrator.check_invariants(at=pinned)
        assert query.pages > 1
        assert ledger.block == pinned + 1
        assert report.ok, report.summary()
        assert report.block == pinned

        result = await orchestrator.run(iterations=0, at=pinned)
        assert result.report.ok
        assert result.report.block == pinned

        latest = await orchestrator.check_invariants()
        assert "staking.alpha_out" in {v.rule_id for v in latest.violations}


class TestRunCampaign:
    @pytest.mark.asyncio
    async def test_settings_drive_logging(self, ledger, actors, settings):
        settings = settings.model_copy(update={"app_env": "production", "log_level": "DEBUG"})
        root = logging.getLogger()
        saved = list(root.handlers), root.level
        try:
            result = await run_campaign(ledger, ledger, actors, settings=settings, iterations=3)
            assert root.level == logging.DEBUG
            (handler,) = root.handlers
            assert isinstance(handler.formatter, JSONFormatter)
            (stamp,) = [f for f in handler.filters if isinstance(f, CampaignLogFilter)]
            assert stamp.seed == settings.seed
        finally:
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])

        assert result.iterations == 3
        assert result.report is not None and result.report.ok
        assert result.passed + result.failed + result.skipped + len(result.errors) == 3

    @pytest.mark.asyncio
    async def test_no_seed_no_stamp(self, ledger, actors, settings):
        settings = settings.model_copy(update={"seed": None})
        root = logging.getLogger()
        saved = list(root.handlers), root.level
        try:
            await run_campaign(ledger, ledger, actors, settings=settings, iterations=0)
            (handler,) = root.handlers
            assert handler.filters == []
        finally:
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])
