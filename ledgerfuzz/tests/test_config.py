"""Tests for ledgerfuzz.core.config and ledgerfuzz.core.logging."""

from __future__ import annotations

import json
import logging
import os
from decimal import Decimal
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from ledgerfuzz.core.config import ActorRole, Settings, get_settings
from ledgerfuzz.core.logging import CampaignLogFilter, DevFormatter, JSONFormatter, setup_logging
from ledgerfuzz.ledger.actors import Actor, ActorRegistry


class TestSettings:
    """Verify settings defaults and environment overrides."""

    def test_defaults(self):
        s = Settings()
        assert s.app_env == "development"
        assert s.scan_page_size == 1000
        assert s.share_tolerance_divisor == 1000
        assert s.unstake_balance_tolerance_divisor == 2
        assert s.liquidity_rel_tolerance == Decimal("0.001")
        assert s.contract_weights == {"Transfer": 0.2, "Stake": 0.4, "Unstake": 0.4}
        assert s.journal_path == "test_journal.txt"

    def test_default_actors(self):
        roles = [a.role for a in Settings().actors]
        assert roles.count(ActorRole.COLDKEY) == 3
        assert roles.count(ActorRole.HOTKEY) == 2

    @patch.dict(os.environ, {"LEDGERFUZZ_SCAN_PAGE_SIZE": "50", "LEDGERFUZZ_SEED": "9"})
    def test_env_override(self):
        s = Settings()
        assert s.scan_page_size == 50
        assert s.seed == 9

    @patch.dict(os.environ, {"LEDGERFUZZ_CONTRACT_WEIGHTS": '{"Transfer": 1}'})
    def test_weights_from_env_json(self):
        assert Settings().contract_weights == {"Transfer": 1.0}

    def test_rejects_non_positive_page_size(self):
        with pytest.raises(ValidationError):
            Settings(scan_page_size=0)

    def test_rejects_negative_weight(self):
        with pytest.raises(ValidationError):
            Settings(contract_weights={"Stake": -1})

    def test_get_settings_returns_same_instance(self):
        get_settings.cache_clear()
        assert get_settings() is get_settings()


class TestActorRegistry:
    def test_addresses_derived_once(self, actor_specs):
        calls = []

        def derive(seed):
            calls.append(seed)
            return "5" + seed.strip("/")

        registry = ActorRegistry.from_specs(actor_specs).with_addresses(derive)
        assert registry.by_name("coldkey1").address == "5Alice"
        assert len(calls) == 5
        assert registry.by_name("spectator").address == ""
        assert not registry.by_name("spectator").can_sign

    def test_lookup(self, actors):
        alice = actors.by_name("coldkey1")
        assert actors.find(alice.address, ActorRole.COLDKEY) == alice
        assert actors.find(alice.address, ActorRole.HOTKEY) is None
        assert str(alice) == f"coldkey1({alice.address})"
        with pytest.raises(KeyError):
            actors.by_name("mallory")

    def test_unique_names(self):
        with pytest.raises(ValueError):
            ActorRegistry([Actor("a", ActorRole.COLDKEY), Actor("a", ActorRole.HOTKEY)])


class TestLogging:
    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord("ledgerfuzz.test", logging.WARNING, __file__, 1, "Constraint violated: %s", ("x",), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_json_formatter_lifts_context(self):
        payload = json.loads(JSONFormatter().format(self._record(rule_id="staking.alpha_out", partition=3)))
        assert payload["message"] == "Constraint violated: x"
        assert payload["rule_id"] == "staking.alpha_out"
        assert payload["partition"] == 3
        assert "contract" not in payload

    def test_campaign_filter_stamps_seed(self):
        stamp = CampaignLogFilter(42)
        record = self._record()
        assert stamp.filter(record)
        assert json.loads(JSONFormatter().format(record))["seed"] == 42

        own = self._record(seed=1)
        stamp.filter(own)
        assert own.seed == 1

    def test_dev_formatter_prefixes_contract(self):
        text = DevFormatter().format(self._record(contract="Stake"))
        assert "[Stake] Constraint violated: x" in text

    def test_setup_logging_picks_formatter(self):
        root = logging.getLogger()
        saved = list(root.handlers), root.level
        try:
            setup_logging("production", "DEBUG")
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
            assert root.level == logging.DEBUG
            setup_logging("development")
            assert isinstance(root.handlers[0].formatter, DevFormatter)
        finally:
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])
