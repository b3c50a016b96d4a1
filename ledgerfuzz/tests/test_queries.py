"""Tests for ledgerfuzz.ledger.queries: typed read helpers used by contracts."""

from __future__ import annotations

from decimal import Decimal

import pytest

from ledgerfuzz.core.errors import FieldNotFound
from ledgerfuzz.ledger import queries, storage
from ledgerfuzz.tests.conftest import CHEAP_NETUID, FUNDING, INITIAL_STAKE, NETUID


class TestQueries:
    @pytest.mark.asyncio
    async def test_subnets_available_skips_unset_flags(self, ledger, snapshot):
        ledger.set(storage.NETWORKS_ADDED.name, (5,), False)
        assert await queries.subnets_available(snapshot) == [NETUID, CHEAP_NETUID]

    @pytest.mark.asyncio
    async def test_validator_hotkeys(self, snapshot, actors):
        assert await queries.validator_hotkeys(snapshot, CHEAP_NETUID) == [actors.by_name("hotkey2").address]

    @pytest.mark.asyncio
    async def test_validator_hotkeys_without_permit_vector(self, ledger, snapshot):
        ledger.delete(storage.VALIDATOR_PERMIT.name, (NETUID,))
        assert await queries.validator_hotkeys(snapshot, NETUID) == []

    @pytest.mark.asyncio
    async def test_free_balance(self, snapshot, actors):
        assert await queries.free_balance(snapshot, actors.by_name("coldkey3").address) == FUNDING
        assert await queries.free_balance(snapshot, "5nobody") == 0

    @pytest.mark.asyncio
    async def test_stake_of(self, snapshot, actors):
        alice, charlie = actors.by_name("coldkey1").address, actors.by_name("hotkey1").address
        assert await queries.stake_of(snapshot, NETUID, alice, charlie) == INITIAL_STAKE
        assert await queries.stake_of(snapshot, CHEAP_NETUID, alice, charlie) == 0

    @pytest.mark.asyncio
    async def test_stake_follows_pool_growth(self, simulator, snapshot, actors):
        alice, charlie = actors.by_name("coldkey1").address, actors.by_name("hotkey1").address
        # Rewards raise the pool's alpha without minting shares.
        simulator.ledger.set(storage.TOTAL_HOTKEY_ALPHA.name, (charlie, NETUID), 2 * INITIAL_STAKE)
        assert await queries.stake_of(snapshot, NETUID, alice, charlie) == 2 * INITIAL_STAKE

    @pytest.mark.asyncio
    async def test_alpha_price(self, snapshot):
        assert await queries.alpha_price(snapshot, NETUID) == 1
        assert await queries.alpha_price(snapshot, CHEAP_NETUID) == Decimal("0.25")
        with pytest.raises(FieldNotFound):
            await queries.alpha_price(snapshot, 42)

    @pytest.mark.asyncio
    async def test_staking_lookups(self, snapshot, actors):
        bob = actors.by_name("coldkey2")
        assert await queries.hotkeys_staked_by(snapshot, bob.address, CHEAP_NETUID) == [
            actors.by_name("hotkey2").address,
        ]
        assert await queries.hotkeys_staked_by(snapshot, bob.address, NETUID) == []
        holders = await queries.coldkeys_with_stake(snapshot, actors, CHEAP_NETUID)
        assert holders == [bob]


class TestPriceArithmetic:
    def test_mul(self):
        assert queries.mul_amount_by_price(1000, Decimal("0.25")) == 250
        assert queries.mul_amount_by_price(1000, 1.5) == 1500

    def test_price_truncated_to_nine_decimals(self):
        assert queries.mul_amount_by_price(10**12, Decimal("0.0000000019")) == 1000

    def test_div(self):
        assert queries.div_amount_by_price(250, Decimal("0.25")) == 1000

    def test_div_by_vanishing_price(self):
        with pytest.raises(ZeroDivisionError):
            queries.div_amount_by_price(1, Decimal("1e-12"))
