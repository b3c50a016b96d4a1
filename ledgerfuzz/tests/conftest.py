"""Shared fixtures for the ledgerfuzz test suite."""

from __future__ import annotations

from decimal import Decimal

import pytest

from ledgerfuzz.core.config import ActorRole, ActorSpec, Settings
from ledgerfuzz.invariants.algorithms import U64_MAX
from ledgerfuzz.ledger.actors import ActorRegistry
from ledgerfuzz.ledger.memory import InMemoryLedger
from ledgerfuzz.ledger.simulation import ChainSimulator
from ledgerfuzz.ledger.snapshot import StorageSnapshot

NETUID = 1
CHEAP_NETUID = 2
FUNDING = 10**12
INITIAL_STAKE = 10**9


def derive_address(seed: str) -> str:
    """Deterministic stand-in for sr25519 address derivation."""
    return "5" + seed.strip("/").lower()


# ── Actors ───────────────────────────────────────────────────────────────────


@pytest.fixture
def actor_specs() -> list[ActorSpec]:
    return [
        ActorSpec(name="hotkey1", role=ActorRole.HOTKEY, seed="//Charlie"),
        ActorSpec(name="coldkey1", role=ActorRole.COLDKEY, seed="//Alice"),
        ActorSpec(name="hotkey2", role=ActorRole.HOTKEY, seed="//Dave"),
        ActorSpec(name="coldkey2", role=ActorRole.COLDKEY, seed="//Bob"),
        ActorSpec(name="coldkey3", role=ActorRole.COLDKEY, seed="//Eve"),
        ActorSpec(name="spectator", role=ActorRole.SPECTATOR),
    ]


@pytest.fixture
def actors(actor_specs: list[ActorSpec]) -> ActorRegistry:
    return ActorRegistry.from_specs(actor_specs).with_addresses(derive_address)


# ── Ledger state ─────────────────────────────────────────────────────────────


def build_world(actors: ActorRegistry) -> ChainSimulator:
    """Two subnets with consistent registry, staking, delegation and swap state.

    Subnet 1 trades at price 1 and subnet 2 at price 0.25 (sqrt 0.5), both
    exact in U64F64. ``hotkey1`` is a validator on subnet 1 with stake from
    ``coldkey1``; ``hotkey2`` is a plain neuron delegated to by ``hotkey1``.
    """
    sim = ChainSimulator(InMemoryLedger(keep_history=True)).install()
    alice = actors.by_name("coldkey1").address
    bob = actors.by_name("coldkey2").address
    eve = actors.by_name("coldkey3").address
    charlie = actors.by_name("hotkey1").address
    dave = actors.by_name("hotkey2").address

    for address in (alice, bob, eve):
        sim.fund(address, FUNDING)

    sim.add_subnet(NETUID, max_uids=16, max_validators=4, price=1)
    sim.register_neuron(NETUID, charlie, alice, validator=True)
    sim.register_neuron(NETUID, dave, bob)
    sim.set_weights(NETUID, 0, [(0, 100), (1, 200)])
    sim.set_bonds(NETUID, 1, [(0, 5)])
    sim.credit_alpha(charlie, alice, NETUID, INITIAL_STAKE)
    sim.emit_pending(NETUID, 1_000)
    sim.set_children(NETUID, charlie, [(U64_MAX // 2, dave)])
    sim.add_position(NETUID, alice, 0, -1000, 1000, 10**12)

    sim.add_subnet(CHEAP_NETUID, max_uids=8, max_validators=2, price=Decimal("0.25"))
    sim.register_neuron(CHEAP_NETUID, dave, bob, validator=True)
    sim.credit_alpha(dave, bob, CHEAP_NETUID, INITIAL_STAKE)

    sim.ledger.finalize_block()
    return sim


@pytest.fixture
def simulator(actors: ActorRegistry) -> ChainSimulator:
    return build_world(actors)


@pytest.fixture
def ledger(simulator: ChainSimulator) -> InMemoryLedger:
    return simulator.ledger


@pytest.fixture
def snapshot(ledger: InMemoryLedger) -> StorageSnapshot:
    return StorageSnapshot(ledger, page_size=3)


# ── Settings ─────────────────────────────────────────────────────────────────


@pytest.fixture
def settings(tmp_path, actor_specs: list[ActorSpec]) -> Settings:
    return Settings(
        seed=7,
        scan_page_size=4,
        journal_path=str(tmp_path / "test_journal.txt"),
        actors=actor_specs,
    )
