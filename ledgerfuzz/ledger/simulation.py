"""Small subnet/staking chain simulator on top of ``InMemoryLedger``.

Implements just enough of the balances and staking pallets for the contract
library to run end-to-end without a node, and keeps every storage map the
invariant rules read mutually consistent:

  - Setup helpers (``fund``, ``add_subnet``, ``register_neuron``,
    ``set_children``, ``add_position``...) write state the way the chain
    would after the corresponding extrinsics.
  - ``install`` registers the mutating operations
    ``Balances.transfer_keep_alive``, ``SubtensorModule.add_stake`` and
    ``SubtensorModule.remove_stake``.

Staking uses a fixed-price pool: the alpha price is read from
``AlphaSqrtPrice`` and is not moved by stake or unstake. Stake shares are
tracked as raw U64F64 bit patterns so share totals stay exact.
"""

from __future__ import annotations

import decimal
import logging
from decimal import Decimal
from typing import Any

from ledgerfuzz.core.errors import SubmissionRejected
from ledgerfuzz.core.fixed_point import EXACT_PRECISION, U64F64, encode
from ledgerfuzz.invariants.algorithms import position_reserves
from ledgerfuzz.ledger import storage
from ledgerfuzz.ledger.actors import Actor
from ledgerfuzz.ledger.calls import ADD_STAKE, REMOVE_STAKE, TRANSFER_KEEP_ALIVE
from ledgerfuzz.ledger.memory import InMemoryLedger

logger = logging.getLogger(__name__)

EXISTENTIAL_DEPOSIT = 500
TRANSACTION_FEE = 1_000

_VECTOR_DEFAULTS: dict[str, Any] = {
    storage.LAST_UPDATE.name: 0,
    storage.VALIDATOR_PERMIT.name: False,
    storage.RANK.name: 0,
    storage.TRUST.name: 0,
    storage.VALIDATOR_TRUST.name: 0,
    storage.INCENTIVE.name: 0,
    storage.DIVIDENDS.name: 0,
    storage.ACTIVE.name: True,
    storage.EMISSION.name: 0,
    storage.CONSENSUS.name: 0,
    storage.PRUNING_SCORES.name: 0,
}


def _bits(raw: Any) -> int:
    if raw is None:
        return 0
    return int(raw["bits"]) if isinstance(raw, dict) else int(raw)


class ChainSimulator:
    """Writes consistent chain state and executes staking/balance calls."""

    def __init__(
        self,
        ledger: InMemoryLedger | None = None,
        *,
        fee: int = TRANSACTION_FEE,
        existential_deposit: int = EXISTENTIAL_DEPOSIT,
    ) -> None:
        self.ledger = ledger or InMemoryLedger()
        self.fee = fee
        self.existential_deposit = existential_deposit

    def install(self) -> ChainSimulator:
        self.ledger.register_operation(TRANSFER_KEEP_ALIVE, self.transfer_keep_alive)
        self.ledger.register_operation(ADD_STAKE, self.add_stake)
        self.ledger.register_operation(REMOVE_STAKE, self.remove_stake)
        return self

    # ── Balances ─────────────────────────────────────────────────────────

    def balance(self, address: str) -> int:
        raw = self.ledger.get(storage.ACCOUNT.name, (address,))
        return int(raw["data"]["free"]) if raw else 0

    def _set_balance(self, address: str, free: int) -> None:
        raw = self.ledger.get(storage.ACCOUNT.name, (address,)) or {"nonce": 0, "data": {"free": 0, "reserved": 0}}
        raw = {"nonce": raw.get("nonce", 0), "data": {**raw["data"], "free": free}}
        self.ledger.set(storage.ACCOUNT.name, (address,), raw)

    def _bump_nonce(self, address: str) -> None:
        raw = self.ledger.get(storage.ACCOUNT.name, (address,))
        if raw:
            self.ledger.set(storage.ACCOUNT.name, (address,), {**raw, "nonce": raw.get("nonce", 0) + 1})

    def fund(self, address: str, amount: int) -> None:
        self._set_balance(address, self.balance(address) + amount)

    # ── Subnets and neurons ─────────────────────────────────────────────

    def add_subnet(
        self,
        netuid: int,
        *,
        max_uids: int = 256,
        max_validators: int = 64,
        price: Decimal | int = 1,
    ) -> None:
        ledger = self.ledger
        ledger.set(storage.NETWORKS_ADDED.name, (netuid,), True)
        ledger.set(storage.SUBNETWORK_N.name, (netuid,), 0)
        ledger.set(storage.MAX_ALLOWED_UIDS.name, (netuid,), max_uids)
        ledger.set(storage.MAX_ALLOWED_VALIDATORS.name, (netuid,), max_validators)
        ledger.set(storage.SUBNET_ALPHA_OUT.name, (netuid,), 0)
        ledger.set(storage.SUBNET_ALPHA_IN.name, (netuid,), 0)
        ledger.set(storage.SUBNET_TAO.name, (netuid,), 0)
        ledger.set(storage.PENDING_EMISSION.name, (netuid,), 0)
        for vector in storage.EPOCH_VECTORS:
            ledger.set(vector.name, (netuid,), [])
        self.set_price(netuid, price)

    def set_price(self, netuid: int, price: Decimal | int) -> None:
        with decimal.localcontext() as ctx:
            ctx.prec = EXACT_PRECISION
            sqrt_price = Decimal(price).sqrt()
        self.ledger.set(storage.ALPHA_SQRT_PRICE.name, (netuid,), {"bits": encode(sqrt_price, U64F64)})

    def sqrt_price(self, netuid: int) -> Decimal:
        bits = _bits(self.ledger.get(storage.ALPHA_SQRT_PRICE.name, (netuid,)))
        with decimal.localcontext() as ctx:
            ctx.prec = EXACT_PRECISION
            return Decimal(bits) / Decimal(U64F64.unit)

    def price(self, netuid: int) -> Decimal:
        sqrt_price = self.sqrt_price(netuid)
        with decimal.localcontext() as ctx:
            ctx.prec = EXACT_PRECISION
            return sqrt_price * sqrt_price

    def register_neuron(self, netuid: int, hotkey: str, coldkey: str, *, validator: bool = False) -> int:
        """Append ``hotkey`` as the next uid of ``netuid``; returns the uid."""
        ledger = self.ledger
        uid = ledger.get(storage.SUBNETWORK_N.name, (netuid,), 0)
        if uid >= ledger.get(storage.MAX_ALLOWED_UIDS.name, (netuid,), 0):
            raise ValueError(f"Subnet {netuid} is full")
        if ledger.get(storage.UIDS.name, (netuid, hotkey)) is not None:
            raise ValueError(f"{hotkey} is already registered on subnet {netuid}")

        ledger.set(storage.KEYS.name, (netuid, uid), hotkey)
        ledger.set(storage.UIDS.name, (netuid, hotkey), uid)
        ledger.set(storage.SUBNETWORK_N.name, (netuid,), uid + 1)
        ledger.set(storage.IS_NETWORK_MEMBER.name, (hotkey, netuid), True)
        ledger.set(storage.BLOCK_AT_REGISTRATION.name, (netuid, uid), ledger.block)

        if ledger.get(storage.OWNER.name, (hotkey,)) is None:
            ledger.set(storage.OWNER.name, (hotkey,), coldkey)
            owned = list(ledger.get(storage.OWNED_HOTKEYS.name, (coldkey,), []))
            owned.append(hotkey)
            ledger.set(storage.OWNED_HOTKEYS.name, (coldkey,), owned)

        for vector in storage.EPOCH_VECTORS:
            values = list(ledger.get(vector.name, (netuid,), []))
            values.append(validator if vector is storage.VALIDATOR_PERMIT else _VECTOR_DEFAULTS[vector.name])
            ledger.set(vector.name, (netuid,), values)

        logger.debug("Registered %s as uid %d on subnet %d", hotkey, uid, netuid)
        return uid

    def set_weights(self, netuid: int, uid: int, weights: list[tuple[int, int]]) -> None:
        self.ledger.set(storage.WEIGHTS.name, (netuid, uid), [list(w) for w in weights])

    def set_bonds(self, netuid: int, uid: int, bonds: list[tuple[int, int]]) -> None:
        self.ledger.set(storage.BONDS.name, (netuid, uid), [list(b) for b in bonds])

    # ── Delegation ──────────────────────────────────────────────────────

    def set_children(self, netuid: int, parent: str, children: list[tuple[int, str]]) -> None:
        """Write ChildKeys(parent) and the matching ParentKeys entries."""
        ledger = self.ledger
        for _, old_child in ledger.get(storage.CHILD_KEYS.name, (parent, netuid), []):
            parents = [e for e in ledger.get(storage.PARENT_KEYS.name, (old_child, netuid), []) if e[1] != parent]
            ledger.set(storage.PARENT_KEYS.name, (old_child, netuid), parents)

        ledger.set(storage.CHILD_KEYS.name, (parent, netuid), [[p, c] for p, c in children])
        for proportion, child in children:
            parents = list(ledger.get(storage.PARENT_KEYS.name, (child, netuid), []))
            parents.append([proportion, parent])
            ledger.set(storage.PARENT_KEYS.name, (child, netuid), parents)

    def set_pending_children(
        self, netuid: int, parent: str, children: list[tuple[int, str]], cooldown_block: int,
    ) -> None:
        self.ledger.set(
            storage.PENDING_CHILD_KEYS.name,
            (netuid, parent),
            [[[p, c] for p, c in children], cooldown_block],
        )

    # ── Swap ────────────────────────────────────────────────────────────

    def add_position(
        self,
        netuid: int,
        coldkey: str,
        position_id: int,
        tick_low: int,
        tick_high: int,
        liquidity: int,
    ) -> tuple[int, int]:
        """Open a position and add its implied reserves to the pool."""
        tao, alpha = position_reserves(liquidity, tick_low, tick_high, self.sqrt_price(netuid))
        self.ledger.set(
            storage.POSITIONS.name,
            (netuid, coldkey, position_id),
            {"tick_low": tick_low, "tick_high": tick_high, "liquidity": liquidity},
        )
        tao_in, alpha_in = int(tao), int(alpha)
        self._add(storage.SUBNET_TAO, (netuid,), tao_in)
        self._add(storage.SUBNET_ALPHA_IN, (netuid,), alpha_in)
        return tao_in, alpha_in

    # ── Staking state ───────────────────────────────────────────────────

    def _add(self, storage_map: storage.StorageMap, key: tuple[Any, ...], delta: int) -> int:
        value = self.ledger.get(storage_map.name, key, 0) + delta
        self.ledger.set(storage_map.name, key, value)
        return value

    def stake_of(self, hotkey: str, coldkey: str, netuid: int) -> int:
        share_bits = _bits(self.ledger.get(storage.ALPHA.name, (hotkey, coldkey, netuid)))
        total_bits = _bits(self.ledger.get(storage.TOTAL_HOTKEY_SHARES.name, (hotkey, netuid)))
        if total_bits == 0:
            return 0
        total_alpha = self.ledger.get(storage.TOTAL_HOTKEY_ALPHA.name, (hotkey, netuid), 0)
        return share_bits * total_alpha // total_bits

    def credit_alpha(self, hotkey: str, coldkey: str, netuid: int, alpha: int) -> None:
        """Issue ``alpha`` as new stake of ``coldkey`` on ``hotkey``."""
        ledger = self.ledger
        total_alpha = ledger.get(storage.TOTAL_HOTKEY_ALPHA.name, (hotkey, netuid), 0)
        total_bits = _bits(ledger.get(storage.TOTAL_HOTKEY_SHARES.name, (hotkey, netuid)))
        if total_alpha == 0 or total_bits == 0:
            new_bits = alpha * U64F64.unit
        else:
            new_bits = alpha * total_bits // total_alpha

        share_bits = _bits(ledger.get(storage.ALPHA.name, (hotkey, coldkey, netuid)))
        ledger.set(storage.ALPHA.name, (hotkey, coldkey, netuid), {"bits": share_bits + new_bits})
        ledger.set(storage.TOTAL_HOTKEY_SHARES.name, (hotkey, netuid), {"bits": total_bits + new_bits})
        self._add(storage.TOTAL_HOTKEY_ALPHA, (hotkey, netuid), alpha)
        self._add(storage.SUBNET_ALPHA_OUT, (netuid,), alpha)

        staking = list(ledger.get(storage.STAKING_HOTKEYS.name, (coldkey,), []))
        if hotkey not in staking:
            staking.append(hotkey)
            ledger.set(storage.STAKING_HOTKEYS.name, (coldkey,), staking)

    def debit_alpha(self, hotkey: str, coldkey: str, netuid: int, alpha: int) -> None:
        ledger = self.ledger
        total_alpha = ledger.get(storage.TOTAL_HOTKEY_ALPHA.name, (hotkey, netuid), 0)
        total_bits = _bits(ledger.get(storage.TOTAL_HOTKEY_SHARES.name, (hotkey, netuid)))
        share_bits = _bits(ledger.get(storage.ALPHA.name, (hotkey, coldkey, netuid)))

        if alpha == self.stake_of(hotkey, coldkey, netuid):
            removed_bits = share_bits
        else:
            removed_bits = alpha * total_bits // total_alpha

        remaining = share_bits - removed_bits
        if remaining:
            ledger.set(storage.ALPHA.name, (hotkey, coldkey, netuid), {"bits": remaining})
        else:
            ledger.delete(storage.ALPHA.name, (hotkey, coldkey, netuid))
        ledger.set(storage.TOTAL_HOTKEY_SHARES.name, (hotkey, netuid), {"bits": total_bits - removed_bits})
        self._add(storage.TOTAL_HOTKEY_ALPHA, (hotkey, netuid), -alpha)
        self._add(storage.SUBNET_ALPHA_OUT, (netuid,), -alpha)

    def emit_pending(self, netuid: int, alpha: int) -> None:
        """Accrue ``alpha`` of pending emission (already counted in AlphaOut)."""
        self._add(storage.PENDING_EMISSION, (netuid,), alpha)
        self._add(storage.SUBNET_ALPHA_OUT, (netuid,), alpha)

    # ── Operations ──────────────────────────────────────────────────────

    def _require_subnet(self, netuid: int) -> None:
        if not self.ledger.get(storage.NETWORKS_ADDED.name, (netuid,), False):
            raise SubmissionRejected("SubtensorModule", "SubnetNotExists", "The subnet does not exist.")

    def transfer_keep_alive(self, ledger: InMemoryLedger, args: dict[str, Any], signer: Actor) -> list[dict[str, Any]]:
        dest, value = args["dest"], int(args["value"])
        free = self.balance(signer.address)
        if value + self.fee > free:
            raise SubmissionRejected("Balances", "InsufficientBalance", "Balance too low to send value.")
        if free - value - self.fee < self.existential_deposit:
            raise SubmissionRejected(
                "Balances", "Expendability",
                "Value too low to create account due to existential deposit.",
            )
        self._set_balance(signer.address, free - value - self.fee)
        self.fund(dest, value)
        self._bump_nonce(signer.address)
        return [{"event": "Balances.Transfer", "from": signer.address, "to": dest, "amount": value}]

    def add_stake(self, ledger: InMemoryLedger, args: dict[str, Any], signer: Actor) -> list[dict[str, Any]]:
        hotkey, netuid, amount = args["hotkey"], int(args["netuid"]), int(args["amount_staked"])
        self._require_subnet(netuid)
        if ledger.get(storage.OWNER.name, (hotkey,)) is None:
            raise SubmissionRejected(
                "SubtensorModule", "HotKeyAccountNotExists", "The hotkey does not exist.",
            )
        free = self.balance(signer.address)
        if amount + self.fee > free:
            raise SubmissionRejected(
                "SubtensorModule", "NotEnoughBalanceToStake",
                "The caller does not have enough balance to stake.",
            )
        alpha = int(Decimal(amount) / self.price(netuid))
        if alpha == 0:
            raise SubmissionRejected(
                "SubtensorModule", "AmountTooLow", "Stake amount is too low.",
            )

        self._set_balance(signer.address, free - amount - self.fee)
        self.credit_alpha(hotkey, signer.address, netuid, alpha)
        self._bump_nonce(signer.address)
        return [{
            "event": "SubtensorModule.StakeAdded",
            "coldkey": signer.address, "hotkey": hotkey, "netuid": netuid,
            "tao": amount, "alpha": alpha,
        }]

    def remove_stake(self, ledger: InMemoryLedger, args: dict[str, Any], signer: Actor) -> list[dict[str, Any]]:
        hotkey, netuid, amount = args["hotkey"], int(args["netuid"]), int(args["amount_unstaked"])
        self._require_subnet(netuid)
        if amount == 0 or amount > self.stake_of(hotkey, signer.address, netuid):
            raise SubmissionRejected(
                "SubtensorModule", "NotEnoughStakeToWithdraw",
                "The caller is requesting removing more stake than there exists.",
            )

        tao = int(Decimal(amount) * self.price(netuid))
        self.debit_alpha(hotkey, signer.address, netuid, amount)
        self.fund(signer.address, tao)
        self._bump_nonce(signer.address)
        return [{
            "event": "SubtensorModule.StakeRemoved",
            "coldkey": signer.address, "hotkey": hotkey, "netuid": netuid,
            "tao": tao, "alpha": amount,
        }]
