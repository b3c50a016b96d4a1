"""Typed read helpers shared by the contract library.

Each helper takes a ``StorageSnapshot`` and returns plain Python values.
Amounts are integers in the chain's smallest unit; prices are ``Decimal``.
"""

from __future__ import annotations

import decimal
from decimal import Decimal

from ledgerfuzz.core.config import ActorRole
from ledgerfuzz.core.fixed_point import EXACT_PRECISION
from ledgerfuzz.ledger import storage
from ledgerfuzz.ledger.actors import Actor, ActorRegistry
from ledgerfuzz.ledger.snapshot import StorageSnapshot

PRICE_SCALE = 10**9


async def subnets_available(snapshot: StorageSnapshot) -> list[int]:
    """Netuids whose ``NetworksAdded`` flag is set, ascending."""
    added = await snapshot.collect(storage.NETWORKS_ADDED)
    return sorted(key[0] for key, flag in added.items() if flag)


async def validator_hotkeys(snapshot: StorageSnapshot, netuid: int) -> list[str]:
    """Hotkeys of every uid holding a validator permit on ``netuid``."""
    permits = list(await snapshot.read(storage.VALIDATOR_PERMIT, netuid))
    if not permits:
        # A missing vector means no permits for the registered uids.
        size = await snapshot.read(storage.SUBNETWORK_N, netuid)
        permits = [False] * size

    hotkeys = []
    for uid, permitted in enumerate(permits):
        if not permitted:
            continue
        hotkey = await snapshot.read(storage.KEYS, netuid, uid)
        if hotkey:
            hotkeys.append(hotkey)
    return hotkeys


async def free_balance(snapshot: StorageSnapshot, address: str) -> int:
    info = await snapshot.read(storage.ACCOUNT, address)
    return info.free if info is not None else 0


async def stake_of(snapshot: StorageSnapshot, netuid: int, coldkey: str, hotkey: str) -> int:
    """Alpha owned by ``coldkey`` through ``hotkey``.

    ``Alpha`` holds the coldkey's share of the hotkey's pool, so the stake is
    ``share * TotalHotkeyAlpha / TotalHotkeyShares``, computed on the raw
    U64F64 bit patterns and floored.
    """
    share = await snapshot.read(storage.ALPHA, hotkey, coldkey, netuid)
    total_shares = await snapshot.read(storage.TOTAL_HOTKEY_SHARES, hotkey, netuid)
    if share is None or total_shares is None or total_shares.is_zero():
        return 0
    hotkey_alpha = await snapshot.read(storage.TOTAL_HOTKEY_ALPHA, hotkey, netuid)
    return share.bits * hotkey_alpha // total_shares.bits


async def alpha_price(snapshot: StorageSnapshot, netuid: int) -> Decimal:
    """TAO per alpha: the square of the pool's sqrt price."""
    sqrt_price = await snapshot.require(storage.ALPHA_SQRT_PRICE, netuid)
    with decimal.localcontext() as ctx:
        ctx.prec = EXACT_PRECISION
        value = sqrt_price.to_decimal()
        return value * value


async def hotkeys_staked_by(snapshot: StorageSnapshot, coldkey: str, netuid: int) -> list[str]:
    """Hotkeys from ``StakingHotkeys(coldkey)`` with non-zero stake on ``netuid``."""
    hotkeys = []
    for hotkey in await snapshot.read(storage.STAKING_HOTKEYS, coldkey):
        if await stake_of(snapshot, netuid, coldkey, hotkey) > 0:
            hotkeys.append(hotkey)
    return hotkeys


async def coldkeys_with_stake(
    snapshot: StorageSnapshot,
    registry: ActorRegistry,
    netuid: int,
) -> list[Actor]:
    """Registry coldkeys that hold stake on ``netuid`` through any hotkey."""
    out = []
    for actor in registry.with_roles(ActorRole.COLDKEY):
        if actor.address and await hotkeys_staked_by(snapshot, actor.address, netuid):
            out.append(actor)
    return out


def _scaled_price(price: Decimal | float) -> int:
    return int(Decimal(str(price)) * PRICE_SCALE)


def mul_amount_by_price(amount: int, price: Decimal | float) -> int:
    """``amount * price`` with the price truncated to nine decimals."""
    return amount * _scaled_price(price) // PRICE_SCALE


def div_amount_by_price(amount: int, price: Decimal | float) -> int:
    """``amount / price`` with the price truncated to nine decimals."""
    scaled = _scaled_price(price)
    if scaled == 0:
        raise ZeroDivisionError("Price rounds to zero at nine decimals")
    return amount * PRICE_SCALE // scaled
