"""Add stake from a coldkey to a validator hotkey."""

from __future__ import annotations

from typing import Any

from ledgerfuzz.contracts.base import LedgerContract, ParameterDescriptor
from ledgerfuzz.core.config import ActorRole
from ledgerfuzz.ledger import queries
from ledgerfuzz.ledger.calls import ADD_STAKE


class StakeContract(LedgerContract):
    """``SubtensorModule.add_stake`` of ``[1, balance]`` to a validator on a subnet.

    The sender's balance must drop by at least the amount and the stake it
    holds through the hotkey must grow.
    """

    name = "Stake"
    scope = "add_stake"
    parameter_count = 4

    async def describe_parameter(self, index: int, chosen: dict[str, Any]) -> ParameterDescriptor:
        if index == 0:
            stakers = [a for a in self.actors.with_roles(ActorRole.COLDKEY) if a.address and a.can_sign]
            return ParameterDescriptor.choice("actor", stakers)
        if index == 1:
            return ParameterDescriptor.choice("netuid", await queries.subnets_available(self.snapshot()))
        if index == 2:
            hotkeys = await queries.validator_hotkeys(self.snapshot(), chosen["netuid"])
            return ParameterDescriptor.choice("hotkey", hotkeys)
        if index == 3:
            balance = await queries.free_balance(self.snapshot(), chosen["actor"].address)
            return ParameterDescriptor.span("amount", 1, balance)
        raise IndexError(f"{self.name} has {self.parameter_count} parameters, asked for #{index}")

    async def precondition(self, params: dict[str, Any]) -> dict[str, Any]:
        snapshot = self.snapshot()
        coldkey = params["actor"].address
        return {
            "sender_balance_before": await queries.free_balance(snapshot, coldkey),
            "sender_stake_before": await queries.stake_of(snapshot, params["netuid"], coldkey, params["hotkey"]),
            "alpha_price": await queries.alpha_price(snapshot, params["netuid"]),
        }

    async def action(self, params: dict[str, Any]) -> dict[str, Any]:
        amount = int(params["amount"])
        confirmation = await self.mutation.submit(
            ADD_STAKE,
            {"hotkey": params["hotkey"], "netuid": params["netuid"], "amount_staked": amount},
            params["actor"],
        )
        return {"amount": amount, "block": confirmation.block}

    async def postcondition(self, params: dict[str, Any], pre: dict[str, Any], action_result: dict[str, Any]) -> bool:
        amount = action_result["amount"]
        snapshot = self.snapshot()
        coldkey = params["actor"].address

        balance_after = await queries.free_balance(snapshot, coldkey)
        balance_ok = pre["sender_balance_before"] - balance_after >= amount

        stake_after = await queries.stake_of(snapshot, params["netuid"], coldkey, params["hotkey"])
        stake_delta = stake_after - pre["sender_stake_before"]
        return balance_ok and (stake_delta > 0 or amount == 0)
