"""Remove stake a configured coldkey holds through one of its hotkeys."""

from __future__ import annotations

from typing import Any

from ledgerfuzz.contracts.base import LedgerContract, ParameterDescriptor
from ledgerfuzz.core.tolerance import approx_equal_abs
from ledgerfuzz.ledger import queries
from ledgerfuzz.ledger.calls import REMOVE_STAKE

DEFAULT_BALANCE_TOLERANCE_DIVISOR = 2


class UnstakeContract(LedgerContract):
    """``SubtensorModule.remove_stake`` of ``[1, stake]`` alpha.

    The stake must drop by exactly the amount, and the balance must grow by
    about ``amount * price`` (within ``expected / balance_tolerance_divisor``).
    """

    name = "Unstake"
    scope = "remove_stake"
    parameter_count = 4

    def __init__(self, *args: Any, balance_tolerance_divisor: int = DEFAULT_BALANCE_TOLERANCE_DIVISOR, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        if balance_tolerance_divisor <= 0:
            raise ValueError("balance_tolerance_divisor must be positive")
        self.balance_tolerance_divisor = balance_tolerance_divisor

    async def describe_parameter(self, index: int, chosen: dict[str, Any]) -> ParameterDescriptor:
        if index == 0:
            return ParameterDescriptor.choice("netuid", await queries.subnets_available(self.snapshot()))
        if index == 1:
            holders = await queries.coldkeys_with_stake(self.snapshot(), self.actors, chosen["netuid"])
            return ParameterDescriptor.choice("actor", [a for a in holders if a.can_sign])
        if index == 2:
            hotkeys = await queries.hotkeys_staked_by(self.snapshot(), chosen["actor"].address, chosen["netuid"])
            return ParameterDescriptor.choice("hotkey", hotkeys)
        if index == 3:
            stake = await queries.stake_of(
                self.snapshot(), chosen["netuid"], chosen["actor"].address, chosen["hotkey"],
            )
            return ParameterDescriptor.span("amount", 1, stake)
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
            REMOVE_STAKE,
            {"hotkey": params["hotkey"], "netuid": params["netuid"], "amount_unstaked": amount},
            params["actor"],
        )
        return {"amount": amount, "block": confirmation.block}

    async def postcondition(self, params: dict[str, Any], pre: dict[str, Any], action_result: dict[str, Any]) -> bool:
        amount = action_result["amount"]
        snapshot = self.snapshot()
        coldkey = params["actor"].address

        expected_balance_delta = queries.mul_amount_by_price(amount, pre["alpha_price"])
        balance_delta = await queries.free_balance(snapshot, coldkey) - pre["sender_balance_before"]

        stake_after = await queries.stake_of(snapshot, params["netuid"], coldkey, params["hotkey"])
        stake_delta = pre["sender_stake_before"] - stake_after

        return stake_delta == amount and approx_equal_abs(
            expected_balance_delta,
            balance_delta,
            expected_balance_delta // self.balance_tolerance_divisor,
        )
