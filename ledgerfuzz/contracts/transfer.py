"""Balance transfer between two configured coldkeys."""

from __future__ import annotations

from typing import Any

from ledgerfuzz.contracts.base import LedgerContract, ParameterDescriptor
from ledgerfuzz.core.config import ActorRole
from ledgerfuzz.ledger import queries
from ledgerfuzz.ledger.calls import TRANSFER_KEEP_ALIVE

MAX_TRANSFER_FLOOR = 100_000


class TransferContract(LedgerContract):
    """``Balances.transfer_keep_alive`` of up to a tenth of the sender's balance.

    The recipient must be credited exactly the amount; the sender must be
    debited at least the amount (fees make it larger).
    """

    name = "Transfer"
    scope = "balances pallet"
    parameter_count = 3

    async def describe_parameter(self, index: int, chosen: dict[str, Any]) -> ParameterDescriptor:
        if index == 0:
            senders = [a for a in self.actors.with_roles(ActorRole.COLDKEY) if a.address and a.can_sign]
            return ParameterDescriptor.choice("actor", senders)
        if index == 1:
            sender = chosen["actor"]
            recipients = [
                address for address in self.actors.addresses(ActorRole.COLDKEY)
                if address != sender.address
            ]
            return ParameterDescriptor.choice("recipient", recipients)
        if index == 2:
            balance = await queries.free_balance(self.snapshot(), chosen["actor"].address)
            maximum = balance // 10
            return ParameterDescriptor.span("amount", min(maximum, MAX_TRANSFER_FLOOR), maximum)
        raise IndexError(f"{self.name} has {self.parameter_count} parameters, asked for #{index}")

    async def precondition(self, params: dict[str, Any]) -> dict[str, Any]:
        snapshot = self.snapshot()
        return {
            "sender_balance_before": await queries.free_balance(snapshot, params["actor"].address),
            "recipient_balance_before": await queries.free_balance(snapshot, params["recipient"]),
        }

    async def action(self, params: dict[str, Any]) -> dict[str, Any]:
        amount = int(params["amount"])
        confirmation = await self.mutation.submit(
            TRANSFER_KEEP_ALIVE,
            {"dest": params["recipient"], "value": amount},
            params["actor"],
        )
        return {"amount": amount, "block": confirmation.block}

    async def postcondition(self, params: dict[str, Any], pre: dict[str, Any], action_result: dict[str, Any]) -> bool:
        amount = action_result["amount"]
        snapshot = self.snapshot()
        sender_after = await queries.free_balance(snapshot, params["actor"].address)
        recipient_after = await queries.free_balance(snapshot, params["recipient"])

        sender_delta = pre["sender_balance_before"] - sender_after
        recipient_delta = recipient_after - pre["recipient_balance_before"]
        return recipient_delta == amount and sender_delta >= amount
