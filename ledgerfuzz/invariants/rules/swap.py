"""Swap pool reserves match the liquidity positions backing them."""

from __future__ import annotations

import decimal
from decimal import Decimal
from typing import Any

from ledgerfuzz.core.fixed_point import EXACT_PRECISION
from ledgerfuzz.core.tolerance import approx_equal_rel
from ledgerfuzz.core.types import Violation
from ledgerfuzz.invariants.algorithms import position_reserves
from ledgerfuzz.invariants.base import DEFAULT_PARTITION_CONCURRENCY, PartitionedRule
from ledgerfuzz.ledger import storage
from ledgerfuzz.ledger.snapshot import StorageSnapshot

DEFAULT_LIQUIDITY_TOLERANCE = Decimal("0.001")


class SwapLiquidity(PartitionedRule):
    """Implied reserves of all positions ~= the pool's recorded reserves.

    Each position contributes ``L * (sp - sa)`` TAO and
    ``L * (sb - sp) / (sp * sb)`` alpha, with ``sp`` the pool sqrt price
    clamped into the position's ``[sa, sb]``. Subnets without positions are
    skipped.
    """

    rule_id = "swap.liquidity"
    description = "Sum of position reserves ~= SubnetTAO / SubnetAlphaIn"

    def __init__(
        self,
        rel_tolerance: Decimal = DEFAULT_LIQUIDITY_TOLERANCE,
        max_concurrency: int = DEFAULT_PARTITION_CONCURRENCY,
    ) -> None:
        super().__init__(max_concurrency)
        self.rel_tolerance = Decimal(rel_tolerance)

    async def check_partition(self, snapshot: StorageSnapshot, partition: Any) -> list[Violation]:
        netuid = partition
        positions = await snapshot.collect(storage.POSITIONS, netuid)
        if not positions:
            return []

        sqrt_price = (await snapshot.require(storage.ALPHA_SQRT_PRICE, netuid)).to_decimal()
        with decimal.localcontext() as ctx:
            ctx.prec = EXACT_PRECISION
            implied_tao = Decimal(0)
            implied_alpha = Decimal(0)
            for position in positions.values():
                tao, alpha = position_reserves(
                    position.liquidity, position.tick_low, position.tick_high, sqrt_price,
                )
                implied_tao += tao
                implied_alpha += alpha

            violations = []
            for storage_map, implied in (
                (storage.SUBNET_TAO, implied_tao),
                (storage.SUBNET_ALPHA_IN, implied_alpha),
            ):
                recorded = Decimal(await snapshot.read(storage_map, netuid))
                if not approx_equal_rel(recorded, implied, self.rel_tolerance):
                    violations.append(self.violation(
                        f"{storage_map.name}({netuid}) = {recorded} but {len(positions)} positions "
                        f"imply {implied:.6f}",
                        (netuid,), netuid,
                    ))
        return violations
