"""Staking accounting rules.

``TotalHotkeyAlpha`` and ``Alpha`` are keyed hotkey-first, so these rules
scan each map once across all subnets and group by netuid rather than
partitioning per subnet.
"""

from __future__ import annotations

import decimal
from collections import defaultdict
from decimal import Decimal

from ledgerfuzz.core.fixed_point import EXACT_PRECISION, U64F64, FixedPointValue
from ledgerfuzz.core.tolerance import approx_equal_abs
from ledgerfuzz.core.types import Violation
from ledgerfuzz.invariants.algorithms import check_conservation
from ledgerfuzz.invariants.base import Rule
from ledgerfuzz.ledger import queries, storage
from ledgerfuzz.ledger.snapshot import StorageSnapshot

DEFAULT_SHARE_TOLERANCE_DIVISOR = 1000


class AlphaOutConservation(Rule):
    rule_id = "staking.alpha_out"
    description = "sum_h TotalHotkeyAlpha(h, n) + PendingEmission(n) == SubnetAlphaOut(n)"

    async def check(self, snapshot: StorageSnapshot) -> list[Violation]:
        by_netuid: dict[int, list[int]] = defaultdict(list)
        async for (_, netuid), alpha in snapshot.entries(storage.TOTAL_HOTKEY_ALPHA):
            by_netuid[netuid].append(alpha)

        violations = []
        for netuid in await queries.subnets_available(snapshot):
            pending = await snapshot.read(storage.PENDING_EMISSION, netuid)
            alpha_out = await snapshot.read(storage.SUBNET_ALPHA_OUT, netuid)
            finding = check_conservation(
                by_netuid.get(netuid, []), alpha_out, pending,
                label=f"SubnetAlphaOut({netuid})",
            )
            if finding is not None:
                violations.append(self.violation(
                    f"TotalHotkeyAlpha(*, {netuid}) + PendingEmission({netuid}): {finding.message}",
                    (netuid,), netuid,
                ))
        return violations


class StakingHotkeyIndex(Rule):
    rule_id = "staking.hotkey_index"
    description = "A non-zero Alpha(h, c, n) implies StakingHotkeys(c) contains h"

    async def check(self, snapshot: StorageSnapshot) -> list[Violation]:
        staking: dict[str, frozenset[str]] = {}
        violations = []
        async for (hotkey, coldkey, netuid), share in snapshot.entries(storage.ALPHA):
            if share.is_zero():
                continue
            if coldkey not in staking:
                staking[coldkey] = frozenset(await snapshot.read(storage.STAKING_HOTKEYS, coldkey))
            if hotkey not in staking[coldkey]:
                violations.append(self.violation(
                    f"StakingHotkeys({coldkey}) does not include hotkey {hotkey} "
                    f"(present in Alpha with netuid {netuid})",
                    (hotkey, coldkey, netuid), netuid,
                ))
        return violations


class ShareTotals(Rule):
    """Per-coldkey shares add up to the hotkey's share total.

    Shares are summed exactly from their U64F64 bit patterns; the comparison
    still allows ``expected / tolerance_divisor`` because the chain rounds
    each share independently.
    """

    rule_id = "staking.share_totals"
    description = "sum_c Alpha(h, c, n) ~= TotalHotkeyShares(h, n)"

    def __init__(self, tolerance_divisor: int = DEFAULT_SHARE_TOLERANCE_DIVISOR) -> None:
        if tolerance_divisor <= 0:
            raise ValueError("tolerance_divisor must be positive")
        self.tolerance_divisor = tolerance_divisor

    async def check(self, snapshot: StorageSnapshot) -> list[Violation]:
        share_bits: dict[tuple[str, int], int] = defaultdict(int)
        async for (hotkey, _, netuid), share in snapshot.entries(storage.ALPHA):
            share_bits[(hotkey, netuid)] += share.bits

        violations = []
        for (hotkey, netuid), bits in share_bits.items():
            expected = FixedPointValue(bits, U64F64).to_decimal()
            total = await snapshot.read(storage.TOTAL_HOTKEY_SHARES, hotkey, netuid)
            actual = total.to_decimal() if total is not None else Decimal(0)
            with decimal.localcontext() as ctx:
                ctx.prec = EXACT_PRECISION
                epsilon = expected / self.tolerance_divisor
                holds = approx_equal_abs(actual, expected, epsilon)
            if not holds:
                violations.append(self.violation(
                    f"TotalHotkeyShares({hotkey}, {netuid}) != sum Alpha({hotkey}, *, {netuid}) "
                    f"(actual={actual} expected={expected})",
                    (hotkey, netuid), netuid,
                ))
        return violations
