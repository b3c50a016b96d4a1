"""Catalog of storage invariant rules."""

from ledgerfuzz.invariants.rules.children import ChildIndex, ChildKeysAcyclic, ChildProportions, ParentIndex
from ledgerfuzz.invariants.rules.epoch import EpochTopology
from ledgerfuzz.invariants.rules.hotkeys import HotkeyMembership, HotkeyOwnership
from ledgerfuzz.invariants.rules.keys_uids import KeysUidsBijection, SubnetSizeBound
from ledgerfuzz.invariants.rules.staking import AlphaOutConservation, ShareTotals, StakingHotkeyIndex
from ledgerfuzz.invariants.rules.swap import SwapLiquidity
from ledgerfuzz.invariants.rules.validators import ValidatorPermitBound
from ledgerfuzz.invariants.rules.weights import WeightsBounds

__all__ = [
    "AlphaOutConservation",
    "ChildIndex",
    "ChildKeysAcyclic",
    "ChildProportions",
    "EpochTopology",
    "HotkeyMembership",
    "HotkeyOwnership",
    "KeysUidsBijection",
    "ParentIndex",
    "ShareTotals",
    "StakingHotkeyIndex",
    "SubnetSizeBound",
    "SwapLiquidity",
    "ValidatorPermitBound",
    "WeightsBounds",
]
