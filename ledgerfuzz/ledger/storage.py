"""Catalog of the storage maps the harness reads.

Each ``StorageMap`` names its key dimensions (which also fixes its arity:
single, double or triple key) and the typed decoder for its values.
``default`` is what a value-query map yields for an absent key; option-query
maps keep ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from ledgerfuzz.ledger import fields


@dataclass(frozen=True)
class StorageMap:
    name: str
    keys: tuple[str, ...]
    decode: Callable[[Any], Any] = fields.opaque
    default: Any = None
    pallet: str = "SubtensorModule"

    @property
    def arity(self) -> int:
        return len(self.keys)

    @property
    def qualified_name(self) -> str:
        return f"{self.pallet}.{self.name}"

    def __str__(self) -> str:
        return self.name


_VEC_U16 = fields.vec(fields.u16)
_VEC_U64 = fields.vec(fields.u64)
_VEC_BOOL = fields.vec(fields.boolean)
_VEC_ACCOUNT = fields.vec(fields.account)
_ENDPOINT = fields.option(fields.opaque)

# ── System / balances ────────────────────────────────────────────────────────

ACCOUNT = StorageMap("Account", ("account",), fields.account_info, pallet="System")

# ── Subnet registry ─────────────────────────────────────────────────────────

NETWORKS_ADDED = StorageMap("NetworksAdded", ("netuid",), fields.boolean, default=False)
SUBNETWORK_N = StorageMap("SubnetworkN", ("netuid",), fields.u16, default=0)
MAX_ALLOWED_UIDS = StorageMap("MaxAllowedUids", ("netuid",), fields.u16, default=0)
MAX_ALLOWED_VALIDATORS = StorageMap("MaxAllowedValidators", ("netuid",), fields.u16, default=0)

# ── Neurons ──────────────────────────────────────────────────────────────────

KEYS = StorageMap("Keys", ("netuid", "uid"), fields.account)
UIDS = StorageMap("Uids", ("netuid", "hotkey"), fields.u16)
OWNER = StorageMap("Owner", ("hotkey",), fields.account)
OWNED_HOTKEYS = StorageMap("OwnedHotkeys", ("coldkey",), _VEC_ACCOUNT, default=())
IS_NETWORK_MEMBER = StorageMap("IsNetworkMember", ("hotkey", "netuid"), fields.boolean, default=False)
AXONS = StorageMap("Axons", ("netuid", "hotkey"), _ENDPOINT)
NEURON_CERTIFICATES = StorageMap("NeuronCertificates", ("netuid", "hotkey"), _ENDPOINT)
PROMETHEUS = StorageMap("Prometheus", ("netuid", "hotkey"), _ENDPOINT)
BLOCK_AT_REGISTRATION = StorageMap("BlockAtRegistration", ("netuid", "uid"), fields.u64, default=0)

# ── Epoch vectors (one entry per uid) ────────────────────────────────────────

LAST_UPDATE = StorageMap("LastUpdate", ("netuid",), _VEC_U64, default=())
VALIDATOR_PERMIT = StorageMap("ValidatorPermit", ("netuid",), _VEC_BOOL, default=())
RANK = StorageMap("Rank", ("netuid",), _VEC_U16, default=())
TRUST = StorageMap("Trust", ("netuid",), _VEC_U16, default=())
VALIDATOR_TRUST = StorageMap("ValidatorTrust", ("netuid",), _VEC_U16, default=())
INCENTIVE = StorageMap("Incentive", ("netuid",), _VEC_U16, default=())
DIVIDENDS = StorageMap("Dividends", ("netuid",), _VEC_U16, default=())
ACTIVE = StorageMap("Active", ("netuid",), _VEC_BOOL, default=())
EMISSION = StorageMap("Emission", ("netuid",), _VEC_U64, default=())
CONSENSUS = StorageMap("Consensus", ("netuid",), _VEC_U16, default=())
PRUNING_SCORES = StorageMap("PruningScores", ("netuid",), _VEC_U16, default=())

EPOCH_VECTORS = (
    LAST_UPDATE,
    VALIDATOR_PERMIT,
    RANK,
    TRUST,
    VALIDATOR_TRUST,
    INCENTIVE,
    DIVIDENDS,
    ACTIVE,
    EMISSION,
    CONSENSUS,
    PRUNING_SCORES,
)

WEIGHTS = StorageMap("Weights", ("netuid", "uid"), fields.uid_weights, default=())
BONDS = StorageMap("Bonds", ("netuid", "uid"), fields.uid_weights, default=())

# ── Staking ──────────────────────────────────────────────────────────────────

ALPHA = StorageMap("Alpha", ("hotkey", "coldkey", "netuid"), fields.u64f64)
TOTAL_HOTKEY_ALPHA = StorageMap("TotalHotkeyAlpha", ("hotkey", "netuid"), fields.u64, default=0)
TOTAL_HOTKEY_SHARES = StorageMap("TotalHotkeyShares", ("hotkey", "netuid"), fields.u64f64)
STAKING_HOTKEYS = StorageMap("StakingHotkeys", ("coldkey",), _VEC_ACCOUNT, default=())
PENDING_EMISSION = StorageMap("PendingEmission", ("netuid",), fields.u64, default=0)
SUBNET_ALPHA_OUT = StorageMap("SubnetAlphaOut", ("netuid",), fields.u64, default=0)
SUBNET_ALPHA_IN = StorageMap("SubnetAlphaIn", ("netuid",), fields.u64, default=0)
SUBNET_TAO = StorageMap("SubnetTAO", ("netuid",), fields.u64, default=0)

# ── Delegation (parent / child hotkeys) ─────────────────────────────────────

CHILD_KEYS = StorageMap("ChildKeys", ("parent", "netuid"), fields.weighted_edges, default=())
PARENT_KEYS = StorageMap("ParentKeys", ("child", "netuid"), fields.weighted_edges, default=())
PENDING_CHILD_KEYS = StorageMap("PendingChildKeys", ("netuid", "parent"), fields.pending_children)

# ── Swap ─────────────────────────────────────────────────────────────────────

ALPHA_SQRT_PRICE = StorageMap("AlphaSqrtPrice", ("netuid",), fields.u64f64, pallet="Swap")
POSITIONS = StorageMap("Positions", ("netuid", "coldkey", "position_id"), fields.position, pallet="Swap")


CATALOG: dict[str, StorageMap] = {
    m.name: m
    for m in (
        ACCOUNT,
        NETWORKS_ADDED,
        SUBNETWORK_N,
        MAX_ALLOWED_UIDS,
        MAX_ALLOWED_VALIDATORS,
        KEYS,
        UIDS,
        OWNER,
        OWNED_HOTKEYS,
        IS_NETWORK_MEMBER,
        AXONS,
        NEURON_CERTIFICATES,
        PROMETHEUS,
        BLOCK_AT_REGISTRATION,
        *EPOCH_VECTORS,
        WEIGHTS,
        BONDS,
        ALPHA,
        TOTAL_HOTKEY_ALPHA,
        TOTAL_HOTKEY_SHARES,
        STAKING_HOTKEYS,
        PENDING_EMISSION,
        SUBNET_ALPHA_OUT,
        SUBNET_ALPHA_IN,
        SUBNET_TAO,
        CHILD_KEYS,
        PARENT_KEYS,
        PENDING_CHILD_KEYS,
        ALPHA_SQRT_PRICE,
        POSITIONS,
    )
}


def resolve(map_ref: StorageMap | str) -> StorageMap:
    """Look up a map by name; unknown names get an untyped single-use entry."""
    if isinstance(map_ref, StorageMap):
        return map_ref
    known = CATALOG.get(map_ref)
    if known is not None:
        return known
    return StorageMap(map_ref, ())
