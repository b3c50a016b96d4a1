"""Randomized, staged ledger contracts.

Each contract picks its parameters from live ledger state, captures a
precondition, submits one mutation and verifies the resulting state delta.
"""

from ledgerfuzz.contracts.base import (
    Contract,
    ContractRun,
    ContractStage,
    FunctionContract,
    LedgerContract,
    ParameterDescriptor,
    ParameterKind,
)
from ledgerfuzz.contracts.runner import ContractRunner
from ledgerfuzz.contracts.selector import ContractRegistry, ContractSelector, build_default_contracts
from ledgerfuzz.contracts.stake import StakeContract
from ledgerfuzz.contracts.transfer import TransferContract
from ledgerfuzz.contracts.unstake import UnstakeContract

__all__ = [
    "Contract",
    "ContractRegistry",
    "ContractRun",
    "ContractRunner",
    "ContractSelector",
    "ContractStage",
    "FunctionContract",
    "LedgerContract",
    "ParameterDescriptor",
    "ParameterKind",
    "StakeContract",
    "TransferContract",
    "UnstakeContract",
    "build_default_contracts",
]
