"""Contract registry and weighted random selection."""

from __future__ import annotations

from typing import Iterator, Mapping

from ledgerfuzz.contracts.base import Contract
from ledgerfuzz.contracts.stake import StakeContract
from ledgerfuzz.contracts.transfer import TransferContract
from ledgerfuzz.contracts.unstake import UnstakeContract
from ledgerfuzz.core.config import Settings, get_settings
from ledgerfuzz.core.sampling import RandomSampler
from ledgerfuzz.ledger.actors import ActorRegistry
from ledgerfuzz.ledger.interfaces import LedgerMutation, LedgerQuery


class ContractRegistry:
    """Contracts by name, in registration order."""

    def __init__(self) -> None:
        self._contracts: dict[str, Contract] = {}

    def register(self, contract: Contract) -> Contract:
        if not contract.name:
            raise ValueError("Contract has no name")
        if contract.name in self._contracts:
            raise ValueError(f"Contract {contract.name!r} is already registered")
        self._contracts[contract.name] = contract
        return contract

    def get(self, name: str) -> Contract:
        try:
            return self._contracts[name]
        except KeyError:
            raise KeyError(f"Unknown contract {name!r}") from None

    def names(self) -> list[str]:
        return list(self._contracts)

    def __contains__(self, name: object) -> bool:
        return name in self._contracts

    def __iter__(self) -> Iterator[Contract]:
        return iter(self._contracts.values())

    def __len__(self) -> int:
        return len(self._contracts)


class ContractSelector:
    """Weighted choice among registered contracts.

    Contracts absent from ``weights`` are never picked; weights naming an
    unregistered contract are rejected up front.
    """

    def __init__(
        self,
        registry: ContractRegistry,
        weights: Mapping[str, float],
        sampler: RandomSampler | None = None,
    ) -> None:
        unknown = [name for name in weights if name not in registry]
        if unknown:
            raise KeyError(f"Weights given for unregistered contracts: {', '.join(unknown)}")
        self.registry = registry
        self.sampler = sampler or RandomSampler()
        self._alternatives = [(float(weight), registry.get(name)) for name, weight in weights.items()]

    @property
    def alternatives(self) -> list[tuple[float, Contract]]:
        return list(self._alternatives)

    def pick(self) -> Contract:
        return self.sampler.weighted_select(self._alternatives)


def build_default_contracts(
    query: LedgerQuery,
    mutation: LedgerMutation,
    actors: ActorRegistry,
    settings: Settings | None = None,
) -> ContractRegistry:
    """Registry with the Transfer, Stake and Unstake contracts."""
    settings = settings or get_settings()
    registry = ContractRegistry()
    page_size = settings.scan_page_size
    registry.register(TransferContract(query, mutation, actors, page_size=page_size))
    registry.register(StakeContract(query, mutation, actors, page_size=page_size))
    registry.register(UnstakeContract(
        query, mutation, actors,
        page_size=page_size,
        balance_tolerance_divisor=settings.unstake_balance_tolerance_divisor,
    ))
    return registry
