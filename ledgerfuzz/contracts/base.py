"""Contract model: parameter descriptors, stages, run records, base classes.

A contract is one ledger-mutating operation driven through a fixed
pipeline::

    NOT_STARTED -> PARAMETER_SELECTION -> PRECONDITION -> ACTION -> POSTCONDITION -> DONE

Parameters are described one at a time, each descriptor computed from the
values already chosen (the hotkey list depends on the chosen subnet, the
amount range on the chosen actor's balance...). The precondition captures
the fields the action will change, the action submits the mutation, and
the postcondition re-reads those fields and returns a verdict.
"""

from __future__ import annotations

import enum
import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Awaitable, Callable, Sequence, Union

from ledgerfuzz.core.errors import StageError
from ledgerfuzz.ledger.actors import Actor, ActorRegistry
from ledgerfuzz.ledger.interfaces import LedgerMutation, LedgerQuery
from ledgerfuzz.ledger.scanner import DEFAULT_PAGE_SIZE
from ledgerfuzz.ledger.snapshot import StorageSnapshot


# ── Parameters ───────────────────────────────────────────────────────────────


class ParameterKind(str, enum.Enum):
    LIST = "list"
    RANGE = "range"


@dataclass(frozen=True)
class ParameterDescriptor:
    """How to pick one named parameter.

    ``LIST`` picks from ``values`` (by ``weights`` when given); ``RANGE``
    picks an integer in ``[minimum, maximum]``. An empty list or an inverted
    range means no instance of the contract is currently possible.
    """

    name: str
    kind: ParameterKind
    values: tuple[Any, ...] = ()
    minimum: int = 0
    maximum: int = 0
    weights: tuple[float, ...] | None = None

    def __post_init__(self) -> None:
        if self.weights is not None and len(self.weights) != len(self.values):
            raise ValueError(f"Parameter {self.name}: {len(self.weights)} weights for {len(self.values)} values")

    @classmethod
    def choice(
        cls,
        name: str,
        values: Sequence[Any],
        weights: Sequence[float] | None = None,
    ) -> ParameterDescriptor:
        return cls(
            name=name,
            kind=ParameterKind.LIST,
            values=tuple(values),
            weights=tuple(weights) if weights is not None else None,
        )

    @classmethod
    def span(cls, name: str, minimum: int, maximum: int) -> ParameterDescriptor:
        return cls(name=name, kind=ParameterKind.RANGE, minimum=int(minimum), maximum=int(maximum))

    @property
    def is_empty(self) -> bool:
        if self.kind is ParameterKind.LIST:
            return not self.values
        return self.minimum > self.maximum


# ── Run record ───────────────────────────────────────────────────────────────


class ContractStage(str, enum.Enum):
    NOT_STARTED = "not_started"
    PARAMETER_SELECTION = "parameter_selection"
    PRECONDITION = "precondition"
    ACTION = "action"
    POSTCONDITION = "postcondition"
    DONE = "done"


def _plain(value: Any) -> Any:
    """JSON-friendly rendering for run summaries."""
    if isinstance(value, Actor):
        return value.name
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


@dataclass
class ContractRun:
    """Record of one contract execution; created fresh for every run."""
    contract: str
    params: dict[str, Any] = field(default_factory=dict)
    stage: ContractStage = ContractStage.NOT_STARTED
    ok: bool = False
    precondition: Any = None
    action_result: Any = None
    verdict: bool | None = None
    error: str | None = None
    failure: StageError | None = None
    duration_seconds: float = 0.0

    @property
    def failed_at(self) -> ContractStage | None:
        if self.ok or self.stage is ContractStage.NOT_STARTED:
            return None
        return self.stage

    @property
    def outcome(self) -> str:
        if self.ok:
            return "passed"
        if self.failed_at is None:
            return "pending"
        return f"failed_at({self.failed_at.value})"

    def summary(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "contract": self.contract,
            "outcome": self.outcome,
            "params": _plain(self.params),
        }
        if self.error is not None:
            out["error"] = self.error
        if self.precondition is not None:
            out["precondition"] = _plain(self.precondition)
        if self.action_result is not None:
            out["action_result"] = _plain(self.action_result)
        return out


# ── Contracts ────────────────────────────────────────────────────────────────


class Contract(ABC):
    """One parameterised, verifiable ledger operation."""

    name: str = ""
    scope: str = ""
    parameter_count: int = 0

    @abstractmethod
    async def describe_parameter(self, index: int, chosen: dict[str, Any]) -> ParameterDescriptor:
        ...

    @abstractmethod
    async def precondition(self, params: dict[str, Any]) -> Any:
        ...

    @abstractmethod
    async def action(self, params: dict[str, Any]) -> Any:
        ...

    @abstractmethod
    async def postcondition(self, params: dict[str, Any], pre: Any, action_result: Any) -> bool:
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class LedgerContract(Contract):
    """Contract that reads through ``query`` and mutates through ``mutation``.

    Each phase takes a fresh ``StorageSnapshot`` so before and after values
    are read independently.
    """

    def __init__(
        self,
        query: LedgerQuery,
        mutation: LedgerMutation,
        actors: ActorRegistry,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.query = query
        self.mutation = mutation
        self.actors = actors
        self.page_size = page_size

    def snapshot(self) -> StorageSnapshot:
        return StorageSnapshot(self.query, page_size=self.page_size)


DescriptorSource = Union[
    ParameterDescriptor,
    Callable[[dict[str, Any]], Union[ParameterDescriptor, Awaitable[ParameterDescriptor]]],
]


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class FunctionContract(Contract):
    """Contract assembled from plain callables (sync or async).

    Usage::

        contract = FunctionContract(
            "Noop",
            parameters=[ParameterDescriptor.span("n", 1, 10)],
            precondition=lambda params: {},
            action=lambda params: params["n"],
            postcondition=lambda params, pre, result: result == params["n"],
        )
    """

    def __init__(
        self,
        name: str,
        *,
        parameters: Sequence[DescriptorSource],
        precondition: Callable[[dict[str, Any]], Any],
        action: Callable[[dict[str, Any]], Any],
        postcondition: Callable[[dict[str, Any], Any, Any], Any],
        scope: str = "",
    ) -> None:
        self.name = name
        self.scope = scope
        self._parameters = list(parameters)
        self.parameter_count = len(self._parameters)
        self._precondition = precondition
        self._action = action
        self._postcondition = postcondition

    async def describe_parameter(self, index: int, chosen: dict[str, Any]) -> ParameterDescriptor:
        source = self._parameters[index]
        if isinstance(source, ParameterDescriptor):
            return source
        return await _maybe_await(source(chosen))

    async def precondition(self, params: dict[str, Any]) -> Any:
        return await _maybe_await(self._precondition(params))

    async def action(self, params: dict[str, Any]) -> Any:
        return await _maybe_await(self._action(params))

    async def postcondition(self, params: dict[str, Any], pre: Any, action_result: Any) -> bool:
        return await _maybe_await(self._postcondition(params, pre, action_result))
