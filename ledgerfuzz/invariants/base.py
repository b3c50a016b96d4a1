"""Base classes for invariant rules."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Iterable

from ledgerfuzz.core.types import Violation
from ledgerfuzz.invariants.algorithms import Finding
from ledgerfuzz.ledger import queries
from ledgerfuzz.ledger.snapshot import StorageSnapshot

DEFAULT_PARTITION_CONCURRENCY = 8


class Rule(ABC):
    """A named, stateless check over a storage snapshot.

    ``check`` returns every violation it finds; raising is reserved for
    infrastructure failures (scan, decode, missing mandatory field).
    """

    rule_id: ClassVar[str]
    description: ClassVar[str] = ""

    def violation(self, message: str, keys: Iterable[Any] = (), partition: Any = None) -> Violation:
        return Violation(rule_id=self.rule_id, message=message, keys=tuple(keys), partition=partition)

    def from_findings(self, findings: Iterable[Finding | None], partition: Any = None) -> list[Violation]:
        return [
            self.violation(f.message, f.keys, partition)
            for f in findings
            if f is not None
        ]

    @abstractmethod
    async def check(self, snapshot: StorageSnapshot) -> list[Violation]:
        ...

    async def evaluate(self, snapshot: StorageSnapshot) -> tuple[list[Violation], int]:
        """Violations plus the number of partitions examined."""
        return await self.check(snapshot), 1

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.rule_id}>"


class PartitionedRule(Rule):
    """Rule evaluated independently for every subnet.

    Partitions run concurrently, at most ``max_concurrency`` at a time; the
    work inside one partition is sequential. All partitions are awaited
    before the first failure (if any) is re-raised.
    """

    def __init__(self, max_concurrency: int = DEFAULT_PARTITION_CONCURRENCY) -> None:
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be positive")
        self.max_concurrency = max_concurrency

    async def partitions(self, snapshot: StorageSnapshot) -> list[Any]:
        return await queries.subnets_available(snapshot)

    @abstractmethod
    async def check_partition(self, snapshot: StorageSnapshot, partition: Any) -> list[Violation]:
        ...

    async def evaluate(self, snapshot: StorageSnapshot) -> tuple[list[Violation], int]:
        parts = await self.partitions(snapshot)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _one(partition: Any) -> list[Violation]:
            async with semaphore:
                return await self.check_partition(snapshot, partition)

        results = await asyncio.gather(*(_one(p) for p in parts), return_exceptions=True)
        violations: list[Violation] = []
        for result in results:
            if isinstance(result, BaseException):
                raise result
            violations.extend(result)
        return violations, len(parts)

    async def check(self, snapshot: StorageSnapshot) -> list[Violation]:
        violations, _ = await self.evaluate(snapshot)
        return violations
