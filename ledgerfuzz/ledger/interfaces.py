"""Boundary protocols for the ledger collaborators.

The harness never talks to a node directly. It consumes two small async
interfaces that a transport (RPC client, archive reader, or the in-memory
ledger used in tests) must implement:

  - ``LedgerQuery``     point reads and cursor-paged map scans
  - ``LedgerMutation``  submit one signed operation and wait for finality

Raw values are returned in wire form (ints, hex text, lists, dicts); the
typed decoders in ``ledgerfuzz.ledger.fields`` turn them into Python values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ledgerfuzz.ledger.actors import Actor

Key = tuple[Any, ...]


@dataclass(frozen=True)
class Page:
    """One page of a map scan.

    ``next_cursor`` is ``None`` once the map is exhausted; otherwise it is
    passed back verbatim to fetch the following page.
    """
    entries: list[tuple[Key, Any]] = field(default_factory=list)
    next_cursor: Any = None

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class Confirmation:
    """Proof that a submitted operation was finalized."""
    operation_id: str
    block: Any = None
    events: list[dict[str, Any]] = field(default_factory=list)


@runtime_checkable
class LedgerQuery(Protocol):
    """Read side of the ledger.

    ``read_field`` returns ``None`` when the key is absent, which is
    distinct from an empty value such as ``[]`` or ``0``.
    """

    async def read_field(self, map_id: str, key: Key, at: Any = None) -> Any:
        ...

    async def scan_page(
        self,
        map_id: str,
        prefix: Key,
        cursor: Any,
        page_size: int,
        at: Any = None,
    ) -> Page:
        ...


@runtime_checkable
class LedgerMutation(Protocol):
    """Write side of the ledger.

    ``submit`` blocks until the operation is finalized and raises
    ``SubmissionRejected`` when the ledger refuses it.
    """

    async def submit(self, operation_id: str, args: dict[str, Any], signer: Actor) -> Confirmation:
        ...
