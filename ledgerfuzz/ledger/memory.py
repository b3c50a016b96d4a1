"""In-memory ledger implementing both collaborator protocols.

Used by the test suite and for dry runs of contracts and invariant rules
without a node. Maps are plain ``{key_tuple: raw_value}`` dicts; scans are
served in key order with the last key of a page as the cursor, the same
shape as a node's ``keysPaged`` API.

Operations are registered handlers ``handler(ledger, args, signer)`` that
mutate state synchronously. A handler that raises leaves the state
untouched, and each successful submit finalizes one block.
"""

from __future__ import annotations

import copy
import logging
from collections import defaultdict
from typing import Any, Callable

from ledgerfuzz.core.errors import SubmissionRejected
from ledgerfuzz.ledger.actors import Actor
from ledgerfuzz.ledger.interfaces import Confirmation, Key, Page

logger = logging.getLogger(__name__)

OperationHandler = Callable[["InMemoryLedger", dict[str, Any], Actor], "list[dict[str, Any]] | None"]


def _sort_key(key: Key) -> tuple[tuple[int, Any], ...]:
    # Mixed int/str key parts must still order deterministically.
    return tuple((0, part) if isinstance(part, int) else (1, str(part)) for part in key)


class InMemoryLedger:
    """Dict-backed ledger with block history for pinned reads."""

    def __init__(
        self,
        maps: dict[str, dict[Key, Any]] | None = None,
        *,
        keep_history: bool = False,
    ) -> None:
        self._maps: dict[str, dict[Key, Any]] = defaultdict(dict)
        for map_id, entries in (maps or {}).items():
            for key, value in entries.items():
                self._maps[map_id][tuple(key)] = value
        self._operations: dict[str, OperationHandler] = {}
        self._keep_history = keep_history
        self._history: dict[int, dict[str, dict[Key, Any]]] = {}
        self._block = 0
        self.submissions: list[tuple[str, dict[str, Any], str]] = []
        self.page_requests = 0
        if keep_history:
            self._history[0] = copy.deepcopy(dict(self._maps))

    # ── Direct state access (setup and assertions) ──────────────────────

    @property
    def block(self) -> int:
        return self._block

    def set(self, map_id: str, key: Key, value: Any) -> None:
        self._maps[map_id][tuple(key)] = value

    def get(self, map_id: str, key: Key, default: Any = None) -> Any:
        return self._maps.get(map_id, {}).get(tuple(key), default)

    def delete(self, map_id: str, key: Key) -> None:
        self._maps.get(map_id, {}).pop(tuple(key), None)

    def entries(self, map_id: str) -> dict[Key, Any]:
        return dict(self._maps.get(map_id, {}))

    def register_operation(self, operation_id: str, handler: OperationHandler) -> None:
        self._operations[operation_id] = handler

    def finalize_block(self) -> int:
        self._block += 1
        if self._keep_history:
            self._history[self._block] = copy.deepcopy(dict(self._maps))
        return self._block

    def _state_at(self, at: Any) -> dict[str, dict[Key, Any]]:
        if at is None:
            return self._maps
        if at not in self._history:
            raise LookupError(f"No state recorded for block {at!r}")
        return self._history[at]

    # ── LedgerQuery ─────────────────────────────────────────────────────

    async def read_field(self, map_id: str, key: Key, at: Any = None) -> Any:
        value = self._state_at(at).get(map_id, {}).get(tuple(key))
        return copy.deepcopy(value)

    async def scan_page(
        self,
        map_id: str,
        prefix: Key,
        cursor: Any,
        page_size: int,
        at: Any = None,
    ) -> Page:
        self.page_requests += 1
        prefix = tuple(prefix)
        state = self._state_at(at).get(map_id, {})
        keys = sorted(
            (k for k in state if k[: len(prefix)] == prefix),
            key=_sort_key,
        )
        if cursor is not None:
            after = _sort_key(tuple(cursor))
            keys = [k for k in keys if _sort_key(k) > after]

        chunk = keys[:page_size]
        next_cursor = chunk[-1] if len(keys) > page_size else None
        return Page(
            entries=[(k, copy.deepcopy(state[k])) for k in chunk],
            next_cursor=next_cursor,
        )

    # ── LedgerMutation ──────────────────────────────────────────────────

    async def submit(self, operation_id: str, args: dict[str, Any], signer: Actor) -> Confirmation:
        handler = self._operations.get(operation_id)
        if handler is None:
            raise SubmissionRejected("System", "CallFiltered", f"Unknown operation {operation_id}")

        backup = copy.deepcopy(dict(self._maps))
        try:
            events = handler(self, dict(args), signer) or []
        except Exception:
            self._maps = defaultdict(dict, backup)
            raise

        self.submissions.append((operation_id, dict(args), signer.address))
        block = self.finalize_block()
        logger.debug("Finalized %s by %s in block %d", operation_id, signer.name, block)
        return Confirmation(operation_id=operation_id, block=block, events=list(events))
