"""Typed, read-only view of ledger storage at one point in time."""

from __future__ import annotations

from typing import Any, AsyncIterator, Iterable

from ledgerfuzz.core.errors import DecodeError, FieldNotFound
from ledgerfuzz.ledger.interfaces import Key, LedgerQuery
from ledgerfuzz.ledger.scanner import DEFAULT_PAGE_SIZE, PagedScanner
from ledgerfuzz.ledger.storage import StorageMap, resolve


class StorageSnapshot:
    """Decoded reads pinned to ``at`` (a block reference, or latest).

    The snapshot never writes. Before/after comparisons take two snapshots
    and read the same fields from each; when ``at`` is ``None`` every read
    goes to the latest state, so two reads of one snapshot are only
    guaranteed identical when the transport honours a pinned block.
    """

    def __init__(
        self,
        query: LedgerQuery,
        *,
        at: Any = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._query = query
        self._at = at
        self._scanner = PagedScanner(query, page_size=page_size, at=at)

    @property
    def at(self) -> Any:
        return self._at

    @property
    def scanner(self) -> PagedScanner:
        return self._scanner

    @staticmethod
    def _decode(storage_map: StorageMap, key: Key, raw: Any) -> Any:
        try:
            return storage_map.decode(raw)
        except DecodeError as exc:
            raise DecodeError(f"{storage_map.name}{key!r}: {exc}", raw) from exc

    async def read_raw(self, map_ref: StorageMap | str, *key: Any) -> Any:
        storage_map = resolve(map_ref)
        return await self._query.read_field(storage_map.name, tuple(key), at=self._at)

    async def read(self, map_ref: StorageMap | str, *key: Any) -> Any:
        """Decoded value, or the map's default when the key is absent."""
        storage_map = resolve(map_ref)
        raw = await self.read_raw(storage_map, *key)
        if raw is None:
            return storage_map.default
        return self._decode(storage_map, tuple(key), raw)

    async def require(self, map_ref: StorageMap | str, *key: Any) -> Any:
        """Decoded value; raises ``FieldNotFound`` when the key is absent."""
        storage_map = resolve(map_ref)
        raw = await self.read_raw(storage_map, *key)
        if raw is None:
            raise FieldNotFound(storage_map.name, tuple(key))
        return self._decode(storage_map, tuple(key), raw)

    async def read_many(self, map_ref: StorageMap | str, keys: Iterable[Key]) -> list[Any]:
        storage_map = resolve(map_ref)
        return [await self.read(storage_map, *k) for k in keys]

    async def entries(
        self,
        map_ref: StorageMap | str,
        *prefix: Any,
        limit: int | None = None,
    ) -> AsyncIterator[tuple[Key, Any]]:
        """Yield ``(full_key, decoded_value)`` pairs under ``prefix``."""
        storage_map = resolve(map_ref)
        async for key, raw in self._scanner.scan(storage_map, prefix, limit=limit):
            yield key, self._decode(storage_map, key, raw)

    async def collect(self, map_ref: StorageMap | str, *prefix: Any) -> dict[Key, Any]:
        """Decoded ``{full_key: value}`` for the whole map (or prefix)."""
        return {key: value async for key, value in self.entries(map_ref, *prefix)}
