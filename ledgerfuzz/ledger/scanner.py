"""Cursor-paged iteration over keyed storage maps.

Pages are requested from the ``LedgerQuery`` collaborator one at a time and
entries are yielded lazily, so a caller that only wants a bounded sample can
stop iterating (or pass ``limit``) and no further pages are fetched.

A failing page fetch never truncates silently: the scan raises
``ScanError`` with the cursor of the last page that succeeded. Passing that
cursor back as ``start_cursor`` resumes where the scan stopped.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

from ledgerfuzz.core.errors import ScanError
from ledgerfuzz.ledger.interfaces import Key, LedgerQuery
from ledgerfuzz.ledger.storage import StorageMap, resolve

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000


class PagedScanner:
    """Lazy scans over single, double and triple key maps."""

    def __init__(
        self,
        query: LedgerQuery,
        page_size: int = DEFAULT_PAGE_SIZE,
        at: Any = None,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self._query = query
        self._page_size = page_size
        self._at = at

    @property
    def page_size(self) -> int:
        return self._page_size

    async def scan(
        self,
        map_ref: StorageMap | str,
        prefix: Key = (),
        *,
        page_size: int | None = None,
        start_cursor: Any = None,
        limit: int | None = None,
    ) -> AsyncIterator[tuple[Key, Any]]:
        """Yield ``(key_tuple, raw_value)`` for every entry under ``prefix``."""
        storage_map = resolve(map_ref)
        prefix = tuple(prefix)
        if storage_map.arity and len(prefix) >= storage_map.arity:
            raise ValueError(
                f"Prefix {prefix!r} is too long for {storage_map.name} "
                f"(keys {', '.join(storage_map.keys)})"
            )

        size = self._page_size if page_size is None else page_size
        if size <= 0:
            raise ValueError("page_size must be positive")
        if limit is not None and limit <= 0:
            return

        cursor = start_cursor
        pages = 0
        delivered = 0

        while True:
            try:
                page = await self._query.scan_page(
                    storage_map.name, prefix, cursor, size, at=self._at,
                )
            except Exception as exc:
                logger.error(
                    "Page fetch failed for %s after %d pages",
                    storage_map.name, pages,
                    extra={"map_id": storage_map.name, "cursor": cursor},
                )
                raise ScanError(storage_map.name, cursor, exc) from exc

            pages += 1
            if not page.entries:
                break

            for key, raw in page.entries:
                yield tuple(key), raw
                delivered += 1
                if limit is not None and delivered >= limit:
                    logger.debug("Scan of %s stopped at limit %d", storage_map.name, limit)
                    return

            if page.next_cursor is None:
                break
            cursor = page.next_cursor

        logger.debug(
            "Scanned %s%s: %d entries in %d pages",
            storage_map.name, prefix or "", delivered, pages,
        )

    async def collect(
        self,
        map_ref: StorageMap | str,
        prefix: Key = (),
        *,
        limit: int | None = None,
    ) -> dict[Key, Any]:
        """Materialize a whole scan into a ``{key_tuple: raw_value}`` dict."""
        out: dict[Key, Any] = {}
        async for key, raw in self.scan(map_ref, prefix, limit=limit):
            out[key] = raw
        return out
