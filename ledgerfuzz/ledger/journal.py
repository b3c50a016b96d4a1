"""Append-only journal of contract runs.

One line per run::

    2025-01-15 12:00:00>OK Stake {"contract": "Stake", "outcome": "passed", ...}
    2025-01-15 12:00:07>ERROR Unstake {"contract": "Unstake", "outcome": "failed_at(action)", ...}
"""

from __future__ import annotations

import asyncio
import re
from datetime import datetime
from pathlib import Path

_NEWLINES = re.compile(r"[\r\n]+")
_SPACES = re.compile(r"\s+")


def one_line(text: object) -> str:
    """Collapse ``text`` to a single trimmed line."""
    if text is None:
        return ""
    return _SPACES.sub(" ", _NEWLINES.sub(" ", str(text))).strip()


def timestamp(now: datetime | None = None) -> str:
    return (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")


class RunJournal:
    """Writes ``<timestamp>>OK <summary>`` / ``<timestamp>>ERROR <summary>`` lines."""

    def __init__(self, path: str | Path = "test_journal.txt") -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @staticmethod
    def format_line(status: str, summary: object, now: datetime | None = None) -> str:
        return f"{timestamp(now)}>{status} {one_line(summary)}\n"

    async def log_ok(self, summary: object) -> str:
        return await self._append(self.format_line("OK", summary))

    async def log_error(self, summary: object) -> str:
        return await self._append(self.format_line("ERROR", summary))

    async def _append(self, line: str) -> str:
        async with self._lock:
            await asyncio.to_thread(self._write, line)
        return line

    def _write(self, line: str) -> None:
        with self._path.open("a", encoding="utf-8") as fh:
            fh.write(line)
