"""Tests for ledgerfuzz.ledger.journal: the run journal file."""

from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from ledgerfuzz.ledger.journal import RunJournal, one_line


class TestOneLine:
    def test_collapses_newlines_and_runs_of_space(self):
        assert one_line("a\r\nb\n\n  c\t d ") == "a b c d"

    def test_none(self):
        assert one_line(None) == ""


class TestRunJournal:
    def test_format_line(self):
        line = RunJournal.format_line("OK", "Stake {}", datetime(2025, 1, 15, 12, 0, 7))
        assert line == "2025-01-15 12:00:07>OK Stake {}\n"

    @pytest.mark.asyncio
    async def test_appends(self, tmp_path):
        journal = RunJournal(tmp_path / "journal.txt")
        await journal.log_ok("Transfer passed")
        await journal.log_error("Unstake failed\nat action")
        lines = journal.path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert lines[0].endswith(">OK Transfer passed")
        assert lines[1].endswith(">ERROR Unstake failed at action")

    @pytest.mark.asyncio
    async def test_concurrent_writers_do_not_interleave(self, tmp_path):
        journal = RunJournal(tmp_path / "journal.txt")
        await asyncio.gather(*(journal.log_ok(f"run {i} " + "x" * 500) for i in range(20)))
        lines = journal.path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 20
        assert all(line.endswith("x" * 500) for line in lines)
