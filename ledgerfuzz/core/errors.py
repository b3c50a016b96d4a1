"""Error taxonomy for the ledgerfuzz harness.

Violations found by invariant rules are data, not exceptions. Everything in
this module signals an infrastructure or usage failure instead:

  - DecodeError         malformed fixed-point / field input
  - TypeMismatchError   heterogeneous comparator operands
  - ScanError           page fetch failure, carries the resumable cursor
  - InvalidRangeError   sampler given max < min or an empty list
  - StageError          contract pipeline failure at a given stage
  - SubmissionRejected  ledger refused a mutation (module + error name)
  - FieldNotFound       mandatory storage read returned nothing
"""

from __future__ import annotations

from typing import Any


class LedgerFuzzError(Exception):
    """Base class for all harness errors."""


class DecodeError(LedgerFuzzError, ValueError):
    """Raised when a raw storage value cannot be decoded."""

    def __init__(self, message: str, raw: Any = None) -> None:
        super().__init__(message)
        self.raw = raw


class TypeMismatchError(LedgerFuzzError, TypeError):
    """Raised when comparator operands are not of the same numeric kind."""


class InvalidRangeError(LedgerFuzzError, ValueError):
    """Raised when a sampler is asked for an empty or inverted range."""


class ScanError(LedgerFuzzError):
    """A page fetch failed part-way through a storage scan.

    ``cursor`` is the last cursor that produced a successful page (``None``
    when the very first page failed). Passing it back as ``start_cursor``
    resumes the scan right after the entries already delivered.
    """

    def __init__(self, map_id: str, cursor: Any, cause: BaseException) -> None:
        super().__init__(f"Scan of {map_id} failed after cursor {cursor!r}: {cause}")
        self.map_id = map_id
        self.cursor = cursor
        self.cause = cause


class FieldNotFound(LedgerFuzzError, LookupError):
    """A storage field that must exist was not found."""

    def __init__(self, map_id: str, key: tuple[Any, ...]) -> None:
        super().__init__(f"{map_id}{key!r} not found")
        self.map_id = map_id
        self.key = key


class SubmissionRejected(LedgerFuzzError):
    """The ledger rejected a submitted mutation.

    The message keeps the ledger's own wording so it can be surfaced
    verbatim in contract failure reports.
    """

    def __init__(self, module: str, name: str, docs: str = "") -> None:
        text = f"{module}.{name}"
        if docs:
            text = f"{text}: {docs}"
        super().__init__(text)
        self.module = module
        self.name = name
        self.docs = docs


class StageError(LedgerFuzzError):
    """A contract run failed at ``stage`` (precondition/action/postcondition)."""

    def __init__(self, stage: str, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.cause = cause


def error_message(exc: BaseException | None) -> str:
    """Best-effort single string for an exception, used in reports."""
    if exc is None:
        return "Unknown error"
    text = str(exc)
    if text:
        return text
    return type(exc).__name__
