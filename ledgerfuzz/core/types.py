"""Shared report schemas used across the harness."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, Field


# ── Enums ────────────────────────────────────────────────────────────────────


class RuleStatus(str, enum.Enum):
    """Outcome of one invariant rule invocation."""

    PASSED = "passed"
    VIOLATED = "violated"
    ERRORED = "errored"


# ── Violation reports ────────────────────────────────────────────────────────


class Violation(BaseModel):
    """A single invariant violation.

    ``keys`` holds the offending storage key(s); ``partition`` the subnet (or
    other partition key) the rule was evaluating, when it has one.
    """

    model_config = {"frozen": True}

    rule_id: str
    message: str
    keys: tuple[Any, ...] = ()
    partition: Any = None

    def __str__(self) -> str:
        where = f" [partition {self.partition}]" if self.partition is not None else ""
        return f"{self.rule_id}{where}: {self.message}"


class RuleOutcome(BaseModel):
    """Everything one rule produced in one run."""

    rule_id: str
    description: str = ""
    violations: list[Violation] = Field(default_factory=list)
    error: str | None = None
    partitions_checked: int = 0
    duration_seconds: float = 0.0

    @property
    def status(self) -> RuleStatus:
        if self.error is not None:
            return RuleStatus.ERRORED
        if self.violations:
            return RuleStatus.VIOLATED
        return RuleStatus.PASSED

    @property
    def ok(self) -> bool:
        return self.status == RuleStatus.PASSED


class InvariantReport(BaseModel):
    """Aggregate result of an invariant-check run."""

    outcomes: list[RuleOutcome] = Field(default_factory=list)
    block: Any = None
    duration_seconds: float = 0.0

    @property
    def violations(self) -> list[Violation]:
        return [v for o in self.outcomes for v in o.violations]

    @property
    def errors(self) -> dict[str, str]:
        return {o.rule_id: o.error for o in self.outcomes if o.error is not None}

    @property
    def ok(self) -> bool:
        """True only when every rule ran to completion without violations."""
        return all(o.ok for o in self.outcomes)

    def outcome(self, rule_id: str) -> RuleOutcome:
        for o in self.outcomes:
            if o.rule_id == rule_id:
                return o
        raise KeyError(rule_id)

    def summary(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "rules": len(self.outcomes),
            "violations": len(self.violations),
            "errors": self.errors,
            "by_rule": {o.rule_id: o.status.value for o in self.outcomes},
            "duration_seconds": round(self.duration_seconds, 3),
        }
