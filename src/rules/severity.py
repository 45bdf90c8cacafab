"""Severity levels and pass/fail aggregation."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Protocol

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from collections.abc import Iterable


class Severity(str, Enum):
    """Ordinal severity of a finding: warning < error < critical."""

    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    # str comparisons are alphabetical; severities compare by rank.
    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_RANK = {
    Severity.WARNING: 0,
    Severity.ERROR: 1,
    Severity.CRITICAL: 2,
}

# Highest first, used for grouped output.
SEVERITY_ORDER: tuple[Severity, ...] = (
    Severity.CRITICAL,
    Severity.ERROR,
    Severity.WARNING,
)


class FailOn(BaseModel):
    """Which severities cause a run to fail."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    critical: bool = Field(default=True, description="Fail on critical findings")
    error: bool = Field(default=True, description="Fail on error findings")
    warning: bool = Field(default=False, description="Fail on warning findings")

    def enabled(self, severity: Severity) -> bool:
        return bool(getattr(self, severity.value))


class _HasSeverity(Protocol):
    @property
    def severity(self) -> Severity: ...


@dataclass(frozen=True)
class Evaluation:
    ok: bool
    counts: dict[str, int] = field(default_factory=dict)


def count_by_severity(items: Iterable[_HasSeverity]) -> dict[str, int]:
    """Count items per severity; every level is present, zero when absent."""
    counter = Counter(Severity(item.severity) for item in items)
    return {severity.value: counter.get(severity, 0) for severity in Severity}


def evaluate(
    items: Iterable[_HasSeverity], fail_on: FailOn | None = None
) -> Evaluation:
    """Reduce findings (or contract errors) to a single pass/fail decision.

    The result fails if and only if at least one item carries a severity
    enabled in ``fail_on``. Counts are reported regardless of the decision so
    a passing run still shows its warnings.
    """
    if fail_on is None:
        fail_on = FailOn()
    counts = count_by_severity(items)
    ok = not any(
        counts[severity.value] and fail_on.enabled(severity) for severity in Severity
    )
    return Evaluation(ok=ok, counts=counts)


__all__ = [
    "SEVERITY_ORDER",
    "Evaluation",
    "FailOn",
    "Severity",
    "count_by_severity",
    "evaluate",
]
