"""Check engine core — outcome model, severity order, aggregator, probe base.

Every probe produces CheckOutcome values. The ResultAggregator buckets them by
severity in recording order; the runner and reporter only ever talk to it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, NamedTuple

if TYPE_CHECKING:
    from .context import ExecutionContext

logger = logging.getLogger(__name__)


# ── Models ───────────────────────────────────────────────────────────────────


class Severity(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    # Order by concern, not by string value
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


_SEVERITY_RANK = {Severity.PASS: 0, Severity.WARN: 1, Severity.FAIL: 2}


@dataclass(frozen=True)
class CheckOutcome:
    """Result of a single diagnostic check."""

    category: str
    check_name: str
    severity: Severity
    message: str
    detail: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.severity, Severity):
            try:
                object.__setattr__(self, "severity", Severity(self.severity))
            except ValueError:
                raise ValueError(f"Invalid severity: {self.severity!r}") from None

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "check_name": self.check_name,
            "severity": self.severity.value,
            "message": self.message,
            "detail": self.detail,
        }


class Totals(NamedTuple):
    passed: int
    warned: int
    failed: int
    total: int


# ── Aggregator ───────────────────────────────────────────────────────────────


class ResultAggregator:
    """Run-scoped accumulator of outcomes, bucketed by severity.

    Recording is append-only and lock-protected so probes running on a thread
    pool can feed it directly. Nothing is ever reordered or deduplicated.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buckets: dict[Severity, list[CheckOutcome]] = {s: [] for s in Severity}
        self._all: list[CheckOutcome] = []

    def record(self, outcome: CheckOutcome) -> None:
        if not isinstance(outcome, CheckOutcome):
            raise TypeError(f"Expected CheckOutcome, got {type(outcome).__name__}")
        with self._lock:
            self._buckets[outcome.severity].append(outcome)
            self._all.append(outcome)

    def totals(self) -> Totals:
        with self._lock:
            passed = len(self._buckets[Severity.PASS])
            warned = len(self._buckets[Severity.WARN])
            failed = len(self._buckets[Severity.FAIL])
        return Totals(passed, warned, failed, passed + warned + failed)

    def has_failures(self) -> bool:
        with self._lock:
            return bool(self._buckets[Severity.FAIL])

    def failures(self) -> list[CheckOutcome]:
        return self._bucket(Severity.FAIL)

    def warnings(self) -> list[CheckOutcome]:
        return self._bucket(Severity.WARN)

    def passes(self) -> list[CheckOutcome]:
        return self._bucket(Severity.PASS)

    def outcomes(self) -> list[CheckOutcome]:
        """Every outcome in recording order."""
        with self._lock:
            return list(self._all)

    def _bucket(self, severity: Severity) -> list[CheckOutcome]:
        with self._lock:
            return list(self._buckets[severity])


# ── Probe base ───────────────────────────────────────────────────────────────


class Probe:
    """Abstract base for all diagnostic probes.

    Subclasses set ``name`` and ``category`` and implement :meth:`run`. Probes
    hold no state between runs; everything they need comes from the context.
    Bodies should turn expected trouble (missing tool, unreadable file,
    network error) into WARN/FAIL outcomes themselves. Anything that still
    escapes is caught by the runner.
    """

    name: str = "probe"
    category: str = "General"

    def run(self, ctx: ExecutionContext) -> list[CheckOutcome]:
        raise NotImplementedError

    # -- outcome helpers -------------------------------------------------------

    def outcome(
        self, check_name: str, severity: Severity, message: str, detail: str | None = None,
    ) -> CheckOutcome:
        return CheckOutcome(
            category=self.category, check_name=check_name,
            severity=severity, message=message, detail=detail,
        )

    def passed(self, check_name: str, message: str, detail: str | None = None) -> CheckOutcome:
        return self.outcome(check_name, Severity.PASS, message, detail)

    def warn(self, check_name: str, message: str, detail: str | None = None) -> CheckOutcome:
        return self.outcome(check_name, Severity.WARN, message, detail)

    def fail(self, check_name: str, message: str, detail: str | None = None) -> CheckOutcome:
        return self.outcome(check_name, Severity.FAIL, message, detail)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.category}/{self.name}>"
