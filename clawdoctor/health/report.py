"""Summary reporter — turns the aggregator's final state into a report + exit code."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .engine import CheckOutcome, ResultAggregator, Severity

# Up to this many warnings (and no failures) still counts as healthy
HEALTHY_WARN_LIMIT = 3

_STYLE = {
    Severity.PASS: ("green", "✓", "PASS"),
    Severity.WARN: ("yellow", "!", "WARN"),
    Severity.FAIL: ("red", "✗", "FAIL"),
}


class OverallStatus(str, Enum):
    HEALTHY = "healthy"
    FUNCTIONAL_WITH_WARNINGS = "functional with warnings"
    NEEDS_ATTENTION = "needs attention"


# ── Report model ─────────────────────────────────────────────────────────────


class OutcomeModel(BaseModel):
    category: str
    check_name: str
    severity: Severity
    message: str
    detail: str | None = None

    @classmethod
    def from_outcome(cls, outcome: CheckOutcome) -> OutcomeModel:
        return cls(**outcome.to_dict())


class RunReport(BaseModel):
    """Machine-readable result of a doctor run."""

    total: int
    passed: int
    warnings: int
    failures: int
    status: OverallStatus
    exit_code: int
    failed_checks: list[OutcomeModel]
    warning_checks: list[OutcomeModel]
    passed_checks: list[OutcomeModel]


# ── Classification ───────────────────────────────────────────────────────────


def classify(failures: int, warnings: int) -> OverallStatus:
    if failures > 0:
        return OverallStatus.NEEDS_ATTENTION
    if warnings > HEALTHY_WARN_LIMIT:
        return OverallStatus.FUNCTIONAL_WITH_WARNINGS
    return OverallStatus.HEALTHY


def exit_code(aggregator: ResultAggregator) -> int:
    """1 if anything failed, else 0. Warnings never affect the exit code."""
    return 1 if aggregator.has_failures() else 0


def summarize(aggregator: ResultAggregator) -> RunReport:
    totals = aggregator.totals()
    return RunReport(
        total=totals.total,
        passed=totals.passed,
        warnings=totals.warned,
        failures=totals.failed,
        status=classify(totals.failed, totals.warned),
        exit_code=1 if totals.failed else 0,
        failed_checks=[OutcomeModel.from_outcome(o) for o in aggregator.failures()],
        warning_checks=[OutcomeModel.from_outcome(o) for o in aggregator.warnings()],
        passed_checks=[OutcomeModel.from_outcome(o) for o in aggregator.passes()],
    )


# ── Console rendering ────────────────────────────────────────────────────────


class SummaryReporter:
    """Renders per-category blocks and the final summary with rich."""

    def __init__(self, console: Console | None = None, verbose: bool = False) -> None:
        self.console = console or Console()
        self.verbose = verbose

    def print_category(self, category: str, outcomes: list[CheckOutcome]) -> None:
        """Runner callback: print one category's outcomes as they complete."""
        self.console.print(f"\n[bold cyan]{escape(category)}[/bold cyan]")
        if not outcomes:
            self.console.print("  [dim]no checks reported[/dim]")
            return
        for o in outcomes:
            color, icon, _ = _STYLE[o.severity]
            self.console.print(
                f"  [{color}]{icon}[/{color}] [bold]{escape(o.check_name)}[/bold]: {escape(o.message)}",
                highlight=False,
            )
            if self.verbose and o.detail:
                self.console.print(f"      [dim]{escape(o.detail)}[/dim]", highlight=False)

    def render(self, report: RunReport) -> None:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Total", justify="right")
        table.add_column("Passed", justify="right", style="green")
        table.add_column("Warnings", justify="right", style="yellow")
        table.add_column("Failures", justify="right", style="red")
        table.add_row(str(report.total), str(report.passed), str(report.warnings), str(report.failures))
        self.console.print()
        self.console.print(table)

        if report.failed_checks:
            self.console.print("\n[bold red]Failures:[/bold red]")
            for i, o in enumerate(report.failed_checks, 1):
                self.console.print(_numbered(i, o), highlight=False)
                if o.detail:
                    self.console.print(f"     [dim]→ {escape(o.detail)}[/dim]", highlight=False)

        if report.warning_checks:
            self.console.print("\n[bold yellow]Warnings:[/bold yellow]")
            for i, o in enumerate(report.warning_checks, 1):
                self.console.print(_numbered(i, o), highlight=False)
                if self.verbose and o.detail:
                    self.console.print(f"     [dim]→ {escape(o.detail)}[/dim]", highlight=False)

        style = {
            OverallStatus.HEALTHY: "bold green",
            OverallStatus.FUNCTIONAL_WITH_WARNINGS: "bold yellow",
            OverallStatus.NEEDS_ATTENTION: "bold red",
        }[report.status]
        self.console.print()
        self.console.print(Panel(f"Overall status: {report.status.value}", style=style))


def _numbered(index: int, o: OutcomeModel) -> str:
    label = escape(f"[{o.category}]")
    return f"  {index}. {label} {escape(o.check_name)}: {escape(o.message)}"
