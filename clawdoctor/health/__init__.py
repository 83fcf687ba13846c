"""Health subsystem — outcome model, aggregator, runner, reporter."""

from .context import ExecutionContext, build_context
from .engine import CheckOutcome, Probe, ResultAggregator, Severity, Totals
from .report import OverallStatus, RunReport, SummaryReporter, classify, exit_code, summarize
from .runner import CheckRunner
