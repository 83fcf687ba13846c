"""Entry point for the clawdoctor health check CLI."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Sequence

from rich.console import Console
from rich.panel import Panel

from clawdoctor.config import Settings, load_settings
from clawdoctor.health.context import build_context
from clawdoctor.health.engine import Probe
from clawdoctor.health.report import SummaryReporter, summarize
from clawdoctor.health.runner import CheckRunner
from clawdoctor.probes import StartupProbe, default_probes

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clawdoctor",
        description="Diagnose a local Clawdbot gateway/bridge installation",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show details and remediation hints")
    parser.add_argument("--fix-issues", action="store_true", help="Reserved; currently has no effect")
    parser.add_argument("--config-dir", metavar="PATH", help="Override the Clawdbot config directory")
    parser.add_argument("--gateway-port", type=int, metavar="N", help="Gateway port (default 18789)")
    parser.add_argument("--bridge-port", type=int, metavar="N", help="Bridge port (default 18790)")
    parser.add_argument("--parallel", action="store_true", help="Run probes concurrently")
    parser.add_argument("--timeout", type=float, metavar="SECONDS", help="Overall run deadline")
    parser.add_argument("--json", action="store_true", help="Print a JSON report instead of the console report")
    return parser


def configure_logging(settings: Settings, verbose: bool) -> None:
    level_name = settings.log_level.upper()
    if verbose and "LOG_LEVEL" not in os.environ:
        level_name = "DEBUG"
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def run_doctor(
    args: argparse.Namespace,
    *,
    console: Console | None = None,
    probes: Sequence[Probe] | None = None,
) -> int:
    """Run the full battery and print the report. Returns the exit code."""
    console = console or Console()
    settings, settings_error = load_settings()
    configure_logging(settings, args.verbose)
    if settings_error:
        logger.warning("Invalid settings, falling back to defaults: %s", settings_error)

    ctx = build_context(
        settings,
        config_dir=args.config_dir,
        gateway_port=args.gateway_port,
        bridge_port=args.bridge_port,
        verbose=args.verbose,
    )

    battery = list(probes) if probes is not None else default_probes()
    if settings_error:
        battery.insert(0, StartupProbe(settings_error))

    reporter = SummaryReporter(console, verbose=args.verbose)
    if not args.json:
        console.print(Panel("Clawdbot Doctor", subtitle=str(ctx.config_dir or "no config dir"), style="bold blue"))
        if args.fix_issues:
            console.print("[yellow]--fix-issues is not implemented yet; running diagnostics only.[/yellow]")

    runner = CheckRunner(
        ctx,
        battery,
        parallel=args.parallel,
        probe_timeout=settings.doctor_probe_timeout,
        run_deadline=args.timeout,
        on_category=None if args.json else reporter.print_category,
    )
    aggregator = runner.run()
    report = summarize(aggregator)

    if args.json:
        console.out(report.model_dump_json(indent=2), highlight=False)
    else:
        reporter.render(report)
    return report.exit_code


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    sys.exit(run_doctor(args))


if __name__ == "__main__":
    main()
