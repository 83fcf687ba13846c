"""Clawdbot CLI installation checks."""

from __future__ import annotations

from ..health.context import ExecutionContext
from ..health.engine import CheckOutcome, Probe
from . import system

CLI_NAME = "clawdbot"
NPM_PACKAGE = "clawdbot"


class InstallationProbe(Probe):
    name = "Clawdbot CLI"
    category = "Clawdbot Installation"

    def run(self, ctx: ExecutionContext) -> list[CheckOutcome]:
        outcomes: list[CheckOutcome] = []

        path = system.which(CLI_NAME)
        if not path:
            outcomes.append(self.fail(
                "CLI Installed", f"`{CLI_NAME}` not found on PATH",
                f"npm install -g {NPM_PACKAGE}",
            ))
        else:
            outcomes.append(self.passed("CLI Installed", f"Found at {path}"))
            result = system.run_command([path, "--version"], timeout=ctx.command_timeout)
            if result.ok and result.output:
                outcomes.append(self.passed("CLI Version", result.output.splitlines()[0]))
            else:
                outcomes.append(self.warn(
                    "CLI Version", "CLI did not report a version",
                    result.error or result.output or None,
                ))

        global_pkg = self._global_package(ctx)
        if global_pkg is not None:
            outcomes.append(global_pkg)
        return outcomes

    def _global_package(self, ctx: ExecutionContext) -> CheckOutcome | None:
        # Without npm the runtime probe already reports the problem
        npm = system.which("npm")
        if not npm:
            return None
        result = system.run_command(
            [npm, "ls", "-g", NPM_PACKAGE, "--depth=0"], timeout=ctx.command_timeout,
        )
        if result.error:
            return self.warn("Global Package", "Could not query global npm packages", result.error)
        if result.ok and f"{NPM_PACKAGE}@" in result.stdout:
            return self.passed("Global Package", f"{NPM_PACKAGE} installed globally via npm")
        return self.warn(
            "Global Package", f"{NPM_PACKAGE} is not installed globally via npm",
            "Fine if running from a source checkout or another package manager",
        )
