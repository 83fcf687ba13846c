"""Node.js runtime + package manager checks."""

from __future__ import annotations

import re

from ..health.context import ExecutionContext
from ..health.engine import CheckOutcome, Probe
from . import system

_VERSION_RE = re.compile(r"v?(\d+)(?:\.(\d+))?(?:\.(\d+))?")


def parse_version(text: str) -> tuple[int, int, int] | None:
    """Parse '22.3.0', 'v22.3.0' or 'node v22' into a (major, minor, patch) tuple."""
    match = _VERSION_RE.search(text or "")
    if not match:
        return None
    return tuple(int(part or 0) for part in match.groups())  # type: ignore[return-value]


def format_version(version: tuple[int, int, int]) -> str:
    return ".".join(str(p) for p in version)


class RuntimeProbe(Probe):
    name = "Node.js Runtime"
    category = "Node.js Environment"

    def run(self, ctx: ExecutionContext) -> list[CheckOutcome]:
        node = system.which("node")
        if not node:
            # Hard dependency: nothing else here is meaningful without it
            return [self.fail(
                "Node.js Installed", "Node.js not found on PATH",
                f"Install Node.js {ctx.min_node_version} or newer from https://nodejs.org",
            )]

        outcomes = [self._node_version(node, ctx)]
        outcomes.append(self._npm(ctx))
        outcomes.append(self._pnpm(ctx))
        return outcomes

    def _node_version(self, node: str, ctx: ExecutionContext) -> CheckOutcome:
        result = system.run_command([node, "--version"], timeout=ctx.command_timeout)
        if not result.ok:
            return self.warn(
                "Node.js Version", "Could not determine Node.js version",
                result.error or result.output or None,
            )

        found = parse_version(result.output)
        required = parse_version(ctx.min_node_version) or (22, 0, 0)
        if found is None:
            return self.warn(
                "Node.js Version", f"Unrecognized version string: {result.output!r}",
            )
        if found < required:
            return self.fail(
                "Node.js Version",
                f"Node.js {format_version(found)} is below the required {format_version(required)}",
                f"Upgrade Node.js to {format_version(required)}+ (e.g. `nvm install {required[0]}`)",
            )
        return self.passed("Node.js Version", f"Node.js {format_version(found)}")

    def _npm(self, ctx: ExecutionContext) -> CheckOutcome:
        npm = system.which("npm")
        if not npm:
            return self.fail("npm", "npm not found on PATH", "npm ships with Node.js; reinstall Node.js")
        result = system.run_command([npm, "--version"], timeout=ctx.command_timeout)
        if not result.ok:
            return self.fail("npm", "npm is installed but not working", result.error or result.output or None)
        return self.passed("npm", f"npm {result.output}")

    def _pnpm(self, ctx: ExecutionContext) -> CheckOutcome:
        pnpm = system.which("pnpm")
        if not pnpm:
            return self.warn("pnpm", "pnpm not installed (optional)", "npm install -g pnpm")
        result = system.run_command([pnpm, "--version"], timeout=ctx.command_timeout)
        if not result.ok:
            return self.warn("pnpm", "pnpm found but version check failed", result.error or result.output or None)
        return self.passed("pnpm", f"pnpm {result.output}")
