"""Optional tooling — container runtime, browser, local inference, git.

None of these are required, so a missing tool is only ever a warning.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import httpx

from ..health.context import ExecutionContext
from ..health.engine import CheckOutcome, Probe
from . import system

OLLAMA_URL = "http://127.0.0.1:11434/api/tags"

BROWSER_COMMANDS = ("google-chrome", "google-chrome-stable", "chromium", "chromium-browser", "brave-browser", "msedge")


def browser_locations() -> list[Path]:
    """Well-known browser install paths for the current platform."""
    if sys.platform == "darwin":
        return [
            Path("/Applications/Google Chrome.app/Contents/MacOS/Google Chrome"),
            Path("/Applications/Chromium.app/Contents/MacOS/Chromium"),
            Path("/Applications/Brave Browser.app/Contents/MacOS/Brave Browser"),
        ]
    if sys.platform == "win32":
        roots = [os.environ.get(v) for v in ("PROGRAMFILES", "PROGRAMFILES(X86)", "LOCALAPPDATA")]
        return [
            Path(root) / "Google" / "Chrome" / "Application" / "chrome.exe"
            for root in roots if root
        ]
    return [
        Path("/usr/bin/google-chrome"),
        Path("/usr/bin/chromium"),
        Path("/usr/bin/chromium-browser"),
        Path("/snap/bin/chromium"),
    ]


def find_browser() -> str | None:
    for path in browser_locations():
        if path.exists():
            return str(path)
    for name in BROWSER_COMMANDS:
        found = system.which(name)
        if found:
            return found
    return None


class OptionalDependenciesProbe(Probe):
    name = "Optional Dependencies"
    category = "Optional Dependencies"

    def run(self, ctx: ExecutionContext) -> list[CheckOutcome]:
        return [
            self._tool("Docker", ["docker", "--version"], ctx, "Needed only for sandboxed agents"),
            self._compose(ctx),
            self._browser(),
            self._ollama(ctx),
            self._tool("Git", ["git", "--version"], ctx, "Needed for workspace versioning"),
        ]

    def _tool(self, label: str, args: list[str], ctx: ExecutionContext, hint: str) -> CheckOutcome:
        exe = system.which(args[0])
        if not exe:
            return self.warn(label, f"{args[0]} not installed", hint)
        result = system.run_command([exe, *args[1:]], timeout=ctx.command_timeout)
        if not result.ok:
            return self.warn(label, f"{args[0]} found but not responding", result.error or result.output or None)
        return self.passed(label, result.output.splitlines()[0] if result.output else "installed")

    def _compose(self, ctx: ExecutionContext) -> CheckOutcome:
        docker = system.which("docker")
        if docker:
            result = system.run_command([docker, "compose", "version"], timeout=ctx.command_timeout)
            if result.ok:
                return self.passed("Docker Compose", result.output.splitlines()[0] if result.output else "plugin")
        compose = system.which("docker-compose")
        if compose:
            result = system.run_command([compose, "--version"], timeout=ctx.command_timeout)
            if result.ok:
                return self.passed("Docker Compose", result.output.splitlines()[0] if result.output else "standalone")
        return self.warn("Docker Compose", "Compose not available", "Needed only for sandboxed agents")

    def _browser(self) -> CheckOutcome:
        path = find_browser()
        if path:
            return self.passed("Browser", path)
        return self.warn("Browser", "No Chromium-based browser found", "Needed only for the browser tool")

    def _ollama(self, ctx: ExecutionContext) -> CheckOutcome:
        try:
            with httpx.Client(timeout=ctx.connect_timeout, trust_env=False) as client:
                resp = client.get(OLLAMA_URL)
        except httpx.HTTPError as e:
            return self.warn("Ollama", "Local inference server not reachable", f"{type(e).__name__}: {e}")

        if resp.status_code != 200:
            return self.warn("Ollama", f"Ollama responded with HTTP {resp.status_code}")
        try:
            body = resp.json()
        except ValueError:
            body = {}
        models = body.get("models", []) if isinstance(body, dict) else []
        return self.passed("Ollama", f"Running ({len(models)} model(s) available)")
