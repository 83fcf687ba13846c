"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path, PurePath
from types import MappingProxyType
from typing import Any

import pytest

from clawdoctor.health.context import ExecutionContext
from clawdoctor.probes import system
from clawdoctor.probes.credentials import PROVIDER_ENV_VARS
from clawdoctor.probes.network import PROXY_VARS
from clawdoctor.probes.system import CommandResult, PortOwner


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's real Clawdbot, provider and proxy environment out of tests."""
    for key in list(os.environ):
        if key.startswith(("CLAWDBOT_", "DOCTOR_")) or key in PROVIDER_ENV_VARS or key == "LOG_LEVEL" \
                or key.upper() in PROXY_VARS:
            monkeypatch.delenv(key, raising=False)


class FakeHost:
    """Stand-in for clawdoctor.probes.system — no real commands, sockets or processes."""

    def __init__(self) -> None:
        self.tools: dict[str, str] = {}
        self.commands: dict[tuple[str, ...], CommandResult] = {}
        self.port_owners: dict[int, PortOwner | Exception | None] = {}
        self.process_count = 1
        self.connect_result: tuple[bool, float, str | None] = (
            False, 0.4, "ConnectionRefusedError: [Errno 111] Connection refused",
        )
        self.calls: list[tuple[str, ...]] = []
        self.argv: list[list[str]] = []  # exactly as passed to run_command

    def install(self, name: str, outputs: dict[tuple[str, ...], str] | None = None) -> None:
        """Put a tool on the fake PATH with canned successful command outputs."""
        self.tools[name] = f"/usr/local/bin/{name}"
        for args, stdout in (outputs or {}).items():
            self.commands[args] = CommandResult(ok=True, returncode=0, stdout=stdout)

    def which(self, name: str) -> str | None:
        return self.tools.get(name)

    def run_command(self, args: list[str], timeout: float = 5.0) -> CommandResult:
        self.argv.append(list(args))
        # Canned results are keyed by bare tool name
        key = (PurePath(args[0]).name, *args[1:])
        self.calls.append(key)
        if key in self.commands:
            return self.commands[key]
        if args[0] not in self.tools.values():
            return CommandResult(ok=False, error=f"{args[0]}: command not found")
        return CommandResult(ok=False, returncode=1, stderr="unexpected command in test")

    def find_port_owner(self, port: int) -> PortOwner | None:
        owner = self.port_owners.get(port)
        if isinstance(owner, Exception):
            raise owner
        return owner

    def count_processes(self, keyword: str) -> int:
        return self.process_count

    def tcp_connect(self, host: str, port: int, timeout: float = 2.0) -> tuple[bool, float, str | None]:
        return self.connect_result


@pytest.fixture
def host(monkeypatch: pytest.MonkeyPatch) -> FakeHost:
    fake = FakeHost()
    for name in ("which", "run_command", "find_port_owner", "count_processes", "tcp_connect"):
        monkeypatch.setattr(system, name, getattr(fake, name))
    return fake


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    path = tmp_path / ".clawdbot"
    path.mkdir()
    return path


@pytest.fixture
def make_ctx(config_dir: Path) -> Callable[..., ExecutionContext]:
    """Factory for contexts rooted at a temp config dir."""

    def _make(environ: dict[str, str] | None = None, **overrides: Any) -> ExecutionContext:
        fields: dict[str, Any] = {
            "config_dir": config_dir,
            "workspace_dir": config_dir / "workspace",
            "command_timeout": 1.0,
            "connect_timeout": 0.5,
            "http_timeout": 1.0,
            "environ": MappingProxyType(dict(environ or {})),
        }
        fields.update(overrides)
        return ExecutionContext(**fields)

    return _make


@pytest.fixture
def ctx(make_ctx: Callable[..., ExecutionContext]) -> ExecutionContext:
    return make_ctx()
