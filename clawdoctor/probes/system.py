"""Host interaction helpers — the one seam probes use to touch the machine.

Every call here is bounded in time and never raises for expected trouble
(missing executable, timeout, access denied). Tests patch these functions.
"""

from __future__ import annotations

import logging
import os
import shutil
import socket
import subprocess
import time
from dataclasses import dataclass
from pathlib import PurePath

import psutil

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    ok: bool
    returncode: int | None = None
    stdout: str = ""
    stderr: str = ""
    error: str | None = None  # set when the command could not run at all

    @property
    def output(self) -> str:
        return self.stdout.strip() or self.stderr.strip()


@dataclass(frozen=True)
class PortOwner:
    pid: int | None
    name: str | None
    cmdline: str = ""

    @property
    def label(self) -> str:
        if self.pid is None:
            return "unknown process"
        return f"{self.name or '?'} (pid {self.pid})"


def which(name: str) -> str | None:
    return shutil.which(name)


def run_command(args: list[str], timeout: float = 5.0) -> CommandResult:
    """Run a command with a hard timeout, capturing text output."""
    try:
        proc = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        return CommandResult(ok=False, error=f"{args[0]}: command not found")
    except subprocess.TimeoutExpired:
        return CommandResult(ok=False, error=f"{args[0]} timed out after {timeout:g}s")
    except OSError as e:
        return CommandResult(ok=False, error=f"{args[0]}: {e}")

    if proc.returncode != 0:
        logger.debug("%s exited %d: %s", args, proc.returncode, proc.stderr.strip()[:200])
    return CommandResult(
        ok=proc.returncode == 0,
        returncode=proc.returncode,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
    )


def find_port_owner(port: int) -> PortOwner | None:
    """Return who is listening on a local TCP port, or None if nobody is.

    May raise psutil.AccessDenied on platforms that restrict connection
    listing; callers report that as an undetermined result.
    """
    for conn in psutil.net_connections(kind="tcp"):
        if conn.status != psutil.CONN_LISTEN or not conn.laddr or conn.laddr.port != port:
            continue
        if conn.pid is None:
            return PortOwner(pid=None, name=None)
        try:
            proc = psutil.Process(conn.pid)
            return PortOwner(pid=conn.pid, name=proc.name(), cmdline=" ".join(proc.cmdline()))
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return PortOwner(pid=conn.pid, name=None)
    return None


SCRIPT_HOSTS = ("node", "bun")


def is_program(keyword: str, name: str | None, cmdline: list[str] | None) -> bool:
    """True when the process *is* keyword, not merely mentions it in an argument.

    Matches the process name, the executable, or, for a JS runtime, a script
    path under a ``keyword`` directory (``node .../node_modules/clawdbot/dist/index.js``).
    """
    keyword = keyword.lower()
    argv = cmdline or []
    if keyword in (name or "").lower():
        return True
    if not argv:
        return False
    exe = PurePath(argv[0]).name.lower()
    if exe.startswith(keyword):
        return True
    if len(argv) > 1 and any(exe.startswith(host) for host in SCRIPT_HOSTS):
        return keyword in (p.lower() for p in PurePath(argv[1]).parts)
    return False


def count_processes(keyword: str) -> int:
    """Count running processes that are keyword programs, excluding this one."""
    own_pid = os.getpid()
    count = 0
    for proc in psutil.process_iter(["pid", "name", "cmdline"]):
        try:
            info = proc.info
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
        if info.get("pid") == own_pid:
            continue
        if is_program(keyword, info.get("name"), info.get("cmdline")):
            count += 1
    return count


def tcp_connect(host: str, port: int, timeout: float = 2.0) -> tuple[bool, float, str | None]:
    """Raw TCP connect. Returns (ok, latency_ms, error)."""
    t0 = time.perf_counter()
    try:
        sock = socket.create_connection((host, port), timeout=timeout)
        sock.close()
        return True, round((time.perf_counter() - t0) * 1000, 1), None
    except OSError as e:
        return False, round((time.perf_counter() - t0) * 1000, 1), f"{type(e).__name__}: {e}"
