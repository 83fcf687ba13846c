"""Gateway / bridge port ownership, worker process count, live connectivity."""

from __future__ import annotations

import logging

import psutil

from ..health.context import ExecutionContext
from ..health.engine import CheckOutcome, Probe
from . import system

logger = logging.getLogger(__name__)

# Process names that legitimately own the gateway/bridge ports
OWN_PROCESS_NAMES = ("node", "clawdbot", "bun")
WORKER_KEYWORD = "clawdbot"
MAX_WORKERS = 2


def is_own_process(owner: system.PortOwner) -> bool:
    name = (owner.name or "").lower()
    cmdline = owner.cmdline.lower()
    return any(own in name for own in OWN_PROCESS_NAMES) or WORKER_KEYWORD in cmdline


class ServicesProbe(Probe):
    name = "Gateway Services"
    category = "Gateway Services"

    def run(self, ctx: ExecutionContext) -> list[CheckOutcome]:
        outcomes = [
            self._port("Gateway Port", ctx.gateway_port),
            self._port("Bridge Port", ctx.bridge_port),
            self._workers(),
            self._connectivity(ctx),
        ]
        return outcomes

    def _port(self, label: str, port: int) -> CheckOutcome:
        check = f"{label} {port}"
        try:
            owner = system.find_port_owner(port)
        except psutil.AccessDenied:
            return self.warn(check, "Could not inspect listening sockets (access denied)",
                             "Re-run with elevated privileges to see port owners")
        except (psutil.Error, OSError) as e:
            return self.warn(check, "Port lookup failed", f"{type(e).__name__}: {e}")

        if owner is None:
            return self.warn(check, "Service not running", f"Nothing is listening on port {port}")
        if owner.pid is None or owner.name is None:
            return self.warn(check, f"Port {port} in use by an unidentified process",
                             f"pid={owner.pid}")
        if is_own_process(owner):
            return self.passed(check, f"Listening ({owner.label})")
        return self.fail(
            check, f"Port conflict: {owner.label} is using port {port}",
            f"{owner.label}: {owner.cmdline or owner.name}. Stop it or change the port",
        )

    def _workers(self) -> CheckOutcome:
        try:
            count = system.count_processes(WORKER_KEYWORD)
        except (psutil.Error, OSError) as e:
            return self.warn("Worker Processes", "Could not enumerate processes", str(e))
        if count > MAX_WORKERS:
            return self.warn(
                "Worker Processes", f"{count} {WORKER_KEYWORD} processes running",
                "More than expected; stale processes may hold ports. Check `ps aux | grep clawdbot`",
            )
        return self.passed("Worker Processes", f"{count} {WORKER_KEYWORD} process(es) running")

    def _connectivity(self, ctx: ExecutionContext) -> CheckOutcome:
        ok, latency, error = system.tcp_connect("127.0.0.1", ctx.gateway_port, ctx.connect_timeout)
        if ok:
            return self.passed("Gateway Connectivity", f"Connected in {latency:.0f}ms")
        return self.warn(
            "Gateway Connectivity", f"Cannot connect to 127.0.0.1:{ctx.gateway_port}", error,
        )
