"""Memory, disk and CPU checks."""

from __future__ import annotations

import os
import platform
from pathlib import Path

import psutil

from ..health.context import ExecutionContext
from ..health.engine import CheckOutcome, Probe

GB = 1024 ** 3


def nearest_existing(path: Path | None) -> Path:
    """Walk up from path to the first directory that exists (home as fallback)."""
    if path is None:
        return Path(os.path.expanduser("~"))
    for candidate in (path, *path.parents):
        if candidate.exists():
            return candidate
    return Path(path.anchor or os.sep)


def cpu_model() -> str:
    model = platform.processor()
    if not model and Path("/proc/cpuinfo").is_file():
        for line in Path("/proc/cpuinfo").read_text(errors="replace").splitlines():
            if line.lower().startswith("model name"):
                model = line.split(":", 1)[1].strip()
                break
    return model or platform.machine() or "unknown CPU"


class ResourcesProbe(Probe):
    name = "System Resources"
    category = "System Resources"

    def run(self, ctx: ExecutionContext) -> list[CheckOutcome]:
        return [*self._memory(ctx), self._disk(ctx), self._cpu()]

    def _memory(self, ctx: ExecutionContext) -> list[CheckOutcome]:
        mem = psutil.virtual_memory()
        total_gb = mem.total / GB
        free_gb = mem.available / GB

        if total_gb < ctx.min_total_memory_gb:
            total = self.warn(
                "Total Memory", f"{total_gb:.1f} GB (recommended ≥ {ctx.min_total_memory_gb:g} GB)",
            )
        else:
            total = self.passed("Total Memory", f"{total_gb:.1f} GB")

        if free_gb < ctx.min_free_memory_gb:
            free = self.warn(
                "Free Memory", f"{free_gb:.1f} GB available (recommended ≥ {ctx.min_free_memory_gb:g} GB)",
                "Close other applications or add memory",
            )
        else:
            free = self.passed("Free Memory", f"{free_gb:.1f} GB available ({mem.percent:.0f}% used)")
        return [total, free]

    def _disk(self, ctx: ExecutionContext) -> CheckOutcome:
        target = nearest_existing(ctx.config_dir)
        try:
            usage = psutil.disk_usage(str(target))
        except OSError as e:
            return self.warn("Disk Space", f"Could not read disk usage for {target}", str(e))

        free_gb = usage.free / GB
        msg = f"{free_gb:.1f} GB free on volume hosting {target}"
        if free_gb < ctx.disk_fail_gb:
            return self.fail("Disk Space", msg, f"At least {ctx.disk_fail_gb:g} GB free is required")
        if free_gb < ctx.disk_pass_gb:
            return self.warn("Disk Space", msg, f"{ctx.disk_pass_gb:g} GB or more is recommended")
        return self.passed("Disk Space", msg)

    def _cpu(self) -> CheckOutcome:
        cores = psutil.cpu_count(logical=True) or 0
        detail = None
        try:
            load1, load5, load15 = psutil.getloadavg()
            detail = f"load average {load1:.2f} {load5:.2f} {load15:.2f}"
        except (AttributeError, OSError):
            pass
        return self.passed("CPU", f"{cpu_model()} ({cores} logical cores)", detail)
