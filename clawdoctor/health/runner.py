"""Check runner — executes the probe battery category by category.

Each probe call goes through a single isolation point (:meth:`CheckRunner._invoke`)
that turns exceptions, malformed results and timeouts into WARN outcomes, so
one broken probe can never stop the rest of the run.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any

from .context import ExecutionContext
from .engine import CheckOutcome, Probe, ResultAggregator

logger = logging.getLogger(__name__)

CategoryCallback = Callable[[str, list[CheckOutcome]], Any]


def group_by_category(probes: Iterable[Probe]) -> list[tuple[str, list[Probe]]]:
    """Group probes by category, keeping first-registration order."""
    groups: dict[str, list[Probe]] = {}
    for probe in probes:
        groups.setdefault(probe.category, []).append(probe)
    return list(groups.items())


class CheckRunner:
    """Runs every registered probe and feeds outcomes to the aggregator.

    Sequential by default for readable, deterministic console output. With
    ``parallel=True`` all probes start up front, at most ``max_workers`` at a
    time, but outcomes are still recorded category by category in registration order.
    Probes always run on a daemon thread so the per-probe timeout can be
    enforced; a probe that overruns is abandoned, not killed.
    """

    def __init__(
        self,
        ctx: ExecutionContext,
        probes: Sequence[Probe],
        aggregator: ResultAggregator | None = None,
        *,
        parallel: bool = False,
        max_workers: int = 4,
        probe_timeout: float = 30.0,
        run_deadline: float | None = None,
        on_category: CategoryCallback | None = None,
    ) -> None:
        self.ctx = ctx
        self.probes = list(probes)
        self.aggregator = aggregator or ResultAggregator()
        self.parallel = parallel
        self.max_workers = max(max_workers, 1)
        self.probe_timeout = probe_timeout
        self.run_deadline = run_deadline
        self.on_category = on_category  # console output hook
        self._deadline_at: float | None = None
        self._expired = False

    @property
    def categories(self) -> list[str]:
        return [name for name, _ in group_by_category(self.probes)]

    def run(self) -> ResultAggregator:
        """Execute all categories and return the populated aggregator."""
        t0 = time.monotonic()
        self._deadline_at = t0 + self.run_deadline if self.run_deadline is not None else None
        self._expired = False

        groups = group_by_category(self.probes)
        if self.parallel:
            self._run_parallel(groups)
        else:
            self._run_sequential(groups)

        totals = self.aggregator.totals()
        logger.info(
            "Run complete in %.1fs: %d checks (%d pass, %d warn, %d fail)",
            time.monotonic() - t0, totals.total, totals.passed, totals.warned, totals.failed,
        )
        return self.aggregator

    # -- execution modes -------------------------------------------------------

    def _run_sequential(self, groups: list[tuple[str, list[Probe]]]) -> None:
        for category, probes in groups:
            outcomes: list[CheckOutcome] = []
            for probe in probes:
                if self._deadline_passed():
                    outcomes.extend(self._skipped(probe))
                    continue
                outcomes.extend(self._collect(probe, self._start(probe)))
            self._record_category(category, outcomes)

    def _run_parallel(self, groups: list[tuple[str, list[Probe]]]) -> None:
        slots = threading.BoundedSemaphore(self.max_workers)
        futures: dict[int, Future[list[CheckOutcome]]] = {}
        for _, probes in groups:
            for probe in probes:
                futures[id(probe)] = self._start(probe, slots)

        for category, probes in groups:
            outcomes: list[CheckOutcome] = []
            for probe in probes:
                outcomes.extend(self._collect(probe, futures[id(probe)]))
            self._record_category(category, outcomes)

    def _start(
        self, probe: Probe, slots: threading.BoundedSemaphore | None = None,
    ) -> Future[list[CheckOutcome]]:
        """Run a probe on its own daemon thread and return its future.

        Daemon threads never delay interpreter exit, so a probe abandoned
        after a timeout cannot hold back the process exit code.
        """
        future: Future[list[CheckOutcome]] = Future()

        def work() -> None:
            if slots is not None:
                slots.acquire()
            try:
                if not future.set_running_or_notify_cancel():
                    return
                try:
                    future.set_result(self._invoke(probe))
                except BaseException as e:
                    future.set_exception(e)
            finally:
                if slots is not None:
                    slots.release()

        threading.Thread(target=work, name=f"probe-{probe.name}", daemon=True).start()
        return future

    # -- isolation boundary ----------------------------------------------------

    def _invoke(self, probe: Probe) -> list[CheckOutcome]:
        """Run one probe, converting any fault into a WARN outcome."""
        logger.debug("Running probe %s/%s", probe.category, probe.name)
        t0 = time.perf_counter()
        try:
            outcomes = list(probe.run(self.ctx) or [])
            bad = [o for o in outcomes if not isinstance(o, CheckOutcome)]
            if bad:
                raise TypeError(
                    f"probe returned {len(bad)} non-CheckOutcome item(s), "
                    f"first was {type(bad[0]).__name__}"
                )
        except Exception as e:
            logger.exception("Probe %s/%s raised", probe.category, probe.name)
            return [probe.warn(probe.name, f"Probe failed: {type(e).__name__}", str(e) or None)]

        logger.debug(
            "Probe %s/%s produced %d outcome(s) in %.0fms",
            probe.category, probe.name, len(outcomes), (time.perf_counter() - t0) * 1000,
        )
        return outcomes

    def _collect(
        self, probe: Probe, future: Future[list[CheckOutcome]],
    ) -> list[CheckOutcome]:
        """Wait for a probe's future, turning an overrun into a WARN or a skip."""
        timeout = self.probe_timeout
        deadline_bound = False
        if self._deadline_at is not None:
            remaining = max(0.0, self._deadline_at - time.monotonic())
            deadline_bound = remaining < timeout
            timeout = min(timeout, remaining)
        try:
            return future.result(timeout=timeout)
        except FutureTimeout:
            future.cancel()
            if deadline_bound:
                self._expired = True
                return self._skipped(probe)
            logger.warning("Probe %s/%s timed out after %.0fs", probe.category, probe.name, timeout)
            return [probe.warn(probe.name, f"Probe timed out after {timeout:g}s")]

    def _skipped(self, probe: Probe) -> list[CheckOutcome]:
        logger.warning("Run deadline reached, skipping %s/%s", probe.category, probe.name)
        return [probe.warn(probe.name, "skipped: timeout")]

    def _deadline_passed(self) -> bool:
        if self._expired:
            return True
        return self._deadline_at is not None and time.monotonic() >= self._deadline_at

    def _record_category(self, category: str, outcomes: list[CheckOutcome]) -> None:
        for outcome in outcomes:
            self.aggregator.record(outcome)
        if self.on_category:
            self.on_category(category, outcomes)
