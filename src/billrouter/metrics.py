"""Cycle timing and outcome counters."""

import time
from pathlib import Path
from typing import Optional

from .models import CycleReport, MessageOutcome, OutcomeStatus


class MetricsCollector:
    """Collects named timers for one polling cycle."""

    def __init__(self):
        self._start_times: dict[str, float] = {}

    def start_timer(self, name: str) -> None:
        """Start a named timer."""
        self._start_times[name] = time.perf_counter()

    def stop_timer(self, name: str) -> float:
        """Stop a named timer and return elapsed time."""
        if name not in self._start_times:
            return 0.0
        elapsed = time.perf_counter() - self._start_times[name]
        del self._start_times[name]
        return elapsed

    @staticmethod
    def create_cycle_report(
        outcomes: list[MessageOutcome],
        duration_sec: float,
        cycle_dir: Optional[Path] = None,
    ) -> CycleReport:
        """Aggregate per-message outcomes into a cycle report."""

        def count(status: OutcomeStatus) -> int:
            return sum(1 for outcome in outcomes if outcome.status is status)

        return CycleReport(
            cycle_dir=cycle_dir,
            messages_seen=len(outcomes),
            succeeded=count(OutcomeStatus.SUCCEEDED),
            failed=count(OutcomeStatus.FAILED),
            skipped=count(OutcomeStatus.SKIPPED),
            route_failures=sum(1 for outcome in outcomes if outcome.route and not outcome.route.moved),
            duration_sec=duration_sec,
            outcomes=outcomes,
        )
