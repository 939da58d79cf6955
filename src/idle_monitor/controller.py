"""Session controller: the tick loop, reporting and the final flush."""

from __future__ import annotations

import logging
import signal
import threading
import time
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from .accumulator import DurationAccumulator
from .aggregator import SignalAggregator
from .classifier import classify, idle_change, is_idle_stuck
from .config import MonitorSettings
from .models import ActivityState, Snapshot, StateTransition
from .sinks import ActivityLog, ConsoleSink, DiagnosticLog, SinkWriteFailure

logger = logging.getLogger(__name__)

# Longest uninterrupted sleep between stop-flag checks.
SLEEP_SLICE_SECONDS = 0.25


class SessionController:
    """Samples, classifies and accounts for machine state until asked to stop."""

    def __init__(
        self,
        settings: MonitorSettings,
        aggregator: SignalAggregator,
        activity_log: ActivityLog,
        console: ConsoleSink,
        diagnostic_log: Optional[DiagnosticLog] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.settings = settings
        self._aggregator = aggregator
        self._activity_log = activity_log
        self._console = console
        self._diagnostic_log = diagnostic_log
        self._clock = clock
        self._thresholds = settings.thresholds
        self._accumulator = DurationAccumulator()
        self._stop_requested = False
        self._stop_event: Optional[threading.Event] = None
        self._previous_idle: Optional[int] = None
        self._last_snapshot: Optional[Snapshot] = None
        self._last_diagnostic_at: Optional[datetime] = None
        self._finished = False

    @property
    def accumulator(self) -> DurationAccumulator:
        return self._accumulator

    @property
    def state(self) -> ActivityState:
        return self._accumulator.current_state

    @property
    def last_snapshot(self) -> Optional[Snapshot]:
        return self._last_snapshot

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def diagnostics_active(self) -> bool:
        return self.settings.diagnostics_enabled and self._diagnostic_log is not None

    @property
    def stop_requested(self) -> bool:
        if self._stop_requested:
            return True
        return self._stop_event is not None and self._stop_event.is_set()

    def request_stop(self) -> None:
        """Ask the loop to stop at the next iteration boundary.

        Only assigns an attribute, so it is safe to call from a signal
        handler even while the main thread is inside the loop.
        """
        self._stop_requested = True

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGINT, self._handle_signal)
        signal.signal(signal.SIGTERM, self._handle_signal)

    def start(self) -> None:
        """Print the banner and record the session start."""
        self._console.banner(self._banner_lines())
        self._activity_log.session_started(self._clock(), diagnostics=self.diagnostics_active)

    def tick(self) -> Optional[StateTransition]:
        snapshot = self._aggregator.sample()
        if self.stop_requested:
            # Probes interrupted by the stop may have read as unavailable.
            logger.debug("Stop requested while sampling; discarding snapshot.")
            return None
        at = snapshot.captured_at
        state = classify(snapshot, self._previous_idle, self._thresholds)

        if self._diagnostics_due(at):
            self._write_diagnostics(state, snapshot)

        transition = self._accumulator.observe(state, at)
        if transition is not None:
            logger.debug("State changed %s -> %s", transition.source, transition.target_label)
            self._emit(self._activity_log.transition, transition)
            self._emit(self._console.transition, transition)

        self._emit(
            self._console.status,
            at,
            self._accumulator.current_state,
            snapshot,
            self._accumulator.running_totals(at),
        )
        self._previous_idle = snapshot.idle_seconds
        self._last_snapshot = snapshot
        return transition

    def run(self, stop_event: Optional[threading.Event] = None) -> dict[ActivityState, timedelta]:
        """Tick until stopped, then flush. Returns the final per-state totals."""
        if stop_event is not None:
            self._stop_event = stop_event
        interval = self.settings.check_interval.total_seconds()
        self.start()
        logger.info("Monitoring started; logging to %s", self._activity_log.path)
        try:
            while not self.stop_requested:
                self.tick()
                self._sleep(interval)
        except KeyboardInterrupt:
            logger.info("Monitor interrupted; closing session.")
        finally:
            self.finish()
        return self._accumulator.totals

    def finish(self) -> Optional[StateTransition]:
        """Close the session exactly once; later calls return ``None``."""
        if self._finished:
            return None
        self._finished = True
        at = self._clock()
        transition = self._accumulator.flush(at)
        totals = self._accumulator.totals
        if transition is not None:
            self._emit(self._activity_log.transition, transition)
            self._emit(self._console.transition, transition)
        self._emit(self._console.summary, totals)
        self._emit(self._activity_log.session_ended, at, totals)
        logger.info("Monitoring stopped.")
        return transition

    def _sleep(self, seconds: float) -> None:
        deadline = time.monotonic() + seconds
        while not self.stop_requested:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            time.sleep(min(remaining, SLEEP_SLICE_SECONDS))

    def _diagnostics_due(self, at: datetime) -> bool:
        if not self.diagnostics_active:
            return False
        if self._last_diagnostic_at is None:
            return True
        return at - self._last_diagnostic_at >= self.settings.diagnostic_interval

    def _write_diagnostics(self, state: ActivityState, snapshot: Snapshot) -> None:
        if self._diagnostic_log is None:
            return
        self._emit(
            self._diagnostic_log.snapshot,
            state,
            snapshot,
            idle_change(snapshot, self._previous_idle),
            is_idle_stuck(snapshot, self._previous_idle, self._thresholds),
        )
        self._last_diagnostic_at = snapshot.captured_at

    def _emit(self, write: Callable[..., None], *args: Any) -> None:
        try:
            write(*args)
        except (SinkWriteFailure, OSError):
            logger.exception("Failed to write %s output.", getattr(write, "__qualname__", write))

    def _banner_lines(self) -> list[str]:
        lines = [
            "Starting idle time monitor...",
            f"Idle threshold: {self.settings.idle_threshold.total_seconds():g} seconds",
            f"Check interval: {self.settings.check_interval.total_seconds():g} seconds",
            f"Activity log: {self._activity_log.path}",
        ]
        if self.diagnostics_active and self._diagnostic_log is not None:
            lines.append(
                f"Debug logging: ENABLED ({self._diagnostic_log.path}, every "
                f"{self.settings.diagnostic_interval.total_seconds():g}s)"
            )
        lines.append("Press Ctrl+C to stop and see summary")
        return lines

    def _handle_signal(self, signum: int, frame: Any) -> None:
        self.request_stop()
