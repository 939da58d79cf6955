"""Output sinks: the activity log, the diagnostic log and the console."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Mapping, Optional, TextIO

from .models import ActivityState, SignalReading, Snapshot, StateTransition
from .reporting import (
    format_timestamp,
    render_summary,
    status_line,
    totals_record,
    transition_notice,
    transition_record,
)

STATUS_WIDTH = 120


class SinkWriteFailure(Exception):
    """A log file could not be opened or written."""


class AppendOnlyFile:
    """Line-buffered text file opened in append mode."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._fh: Optional[TextIO] = None

    def open(self) -> None:
        if self._fh is not None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self.path.open("a", encoding="utf-8", buffering=1)
        except OSError as exc:
            raise SinkWriteFailure(f"Cannot open {self.path}: {exc}") from exc

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def write_lines(self, *lines: str) -> None:
        if self._fh is None:
            raise SinkWriteFailure(f"{self.path} is not open")
        try:
            self._fh.write("".join(f"{line}\n" for line in lines))
        except OSError as exc:
            raise SinkWriteFailure(f"Cannot write {self.path}: {exc}") from exc

    def __enter__(self) -> "AppendOnlyFile":
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class ActivityLog(AppendOnlyFile):
    """Session start/end records and one line per state change."""

    def session_started(self, at: datetime, diagnostics: bool = False) -> None:
        suffix = " (DEBUG MODE)" if diagnostics else ""
        self.write_lines(f"{format_timestamp(at)} - SESSION STARTED{suffix}")

    def transition(self, transition: StateTransition) -> None:
        self.write_lines(transition_record(transition))

    def session_ended(self, at: datetime, totals: Mapping[ActivityState, timedelta]) -> None:
        self.write_lines("", f"{format_timestamp(at)} - SESSION ENDED", totals_record(totals), "")


class DiagnosticLog(AppendOnlyFile):
    """Periodic dump of the full snapshot and raw probe outputs."""

    def snapshot(
        self,
        state: ActivityState,
        snapshot: Snapshot,
        idle_change: int,
        idle_stuck: bool,
    ) -> None:
        rule = "=" * 50

        def flag(value: bool) -> str:
            return "YES" if value else "NO"

        def value_of(reading: SignalReading) -> str:
            return "N/A" if reading.value is None else str(reading.value)

        wrangler_sleep = (
            flag(snapshot.display_powered_off) if snapshot.display_power.available else "UNKNOWN"
        )
        self.write_lines(
            "",
            f"{format_timestamp(snapshot.captured_at)} - DEBUG INFO",
            rule,
            f"Current State: {state.value}",
            f"Idle Time: {snapshot.idle_seconds}s",
            f"Idle Change: {idle_change}s",
            f"Display Wrangler State: {value_of(snapshot.display_power)}",
            f"Display Sleep (Wrangler): {wrangler_sleep}",
            f"Brightness Value: {value_of(snapshot.brightness)}",
            f"Brightness Available: {flag(snapshot.brightness.available)}",
            f"Display Count: {value_of(snapshot.display_count)}",
            f"Displays Detected: {flag(snapshot.displays_detected)}",
            f"Idle Stuck Pattern: {flag(idle_stuck)}",
            "",
            "Raw Command Outputs:",
            f"Idle: {snapshot.idle_duration.raw}",
            f"Wrangler: {snapshot.display_power.raw}",
            f"Brightness: {snapshot.brightness.raw}",
            f"Displays: {snapshot.display_count.raw}",
            f"PMSet Info: {snapshot.power_summary.raw}",
            rule,
        )


class ConsoleSink:
    """Writes the banner, an overwritten status line and the final summary."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream or sys.stdout

    def _write(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()

    def banner(self, lines: list[str]) -> None:
        self._write("\n".join(lines) + "\n\n")

    def status(
        self,
        at: datetime,
        state: ActivityState,
        snapshot: Optional[Snapshot],
        running_totals: Mapping[ActivityState, timedelta],
    ) -> None:
        clear = "\r" + " " * STATUS_WIDTH + "\r"
        self._write(clear + status_line(at, state, snapshot, running_totals))

    def transition(self, transition: StateTransition) -> None:
        self._write(f"\n{transition_notice(transition)}\n")

    def summary(self, totals: Mapping[ActivityState, timedelta]) -> None:
        self._write(f"\n{render_summary(totals)}\n")
