"""Text rendering for log records, the live status line and the session summary."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Mapping, Optional, Union

from .models import TRACKED_STATES, ActivityState, SignalReading, Snapshot, StateTransition

TIMESTAMP_FMT = "%Y-%m-%d %H:%M:%S"
RULE = "=" * 60

_STATUS_ABBREVIATIONS = {
    ActivityState.ACTIVE: "Active",
    ActivityState.IDLE: "Idle",
    ActivityState.DISPLAY_SLEEP: "DispSleep",
    ActivityState.SYSTEM_SLEEP: "SysSleep",
}


def format_duration(seconds: Union[float, timedelta]) -> str:
    if isinstance(seconds, timedelta):
        seconds = seconds.total_seconds()
    total_seconds = int(round(seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_timestamp(at: datetime) -> str:
    return at.strftime(TIMESTAMP_FMT)


def transition_record(transition: StateTransition) -> str:
    return (
        f"{format_timestamp(transition.at)} - Changed from {transition.source.value} "
        f"to {transition.target_label} (duration: {format_duration(transition.duration)})"
    )


def transition_notice(transition: StateTransition) -> str:
    return (
        f"{format_timestamp(transition.at)} - {transition.source.value} -> "
        f"{transition.target_label} ({format_duration(transition.duration)})"
    )


def totals_record(totals: Mapping[ActivityState, timedelta]) -> str:
    return ", ".join(
        f"{state.label}: {format_duration(totals.get(state, timedelta(0)))}"
        for state in TRACKED_STATES
    )


def _reading_text(reading: SignalReading) -> str:
    if not reading.available or reading.value is None:
        return "?"
    return str(reading.value)


def status_line(
    at: datetime,
    state: ActivityState,
    snapshot: Optional[Snapshot],
    running_totals: Mapping[ActivityState, timedelta],
) -> str:
    """One-line live view: state, raw signal values and running totals."""
    if snapshot is not None:
        signals = (
            f"idle:{snapshot.idle_seconds}s | wrangler:{_reading_text(snapshot.display_power)}"
            f" | bright:{_reading_text(snapshot.brightness)}"
            f" | displays:{_reading_text(snapshot.display_count)}"
        )
    else:
        signals = "idle:0s | wrangler:? | bright:? | displays:?"
    totals = " ".join(
        f"{_STATUS_ABBREVIATIONS[tracked]}:{format_duration(running_totals.get(tracked, timedelta(0)))}"
        for tracked in TRACKED_STATES
    )
    return f"{format_timestamp(at)} - {state.display_name} | {signals} | {totals}"


def percentages(totals: Mapping[ActivityState, timedelta]) -> dict[ActivityState, float]:
    """Share of the session per state; empty when no time was recorded."""
    session = sum((totals.get(state, timedelta(0)) for state in TRACKED_STATES), timedelta(0))
    if session <= timedelta(0):
        return {}
    return {
        state: totals.get(state, timedelta(0)) / session * 100 for state in TRACKED_STATES
    }


def render_summary(totals: Mapping[ActivityState, timedelta]) -> str:
    session = sum((totals.get(state, timedelta(0)) for state in TRACKED_STATES), timedelta(0))
    lines = [RULE, "SESSION SUMMARY", RULE]
    for state in TRACKED_STATES:
        label = f"Total {state.label} Time:"
        lines.append(f"{label:<26}{format_duration(totals.get(state, timedelta(0)))}")
    lines.append(f"{'Total Session Time:':<26}{format_duration(session)}")
    for state, share in percentages(totals).items():
        label = f"{state.label} Percentage:"
        lines.append(f"{label:<26}{share:.1f}%")
    lines.append(RULE)
    return "\n".join(lines)
