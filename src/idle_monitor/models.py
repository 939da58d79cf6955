"""Domain models for sampled signals, activity states and transitions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Union


class SignalKind(str, Enum):
    IDLE_DURATION = "idle_duration"
    DISPLAY_POWER = "display_power"
    BRIGHTNESS = "brightness"
    DISPLAY_COUNT = "display_count"
    POWER_SUMMARY = "power_summary"


class ActivityState(str, Enum):
    """Classified machine state. ``UNKNOWN`` only exists before the first tick."""

    UNKNOWN = "unknown"
    ACTIVE = "active"
    IDLE = "idle"
    DISPLAY_SLEEP = "display_sleep"
    SYSTEM_SLEEP = "system_sleep"

    @property
    def display_name(self) -> str:
        return self.value.upper()

    @property
    def label(self) -> str:
        return _LABELS[self]

    def __str__(self) -> str:
        return self.value


_LABELS = {
    ActivityState.UNKNOWN: "Unknown",
    ActivityState.ACTIVE: "Active",
    ActivityState.IDLE: "Idle",
    ActivityState.DISPLAY_SLEEP: "Display Sleep",
    ActivityState.SYSTEM_SLEEP: "System Sleep",
}

TRACKED_STATES: tuple[ActivityState, ...] = (
    ActivityState.ACTIVE,
    ActivityState.IDLE,
    ActivityState.DISPLAY_SLEEP,
    ActivityState.SYSTEM_SLEEP,
)

SESSION_END = "session_end"


@dataclass(frozen=True, slots=True)
class SignalReading:
    """One probe result: the parsed value, whether it was read, and the raw output."""

    value: Union[int, str, None]
    available: bool
    raw: str = "N/A"


@dataclass(frozen=True, slots=True)
class Snapshot:
    """All signal readings captured during one tick."""

    captured_at: datetime
    idle_duration: SignalReading
    display_power: SignalReading
    brightness: SignalReading
    display_count: SignalReading
    power_summary: SignalReading

    @property
    def idle_seconds(self) -> int:
        if not self.idle_duration.available or self.idle_duration.value is None:
            return 0
        return int(self.idle_duration.value)

    @property
    def display_powered_off(self) -> bool:
        return self.display_power.available and self.display_power.value == 0

    @property
    def displays_detected(self) -> bool:
        return (
            self.display_count.available
            and self.display_count.value is not None
            and int(self.display_count.value) > 0
        )

    def reading(self, kind: SignalKind) -> SignalReading:
        return getattr(self, kind.value)


@dataclass(frozen=True, slots=True)
class StateTransition:
    """A closed-out interval: ``source`` lasted ``duration`` until ``at``."""

    source: ActivityState
    target: Union[ActivityState, str]
    duration: timedelta
    at: datetime

    @property
    def is_terminal(self) -> bool:
        return self.target == SESSION_END

    @property
    def target_label(self) -> str:
        if isinstance(self.target, ActivityState):
            return self.target.value
        return self.target


def zero_totals() -> dict[ActivityState, timedelta]:
    return {state: timedelta(0) for state in TRACKED_STATES}

