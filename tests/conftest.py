"""Shared fixtures: scripted clock, snapshot factory and fake signal sources."""

from datetime import datetime, timedelta

import pytest

from idle_monitor.models import SignalKind, SignalReading, Snapshot
from idle_monitor.probes import SignalSource

T0 = datetime(2024, 3, 1, 9, 0, 0)


class FakeClock:
    """Callable clock that only moves when a test advances it."""

    def __init__(self, start=T0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)
        return self.now

    def at(self, seconds):
        self.now = T0 + timedelta(seconds=seconds)
        return self.now


class ScriptedSource(SignalSource):
    """Returns queued readings in order, repeating the last one."""

    def __init__(self, kind, readings):
        super().__init__()
        self.kind = kind
        self._readings = list(readings)
        self.calls = 0

    def _query(self):
        reading = self._readings[min(self.calls, len(self._readings) - 1)]
        self.calls += 1
        return reading


def make_snapshot(
    idle=0,
    display_power=4,
    brightness=512,
    display_count=1,
    power_summary="Now drawing from 'AC Power'",
    at=T0,
):
    """Build a snapshot; ``None`` for a signal marks it unavailable."""

    def reading(value, fallback=None):
        if value is None:
            return SignalReading(value=fallback, available=False)
        return SignalReading(value=value, available=True, raw=str(value))

    return Snapshot(
        captured_at=at,
        idle_duration=reading(idle, fallback=0),
        display_power=reading(display_power),
        brightness=reading(brightness),
        display_count=reading(display_count),
        power_summary=reading(power_summary, fallback="N/A"),
    )


def available(value):
    return SignalReading(value=value, available=True, raw=str(value))


def scripted_sources(idle=(0,), display_power=(4,), brightness=(512,), display_count=(1,)):
    """One scripted source per signal; pass ``None`` entries for failed probes."""

    def readings(values, fallback=None):
        return [
            SignalReading(value=fallback, available=False) if v is None else available(v)
            for v in values
        ]

    return [
        ScriptedSource(SignalKind.IDLE_DURATION, readings(idle, fallback=0)),
        ScriptedSource(SignalKind.DISPLAY_POWER, readings(display_power)),
        ScriptedSource(SignalKind.BRIGHTNESS, readings(brightness)),
        ScriptedSource(SignalKind.DISPLAY_COUNT, readings(display_count)),
        ScriptedSource(SignalKind.POWER_SUMMARY, readings(["AC Power"], fallback="N/A")),
    ]


@pytest.fixture
def clock():
    return FakeClock()
