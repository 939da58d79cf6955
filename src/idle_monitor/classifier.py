"""Decision policy that reconciles a snapshot into one activity state."""

from __future__ import annotations

from typing import Optional

from .config import ClassifierThresholds
from .models import ActivityState, Snapshot


def idle_change(snapshot: Snapshot, previous_idle_seconds: Optional[int]) -> int:
    """Absolute change of the idle counter since the previous tick."""
    return abs(snapshot.idle_seconds - (previous_idle_seconds or 0))


def is_idle_stuck(
    snapshot: Snapshot,
    previous_idle_seconds: Optional[int],
    thresholds: ClassifierThresholds,
) -> bool:
    """A long idle counter that barely moved between samples.

    The OS idle counter keeps climbing while the machine is merely idle; when
    scheduling is suspended it freezes or jumps, so a near-constant large
    value is read as system sleep.
    """
    return (
        snapshot.idle_seconds >= thresholds.stuck_idle_seconds
        and idle_change(snapshot, previous_idle_seconds) < thresholds.stuck_tolerance_seconds
    )


def is_display_asleep(snapshot: Snapshot) -> bool:
    if snapshot.display_powered_off:
        return True
    return not snapshot.brightness.available and not snapshot.displays_detected


def classify(
    snapshot: Snapshot,
    previous_idle_seconds: Optional[int] = None,
    thresholds: Optional[ClassifierThresholds] = None,
) -> ActivityState:
    """Classify a snapshot; the first matching rule wins.

    1. stuck idle counter -> SYSTEM_SLEEP
    2. display powered off, or neither brightness nor displays -> DISPLAY_SLEEP
    3. idle time at or over the threshold -> IDLE
    4. otherwise ACTIVE
    """
    thresholds = thresholds or ClassifierThresholds()
    if is_idle_stuck(snapshot, previous_idle_seconds, thresholds):
        return ActivityState.SYSTEM_SLEEP
    if is_display_asleep(snapshot):
        return ActivityState.DISPLAY_SLEEP
    if snapshot.idle_seconds >= thresholds.idle_seconds:
        return ActivityState.IDLE
    return ActivityState.ACTIVE
