"""Per-state duration accounting for one monitoring session."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from .models import (
    SESSION_END,
    TRACKED_STATES,
    ActivityState,
    StateTransition,
    zero_totals,
)

logger = logging.getLogger(__name__)


class SessionClosedError(RuntimeError):
    """Raised when a flushed accumulator is fed another observation."""


class DurationAccumulator:
    """State machine that tracks the current state and closed-out totals.

    Totals only change when an interval is closed, either by a transition or
    by the final flush, so tick jitter never skews the accounting. The session
    starts at the first observed state; ``UNKNOWN`` time is never counted.
    """

    def __init__(self) -> None:
        self._current = ActivityState.UNKNOWN
        self._state_started_at: Optional[datetime] = None
        self._session_started_at: Optional[datetime] = None
        self._totals = zero_totals()
        self._closed = False

    @property
    def current_state(self) -> ActivityState:
        return self._current

    @property
    def state_started_at(self) -> Optional[datetime]:
        return self._state_started_at

    @property
    def session_started_at(self) -> Optional[datetime]:
        return self._session_started_at

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def totals(self) -> dict[ActivityState, timedelta]:
        return dict(self._totals)

    def observe(self, state: ActivityState, at: datetime) -> Optional[StateTransition]:
        """Feed the state classified at ``at``; return the transition it causes, if any."""
        if self._closed:
            raise SessionClosedError("Session already flushed.")
        state = ActivityState(state)
        if state not in TRACKED_STATES:
            raise ValueError(f"Cannot observe state {state!r}")

        if self._current is ActivityState.UNKNOWN:
            self._current = state
            self._state_started_at = at
            self._session_started_at = at
            logger.debug("Session started in %s at %s", state, at)
            return None

        if state is self._current:
            return None

        duration = self._close_interval(at)
        transition = StateTransition(source=self._current, target=state, duration=duration, at=at)
        self._current = state
        self._state_started_at = max(at, self._state_started_at)
        return transition

    def flush(self, at: datetime) -> Optional[StateTransition]:
        """Close the in-progress interval and freeze. Only the first call does anything."""
        if self._closed:
            return None
        duration = self._close_interval(at)
        self._closed = True
        return StateTransition(source=self._current, target=SESSION_END, duration=duration, at=at)

    def running_totals(self, at: datetime) -> dict[ActivityState, timedelta]:
        """Totals including the still-open interval up to ``at``."""
        totals = self.totals
        if not self._closed and self._current in totals:
            totals[self._current] += self._open_duration(at)
        return totals

    def session_elapsed(self, at: datetime) -> timedelta:
        if self._session_started_at is None:
            return timedelta(0)
        return max(at - self._session_started_at, timedelta(0))

    def _open_duration(self, at: datetime) -> timedelta:
        if self._state_started_at is None:
            return timedelta(0)
        # Clock stepping backwards must not shrink totals.
        return max(at - self._state_started_at, timedelta(0))

    def _close_interval(self, at: datetime) -> timedelta:
        duration = self._open_duration(at)
        if self._current in self._totals:
            self._totals[self._current] += duration
        return duration
