"""Tests for the duration accumulator: transitions, totals and the final flush."""

from datetime import timedelta

import pytest

from conftest import T0
from idle_monitor.accumulator import DurationAccumulator, SessionClosedError
from idle_monitor.models import SESSION_END, TRACKED_STATES, ActivityState

ACTIVE = ActivityState.ACTIVE
IDLE = ActivityState.IDLE
DISPLAY_SLEEP = ActivityState.DISPLAY_SLEEP
SYSTEM_SLEEP = ActivityState.SYSTEM_SLEEP


def at(seconds):
    return T0 + timedelta(seconds=seconds)


def seconds(totals):
    return {state: int(value.total_seconds()) for state, value in totals.items()}


class TestObserve:
    def test_starts_unknown(self):
        acc = DurationAccumulator()
        assert acc.current_state is ActivityState.UNKNOWN
        assert acc.session_started_at is None
        assert sum(acc.totals.values(), timedelta(0)) == timedelta(0)

    def test_first_observation_emits_nothing(self):
        acc = DurationAccumulator()
        assert acc.observe(ACTIVE, at(0)) is None
        assert acc.current_state is ACTIVE
        assert acc.state_started_at == at(0)
        assert acc.session_started_at == at(0)

    def test_same_state_emits_nothing_and_keeps_totals(self):
        acc = DurationAccumulator()
        acc.observe(ACTIVE, at(0))
        for t in (5, 10, 15):
            assert acc.observe(ACTIVE, at(t)) is None
        assert seconds(acc.totals)[ACTIVE] == 0
        assert acc.state_started_at == at(0)

    def test_change_emits_transition_with_duration(self):
        acc = DurationAccumulator()
        acc.observe(ACTIVE, at(0))
        transition = acc.observe(IDLE, at(10))
        assert transition.source is ACTIVE
        assert transition.target is IDLE
        assert transition.duration == timedelta(seconds=10)
        assert transition.at == at(10)
        assert not transition.is_terminal
        assert seconds(acc.totals)[ACTIVE] == 10
        assert acc.state_started_at == at(10)

    def test_unknown_is_rejected(self):
        acc = DurationAccumulator()
        with pytest.raises(ValueError):
            acc.observe(ActivityState.UNKNOWN, at(0))

    def test_accepts_state_values(self):
        acc = DurationAccumulator()
        acc.observe("active", at(0))
        assert acc.observe("active", at(5)) is None
        assert acc.observe("idle", at(10)).source is ACTIVE

    def test_backwards_clock_never_shrinks_totals(self):
        acc = DurationAccumulator()
        acc.observe(ACTIVE, at(10))
        transition = acc.observe(IDLE, at(5))
        assert transition.duration == timedelta(0)
        assert all(value >= timedelta(0) for value in acc.totals.values())


class TestFlush:
    def test_scenario_active_idle_active(self):
        """idle_threshold=60: t0 Active, t10 Idle, t20 Active, flush at t25."""
        acc = DurationAccumulator()
        assert acc.observe(ACTIVE, at(0)) is None
        first = acc.observe(IDLE, at(10))
        second = acc.observe(ACTIVE, at(20))
        assert (first.source, first.target, first.duration) == (ACTIVE, IDLE, timedelta(seconds=10))
        assert (second.source, second.target, second.duration) == (IDLE, ACTIVE, timedelta(seconds=10))

        terminal = acc.flush(at(25))
        assert terminal.is_terminal
        assert terminal.target == SESSION_END
        assert terminal.source is ACTIVE
        assert terminal.duration == timedelta(seconds=5)
        assert seconds(acc.totals) == {ACTIVE: 15, IDLE: 10, DISPLAY_SLEEP: 0, SYSTEM_SLEEP: 0}

    def test_flush_is_idempotent(self):
        acc = DurationAccumulator()
        acc.observe(ACTIVE, at(0))
        terminals = [acc.flush(at(30)), acc.flush(at(40)), acc.flush(at(50))]
        assert terminals[0] is not None
        assert terminals[1:] == [None, None]
        assert seconds(acc.totals)[ACTIVE] == 30
        assert acc.closed

    def test_observe_after_flush_is_rejected(self):
        acc = DurationAccumulator()
        acc.observe(ACTIVE, at(0))
        acc.flush(at(5))
        with pytest.raises(SessionClosedError):
            acc.observe(IDLE, at(10))
        assert seconds(acc.totals)[IDLE] == 0

    def test_flush_before_first_tick(self):
        acc = DurationAccumulator()
        terminal = acc.flush(at(5))
        assert terminal.source is ActivityState.UNKNOWN
        assert terminal.duration == timedelta(0)
        assert sum(acc.totals.values(), timedelta(0)) == timedelta(0)

    def test_totals_sum_to_session_length(self):
        """Any tick sequence plus a flush accounts for every second of the session."""
        sequence = [ACTIVE, ACTIVE, IDLE, IDLE, DISPLAY_SLEEP, SYSTEM_SLEEP, ACTIVE, IDLE, ACTIVE]
        acc = DurationAccumulator()
        t = 3
        for state in sequence:
            acc.observe(state, at(t))
            t += 7
        acc.flush(at(t + 2))
        total = sum(acc.totals.values(), timedelta(0))
        assert total == at(t + 2) - acc.session_started_at
        assert total == acc.session_elapsed(at(t + 2))

    def test_invariant_holds_between_ticks(self):
        acc = DurationAccumulator()
        acc.observe(ACTIVE, at(0))
        acc.observe(IDLE, at(12))
        acc.observe(DISPLAY_SLEEP, at(20))
        now = at(33)
        closed = sum(acc.totals.values(), timedelta(0))
        assert closed + (now - acc.state_started_at) == now - acc.session_started_at


class TestRunningTotals:
    def test_includes_open_interval(self):
        acc = DurationAccumulator()
        acc.observe(ACTIVE, at(0))
        acc.observe(DISPLAY_SLEEP, at(5))
        running = seconds(acc.running_totals(at(15)))
        assert running[ACTIVE] == 5
        assert running[DISPLAY_SLEEP] == 10
        assert seconds(acc.totals)[DISPLAY_SLEEP] == 0

    def test_unknown_has_no_running_time(self):
        acc = DurationAccumulator()
        assert set(acc.running_totals(at(10))) == set(TRACKED_STATES)
        assert sum(acc.running_totals(at(10)).values(), timedelta(0)) == timedelta(0)

    def test_frozen_after_flush(self):
        acc = DurationAccumulator()
        acc.observe(IDLE, at(0))
        acc.flush(at(10))
        assert seconds(acc.running_totals(at(100)))[IDLE] == 10
