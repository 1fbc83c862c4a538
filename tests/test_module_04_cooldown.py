"""
Tests for Module 04 — Incident Cooldown Tracker.
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from dustalert.cooldown.tracker import CooldownState, CooldownTracker

T0 = datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc)


def _at(minutes: float) -> datetime:
    return T0 + timedelta(minutes=minutes)


def _tracker(incident=10, notification=10) -> CooldownTracker:
    return CooldownTracker(timedelta(minutes=incident), timedelta(minutes=notification))


class TestInitialState:
    def test_starts_idle(self):
        tracker = _tracker()
        for pollutant in ("PM10", "PM2.5"):
            assert tracker.state(pollutant) == CooldownState()

    def test_first_episode_alerts_and_arms_timers(self):
        tracker = _tracker()
        assert tracker.evaluate("PM10", True, T0) is True
        state = tracker.state("PM10")
        assert state.incident_started_at == T0
        assert state.last_notified_at == T0

    def test_unknown_pollutant_raises(self):
        with pytest.raises(KeyError):
            _tracker().evaluate("NO2", True, T0)


class TestPersistingEpisode:
    def test_within_window_suppressed(self):
        tracker = _tracker()
        tracker.evaluate("PM10", True, _at(0))
        assert tracker.evaluate("PM10", True, _at(3)) is False

    def test_suppression_leaves_state_untouched(self):
        tracker = _tracker()
        tracker.evaluate("PM10", True, _at(0))
        tracker.evaluate("PM10", True, _at(3))
        assert tracker.state("PM10").last_notified_at == _at(0)
        assert tracker.state("PM10").incident_started_at == _at(0)

    def test_realerts_once_window_elapsed(self):
        tracker = _tracker()
        results = [tracker.evaluate("PM10", True, _at(m)) for m in (0, 3, 12)]
        assert results == [True, False, True]
        assert tracker.state("PM10").last_notified_at == _at(12)

    def test_exactly_window_apart_alerts(self):
        tracker = _tracker()
        tracker.evaluate("PM10", True, _at(0))
        assert tracker.evaluate("PM10", True, _at(10)) is True

    def test_just_under_window_suppressed(self):
        tracker = _tracker()
        tracker.evaluate("PM10", True, _at(0))
        assert tracker.evaluate("PM10", True, _at(0) + timedelta(minutes=10, seconds=-1)) is False

    def test_zero_windows_alert_every_cycle(self):
        tracker = _tracker(0, 0)
        assert all(tracker.evaluate("PM10", True, _at(m)) for m in (0, 0, 1))


class TestDivergingWindows:
    def test_long_notification_window_dominates(self):
        tracker = _tracker(incident=1, notification=10)
        assert [tracker.evaluate("PM10", True, _at(m)) for m in (0, 5, 10)] == [True, False, True]

    def test_long_incident_window_dominates(self):
        tracker = _tracker(incident=10, notification=1)
        assert [tracker.evaluate("PM10", True, _at(m)) for m in (0, 5, 10)] == [True, False, True]


class TestEpisodeEnd:
    def test_no_episode_resets_timers(self):
        tracker = _tracker()
        tracker.evaluate("PM10", True, _at(0))
        assert tracker.evaluate("PM10", False, _at(1)) is False
        assert tracker.state("PM10") == CooldownState()

    def test_new_episode_after_reset_alerts_immediately(self):
        tracker = _tracker(incident=60, notification=60)
        results = [
            tracker.evaluate("PM10", True, _at(0)),
            tracker.evaluate("PM10", False, _at(1)),
            tracker.evaluate("PM10", True, _at(2)),
        ]
        assert results == [True, False, True]

    def test_no_episode_while_idle_never_alerts(self):
        tracker = _tracker()
        assert tracker.evaluate("PM10", False, T0) is False
        assert tracker.state("PM10") == CooldownState()


class TestIndependence:
    def test_pollutants_do_not_interact(self):
        tracker = _tracker()
        assert tracker.evaluate("PM10", True, _at(0)) is True
        assert tracker.evaluate("PM2.5", True, _at(1)) is True
        assert tracker.evaluate("PM10", True, _at(2)) is False

    def test_reset_of_one_type_keeps_other(self):
        tracker = _tracker()
        tracker.evaluate("PM10", True, _at(0))
        tracker.evaluate("PM2.5", True, _at(0))
        tracker.evaluate("PM2.5", False, _at(1))
        assert tracker.state("PM10").last_notified_at == _at(0)
        assert tracker.state("PM2.5") == CooldownState()


class TestConcurrency:
    def test_concurrent_evaluations_alert_once(self):
        tracker = _tracker(incident=60, notification=60)
        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(lambda _: tracker.evaluate("PM10", True, T0), range(64)))
        assert results.count(True) == 1

    def test_state_returns_copy(self):
        tracker = _tracker()
        tracker.evaluate("PM10", True, T0)
        snapshot = tracker.state("PM10")
        snapshot.reset()
        assert tracker.state("PM10").last_notified_at == T0
