"""
Unit tests for the active-session counter and idle timer.
"""

import threading

import pytest

from knockknock.core import SessionTracker


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tracker(clock):
    return SessionTracker(idle_timeout=10.0, clock=clock)


class TestCounting:
    """Tests for session_started / session_finished."""

    def test_counts(self, tracker):
        assert tracker.active == 0
        assert tracker.session_started() == 1
        assert tracker.session_started() == 2
        assert tracker.session_finished() == 1
        assert tracker.session_finished() == 0
        assert tracker.active == 0

    def test_finish_without_start_raises(self, tracker):
        with pytest.raises(RuntimeError):
            tracker.session_finished()
        assert tracker.active == 0

    def test_concurrent_updates(self):
        tracker = SessionTracker()

        def churn():
            for _ in range(200):
                tracker.session_started()
                tracker.session_finished()

        threads = [threading.Thread(target=churn) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert tracker.active == 0


class TestIdleTimer:
    """Tests for tick() semantics."""

    def test_first_idle_tick_starts_timer(self, tracker):
        assert not tracker.idle_timer_running
        assert tracker.tick() is False
        assert tracker.idle_timer_running

    def test_fires_after_idle_timeout(self, tracker, clock):
        tracker.tick()

        clock.advance(5)
        assert tracker.tick() is False
        assert tracker.idle_for() == pytest.approx(5)

        clock.advance(5)
        assert tracker.tick() is True

    def test_active_session_resets_timer(self, tracker, clock):
        tracker.tick()
        clock.advance(9)

        tracker.session_started()
        assert tracker.tick() is False
        assert tracker.idle_for() == 0.0

        clock.advance(100)
        assert tracker.tick() is False

    def test_timer_restarts_from_zero_after_last_session(self, tracker, clock):
        tracker.tick()
        clock.advance(9)
        tracker.session_started()
        clock.advance(1)
        tracker.session_finished()

        assert not tracker.idle_timer_running

        # Re-anchored by the first tick that sees zero sessions
        clock.advance(5)
        assert tracker.tick() is False
        clock.advance(9)
        assert tracker.tick() is False
        clock.advance(1)
        assert tracker.tick() is True

    def test_session_started_cancels_pending_timer(self, tracker, clock):
        tracker.tick()
        clock.advance(9.5)
        tracker.session_started()
        tracker.session_finished()

        clock.advance(1)
        assert tracker.tick() is False

    def test_zero_timeout_fires_on_second_tick(self, clock):
        tracker = SessionTracker(idle_timeout=0, clock=clock)

        assert tracker.tick() is False
        assert tracker.tick() is True


class TestWaitForIdle:
    """Tests for draining on shutdown."""

    def test_returns_immediately_when_idle(self, tracker):
        assert tracker.wait_for_idle(timeout=0.1) is True

    def test_times_out_while_active(self, tracker):
        tracker.session_started()
        assert tracker.wait_for_idle(timeout=0.05) is False

    def test_wakes_when_last_session_finishes(self, tracker):
        tracker.session_started()
        tracker.session_started()

        timer = threading.Timer(0.05, lambda: (tracker.session_finished(), tracker.session_finished()))
        timer.start()
        try:
            assert tracker.wait_for_idle(timeout=5.0) is True
        finally:
            timer.join()
