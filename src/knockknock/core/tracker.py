"""
=============================================================================
SESSION TRACKER
=============================================================================

The only mutable state shared between threads: how many sessions are
running, and since when that number has been zero.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       Who touches the tracker                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Accept thread      session_started()   active += 1, timer off      │
    │                      tick()              start / check idle timer    │
    │                                                                      │
    │   Session threads    session_finished()  active -= 1                 │
    │                                                                      │
    │   Shutdown           wait_for_idle()     block until active == 0     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
IDLE TIMER
=============================================================================

The timer is just an anchor timestamp, advanced by the accept loop's
ticks (no timer thread):

    tick, active > 0      → anchor = None        (timer not running)
    tick, active == 0     → anchor = now         (if not running yet)
    tick, active == 0     → now - anchor >= idle_timeout → shut down
    session_started()     → anchor = None

So a client that connects during the countdown cancels it, and the next
idle period starts again from zero.

=============================================================================
"""

import threading
import time
from typing import Callable, Optional


class SessionTracker:
    """
    Thread-safe active-session counter with an idle timer.

    All state lives behind one lock. A condition variable on the same
    lock lets shutdown wait for the count to reach zero.
    """

    def __init__(
        self,
        idle_timeout: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            idle_timeout: Seconds of continuous zero-activity before
                          tick() reports the server idle.
            clock: Monotonic time source (injectable for tests).
        """
        self.idle_timeout = idle_timeout
        self._clock = clock

        self._lock = threading.Lock()
        self._all_finished = threading.Condition(self._lock)
        self._active = 0
        self._zero_since: Optional[float] = None

    @property
    def active(self) -> int:
        """Number of sessions currently running."""
        with self._lock:
            return self._active

    @property
    def idle_timer_running(self) -> bool:
        with self._lock:
            return self._zero_since is not None

    def session_started(self) -> int:
        """Count a new session and cancel the idle timer. Returns the new count."""
        with self._lock:
            self._active += 1
            self._zero_since = None
            return self._active

    def session_finished(self) -> int:
        """Count a finished session. Returns the new count."""
        with self._lock:
            if self._active == 0:
                raise RuntimeError("session_finished() called with no active sessions")
            self._active -= 1
            if self._active == 0:
                self._all_finished.notify_all()
            return self._active

    def tick(self) -> bool:
        """
        Advance the idle timer.

        Returns:
            True once the active count has been zero for idle_timeout
            seconds, measured from the tick that first saw it at zero.
        """
        with self._lock:
            if self._active > 0:
                self._zero_since = None
                return False

            now = self._clock()
            if self._zero_since is None:
                self._zero_since = now
                return False

            return now - self._zero_since >= self.idle_timeout

    def idle_for(self) -> float:
        """Seconds the idle timer has been running (0.0 if it isn't)."""
        with self._lock:
            if self._zero_since is None:
                return 0.0
            return self._clock() - self._zero_since

    def wait_for_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no session is running.

        Args:
            timeout: Maximum seconds to wait. None = wait forever.

        Returns:
            True if the count reached zero, False on timeout.
        """
        with self._all_finished:
            return self._all_finished.wait_for(lambda: self._active == 0, timeout)
