"""Correlates OAuth redirects to the login flow waiting for them.

The callback server and the timeout timer both run on their own threads,
concurrently with the flow that waits. Every mutation of the pending table
happens under a single lock, so whichever of ``resolve`` and ``expire``
reaches it first wins and the other becomes a no-op.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

from .constants import AUTH_TIMEOUT_SECONDS
from .types import CallbackOutcome

logger = logging.getLogger(__name__)

TimerFactory = Callable[..., Any]


class CallbackWaiter:
    """Handle returned by ``register``; completed exactly once by the registry."""

    def __init__(self, state: str, deadline: float) -> None:
        self.state = state
        self.deadline = deadline
        self._outcome: CallbackOutcome | None = None
        self._done = threading.Event()

    def __repr__(self) -> str:
        return f"CallbackWaiter(state={self.state!r}, done={self.done})"

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: float | None = None) -> CallbackOutcome | None:
        """Block until completed; return None if ``timeout`` elapses first."""
        if not self._done.wait(timeout=timeout):
            return None
        return self._outcome

    def _complete(self, outcome: CallbackOutcome) -> None:
        self._outcome = outcome
        self._done.set()


@dataclass
class _PendingRequest:
    waiter: CallbackWaiter
    timer: Any = None


class PendingRequestRegistry:
    """Thread-safe table of state token -> waiting login flow.

    Args:
        timeout: Seconds a registered state stays valid.
        clock: Monotonic clock used for deadlines.
        timer_factory: Builds the eviction timer, called like
            ``threading.Timer(interval, function, args=...)``. Pass None to
            rely on the clock alone (expired entries are then evicted on the
            next ``resolve`` or by an explicit ``expire``).
    """

    def __init__(
        self,
        timeout: float = AUTH_TIMEOUT_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: TimerFactory | None = threading.Timer,
    ) -> None:
        self.timeout = timeout
        self._clock = clock
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._pending: dict[str, _PendingRequest] = {}

    def register(self, state: str) -> CallbackWaiter:
        """Start waiting for a callback carrying ``state``.

        Raises:
            ValueError: If ``state`` is already pending.
        """
        with self._lock:
            if state in self._pending:
                raise ValueError("State is already registered")
            waiter = CallbackWaiter(state, self._clock() + self.timeout)
            entry = _PendingRequest(waiter)
            if self._timer_factory is not None:
                entry.timer = self._timer_factory(self.timeout, self.expire, args=(state,))
                entry.timer.daemon = True
            self._pending[state] = entry

        if entry.timer is not None:
            entry.timer.start()
        return waiter

    def resolve(self, state: str, code: str) -> bool:
        """Complete the waiter for ``state`` with ``code``.

        Returns False (and changes nothing) for unknown, already resolved or
        expired states.
        """
        with self._lock:
            entry = self._pending.pop(state, None)
            if entry is None:
                return False
            if self._clock() >= entry.waiter.deadline:
                self._finish(entry, CallbackOutcome(timed_out=True))
                logger.debug("Callback arrived after deadline; evicted as timeout")
                return False
            self._finish(entry, CallbackOutcome(code=code))
            return True

    def expire(self, state: str) -> bool:
        """Evict ``state`` as a timeout if it is still pending."""
        with self._lock:
            entry = self._pending.pop(state, None)
            if entry is None:
                return False
            self._finish(entry, CallbackOutcome(timed_out=True))
            return True

    @staticmethod
    def _finish(entry: _PendingRequest, outcome: CallbackOutcome) -> None:
        if entry.timer is not None:
            entry.timer.cancel()
        entry.waiter._complete(outcome)

    def __contains__(self, state: object) -> bool:
        with self._lock:
            return state in self._pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)
