"""Tests for the pending-request registry."""

from __future__ import annotations

import threading

import pytest

from openlogin.auth.registry import PendingRequestRegistry
from openlogin.auth.types import CallbackOutcome


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestRegisterResolve:
    def test_resolve_completes_waiter(self, registry):
        waiter = registry.register("s1")
        assert registry.resolve("s1", "abc123") is True
        assert waiter.done
        assert waiter.wait(0) == CallbackOutcome(code="abc123")
        assert "s1" not in registry

    def test_wait_returns_none_while_pending(self, registry):
        waiter = registry.register("s1")
        assert waiter.wait(timeout=0.01) is None
        assert not waiter.done

    def test_other_state_does_not_resolve(self, registry):
        waiter = registry.register("s1")
        assert registry.resolve("s2", "abc123") is False
        assert not waiter.done
        assert "s1" in registry

    def test_unknown_state_is_ignored(self, registry):
        assert registry.resolve("never-registered", "abc") is False
        assert len(registry) == 0

    def test_second_resolve_is_noop(self, registry):
        waiter = registry.register("s1")
        assert registry.resolve("s1", "first") is True
        assert registry.resolve("s1", "second") is False
        assert waiter.wait(0).code == "first"

    def test_double_register_rejected(self, registry):
        registry.register("s1")
        with pytest.raises(ValueError):
            registry.register("s1")

    def test_state_can_be_registered_again_after_resolution(self, registry):
        registry.register("s1")
        registry.resolve("s1", "code")
        registry.register("s1")
        assert "s1" in registry

    def test_waiter_repr_shows_state(self, registry):
        waiter = registry.register("s1")
        assert repr(waiter) == "CallbackWaiter(state='s1', done=False)"
        registry.resolve("s1", "code")
        assert repr(waiter) == "CallbackWaiter(state='s1', done=True)"


class TestExpiry:
    def test_expire_reports_timeout(self, registry):
        waiter = registry.register("s1")
        assert registry.expire("s1") is True
        assert waiter.wait(0) == CallbackOutcome(timed_out=True)
        assert "s1" not in registry

    def test_resolve_after_expire_is_noop(self, registry):
        waiter = registry.register("s1")
        registry.expire("s1")
        assert registry.resolve("s1", "late") is False
        assert waiter.wait(0).timed_out is True

    def test_expire_after_resolve_is_noop(self, registry):
        waiter = registry.register("s1")
        registry.resolve("s1", "code")
        assert registry.expire("s1") is False
        assert waiter.wait(0).code == "code"

    def test_resolve_past_deadline_evicts_as_timeout(self):
        clock = FakeClock()
        registry = PendingRequestRegistry(timeout=300, clock=clock, timer_factory=None)
        waiter = registry.register("s1")
        assert waiter.deadline == 1300.0

        clock.now = 1300.0
        assert registry.resolve("s1", "late") is False
        assert waiter.wait(0).timed_out is True
        assert "s1" not in registry

    def test_resolve_before_deadline_succeeds(self):
        clock = FakeClock()
        registry = PendingRequestRegistry(timeout=300, clock=clock, timer_factory=None)
        waiter = registry.register("s1")
        clock.now = 1299.0
        assert registry.resolve("s1", "code") is True
        assert waiter.wait(0).code == "code"

    def test_timer_evicts_entry(self):
        registry = PendingRequestRegistry(timeout=0.05)
        waiter = registry.register("s1")
        outcome = waiter.wait(timeout=5)
        assert outcome == CallbackOutcome(timed_out=True)
        assert len(registry) == 0

    def test_timer_created_with_timeout_and_cancelled_on_resolve(self):
        timers = []

        class FakeTimer:
            def __init__(self, interval, function, args=()):
                self.interval = interval
                self.function = function
                self.args = args
                self.daemon = False
                self.started = False
                self.cancelled = False
                timers.append(self)

            def start(self):
                self.started = True

            def cancel(self):
                self.cancelled = True

        registry = PendingRequestRegistry(timeout=42, timer_factory=FakeTimer)
        registry.register("s1")
        (timer,) = timers
        assert timer.interval == 42
        assert timer.args == ("s1",)
        assert timer.daemon is True
        assert timer.started is True

        registry.resolve("s1", "code")
        assert timer.cancelled is True
        # A late firing timer is harmless.
        assert timer.function(*timer.args) is False


class TestConcurrency:
    def test_resolve_and_expire_race_has_single_winner(self, registry):
        for i in range(200):
            state = f"state-{i}"
            waiter = registry.register(state)
            results = {}
            barrier = threading.Barrier(2)

            def do_resolve():
                barrier.wait()
                results["resolve"] = registry.resolve(state, "code")

            def do_expire():
                barrier.wait()
                results["expire"] = registry.expire(state)

            threads = [threading.Thread(target=do_resolve), threading.Thread(target=do_expire)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

            assert results["resolve"] != results["expire"]
            outcome = waiter.wait(0)
            if results["resolve"]:
                assert outcome == CallbackOutcome(code="code")
            else:
                assert outcome == CallbackOutcome(timed_out=True)
        assert len(registry) == 0

    def test_many_concurrent_callbacks_resolve_once(self, registry):
        waiter = registry.register("s1")
        wins = []
        lock = threading.Lock()

        def hit(n):
            if registry.resolve("s1", f"code-{n}"):
                with lock:
                    wins.append(n)

        threads = [threading.Thread(target=hit, args=(n,)) for n in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(wins) == 1
        assert waiter.wait(0).code == f"code-{wins[0]}"
