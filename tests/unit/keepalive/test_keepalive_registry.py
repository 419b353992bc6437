"""Unit tests for KeepAliveRegistry."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest
from structlog.testing import capture_logs

from translation_host.diagnostics import Diagnostics
from translation_host.errors import TimerAllocationFailed
from translation_host.services.keepalive import CallbackState, KeepAliveRegistry


class TestKeepAliveSchedule:
    """Tests for schedule behavior."""

    def test_schedule_holds_entry_until_fired(self, timer_host):
        registry = KeepAliveRegistry(timer_host)
        calls = []

        entry = registry.schedule(lambda: calls.append("fired"), 250)

        assert len(registry) == 1
        assert entry in registry
        assert entry.pending
        assert entry.delay_ms == 250
        assert timer_host.timers[0].armed
        assert timer_host.timers[0].delay_ms == 250

        timer_host.timers[0].fire()

        assert calls == ["fired"]
        assert len(registry) == 0
        assert entry not in registry
        assert entry.state == CallbackState.FIRED

    def test_entry_registered_before_arm(self, timer_host):
        registry = KeepAliveRegistry(timer_host)
        seen = []

        original = timer_host.create_one_shot_timer

        def create(callback, delay_ms):
            timer = original(callback, delay_ms)
            real_arm = timer.arm

            def arm():
                seen.append(len(registry))
                real_arm()

            timer.arm = arm
            return timer

        timer_host.create_one_shot_timer = create
        registry.schedule(lambda: None, 0)

        assert seen == [1]

    def test_entry_removed_after_callback_returns(self, timer_host):
        registry = KeepAliveRegistry(timer_host)
        membership = []

        registry.schedule(lambda: membership.append(len(registry)), 10)
        timer_host.fire_all()

        assert membership == [1]
        assert len(registry) == 0

    def test_fires_exactly_once(self, timer_host):
        registry = KeepAliveRegistry(timer_host)
        calls = []

        registry.schedule(lambda: calls.append(1), 0)
        timer = timer_host.timers[0]
        timer.fire()
        timer.fire()

        assert calls == [1]
        assert registry.stats.fired_total == 1

    def test_negative_delay_rejected(self, timer_host):
        registry = KeepAliveRegistry(timer_host)

        with pytest.raises(ValueError):
            registry.schedule(lambda: None, -1)

        assert timer_host.timers == []


class TestKeepAliveFailures:
    """Tests for timer allocation failures."""

    def test_create_failure_leaves_registry_unmodified(self, timer_host):
        timer_host.fail_create = True
        registry = KeepAliveRegistry(timer_host)

        with pytest.raises(TimerAllocationFailed):
            registry.schedule(lambda: None, 100)

        assert len(registry) == 0
        assert registry.stats.scheduled_total == 0

    def test_foreign_create_error_is_wrapped(self, timer_host):
        def explode(callback, delay_ms):
            raise OSError("no handles")

        timer_host.create_one_shot_timer = explode
        registry = KeepAliveRegistry(timer_host)

        with pytest.raises(TimerAllocationFailed) as exc_info:
            registry.schedule(lambda: None, 100)

        assert isinstance(exc_info.value.__cause__, OSError)
        assert len(registry) == 0

    def test_arm_failure_rolls_back(self, timer_host):
        timer_host.fail_arm = True
        registry = KeepAliveRegistry(timer_host)

        with pytest.raises(TimerAllocationFailed):
            registry.schedule(lambda: None, 100)

        assert len(registry) == 0

    def test_raising_callback_is_still_removed(self, timer_host):
        def boom():
            raise RuntimeError("translator failed")

        with capture_logs() as logs:
            registry = KeepAliveRegistry(timer_host, diagnostics=Diagnostics())
            registry.schedule(boom, 0)
            timer_host.fire_all()

        assert len(registry) == 0
        assert registry.stats.failed_total == 1
        assert registry.stats.fired_total == 1
        errors = [entry for entry in logs if entry["log_level"] == "error"]
        assert errors
        assert errors[0]["event"].startswith("translator failed at ")


class TestKeepAliveInterleaving:
    """Tests for many callbacks scheduled together."""

    def test_all_fire_once_in_any_order(self, timer_host):
        registry = KeepAliveRegistry(timer_host)
        fired: list[int] = []

        for i in range(5):
            registry.schedule(lambda i=i: fired.append(i), i * 10)

        assert len(registry) == 5

        for index in (3, 0, 4, 1, 2):
            timer_host.timers[index].fire()

        assert sorted(fired) == [0, 1, 2, 3, 4]
        assert fired == [3, 0, 4, 1, 2]
        assert len(registry) == 0

    def test_callback_may_schedule_more_work(self, timer_host):
        registry = KeepAliveRegistry(timer_host)
        fired = []

        def first():
            fired.append("first")
            registry.schedule(lambda: fired.append("second"), 0)

        registry.schedule(first, 0)
        timer_host.timers[0].fire()

        assert len(registry) == 1
        timer_host.timers[1].fire()

        assert fired == ["first", "second"]
        assert len(registry) == 0


class TestKeepAliveCancel:
    """Tests for the optional cancel handle."""

    def test_cancel_prevents_firing(self, timer_host):
        registry = KeepAliveRegistry(timer_host)
        calls = []

        entry = registry.schedule(lambda: calls.append(1), 100)
        assert entry.cancel() is True

        timer_host.timers[0].fire()

        assert calls == []
        assert len(registry) == 0
        assert timer_host.timers[0].cancelled
        assert entry.state == CallbackState.CANCELLED

    def test_cancel_twice(self, timer_host):
        registry = KeepAliveRegistry(timer_host)
        entry = registry.schedule(lambda: None, 100)

        assert entry.cancel() is True
        assert entry.cancel() is False
        assert registry.stats.cancelled_total == 1

    def test_cancel_after_fire(self, timer_host):
        registry = KeepAliveRegistry(timer_host)
        entry = registry.schedule(lambda: None, 0)
        timer_host.fire_all()

        assert entry.cancel() is False

    def test_cancel_from_inside_callback(self, timer_host):
        registry = KeepAliveRegistry(timer_host)
        results = []

        entry = registry.schedule(lambda: results.append(entry.cancel()), 0)
        timer_host.fire_all()

        assert results == [False]
        assert entry.state == CallbackState.FIRED

    def test_cancel_all(self, timer_host):
        registry = KeepAliveRegistry(timer_host)
        for _ in range(3):
            registry.schedule(lambda: None, 1000)

        assert registry.cancel_all() == 3
        assert len(registry) == 0
        assert all(timer.cancelled for timer in timer_host.timers)


class TestKeepAliveThreads:
    """Stats under concurrent schedule, fire and cancel."""

    def test_stats_match_work_done_across_threads(self, timer_host):
        registry = KeepAliveRegistry(timer_host)
        fired = []

        def schedule_batch(_):
            entries = [registry.schedule(lambda: fired.append(1), 10) for _ in range(50)]
            for entry in entries[::2]:
                entry.cancel()

        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(schedule_batch, range(8)))

        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(lambda timer: timer.fire(), list(timer_host.timers)))

        assert registry.stats.scheduled_total == 400
        assert registry.stats.cancelled_total == 200
        assert registry.stats.fired_total == 200
        assert len(fired) == 200
        assert len(registry) == 0
