"""Unit tests for the manual and asyncio schedulers."""

import asyncio

import pytest

from formgate.scheduling import AsyncioScheduler, ManualScheduler


class TestManualScheduler:
    """Test suite for ManualScheduler."""

    def test_call_later_fires_when_due(self, scheduler):
        """Verify one-shot tasks fire once the clock reaches them."""
        calls = []
        scheduler.call_later(100, lambda: calls.append(scheduler.now()))

        scheduler.advance(99)
        assert calls == []
        scheduler.advance(1)

        assert calls == [100]

    def test_reschedule_replaces_pending_task(self, scheduler):
        """Verify rescheduling a key cancels the previous task."""
        calls = []
        scheduler.reschedule("k", 100, lambda: calls.append("first"))
        scheduler.advance(50)
        scheduler.reschedule("k", 100, lambda: calls.append("second"))

        scheduler.advance(200)

        assert calls == ["second"]

    def test_call_every_repeats(self, scheduler):
        """Verify repeating tasks fire each interval until cancelled."""
        calls = []
        task = scheduler.call_every(1_000, lambda: calls.append(scheduler.now()))

        scheduler.advance(3_500)
        task.cancel()
        scheduler.advance(2_000)

        assert calls == [1_000, 2_000, 3_000]

    def test_cancel_all(self, scheduler):
        """Verify cancel_all drops every pending task."""
        calls = []
        scheduler.call_later(10, lambda: calls.append(1))
        scheduler.call_every(10, lambda: calls.append(2), key="tick")

        assert scheduler.cancel_all() == 2
        scheduler.advance(100)

        assert calls == []
        assert scheduler.pending_count == 0

    def test_cancel_unknown_key(self, scheduler):
        """Verify cancelling an unknown key is a no-op."""
        assert scheduler.cancel("missing") is False

    def test_get_returns_only_pending(self, scheduler):
        """Verify fired tasks are no longer returned by key."""
        scheduler.reschedule("k", 10, lambda: None)
        assert scheduler.get("k") is not None

        scheduler.advance(10)

        assert scheduler.get("k") is None

    def test_tasks_fire_in_due_order(self):
        """Verify advancing across several deadlines fires them in order."""
        scheduler = ManualScheduler(start=1_000)
        calls = []
        scheduler.call_later(30, lambda: calls.append("c"))
        scheduler.call_later(10, lambda: calls.append("a"))
        scheduler.call_later(20, lambda: calls.append("b"))

        fired = scheduler.advance(30)

        assert calls == ["a", "b", "c"]
        assert fired == 3
        assert scheduler.now() == 1_030

    def test_invalid_delays(self, scheduler):
        """Verify negative delays and non-positive intervals are rejected."""
        with pytest.raises(ValueError):
            scheduler.call_later(-1, lambda: None)
        with pytest.raises(ValueError):
            scheduler.call_every(0, lambda: None)
        with pytest.raises(ValueError):
            scheduler.advance(-5)


class TestAsyncioScheduler:
    """Test suite for AsyncioScheduler."""

    def test_call_later_runs_on_loop(self):
        """Verify callbacks fire on the running event loop."""
        async def scenario():
            scheduler = AsyncioScheduler()
            calls = []
            scheduler.reschedule("k", 10, lambda: calls.append("first"))
            scheduler.reschedule("k", 10, lambda: calls.append("second"))
            await asyncio.sleep(0.05)
            return calls, scheduler.pending_count

        calls, pending = asyncio.run(scenario())

        assert calls == ["second"]
        assert pending == 0

    def test_cancel_all_disarms_handles(self):
        """Verify cancelled tasks never reach the loop callback."""
        async def scenario():
            scheduler = AsyncioScheduler()
            calls = []
            scheduler.call_every(10, lambda: calls.append(1))
            scheduler.cancel_all()
            await asyncio.sleep(0.05)
            return calls

        assert asyncio.run(scenario()) == []
