"""Tests for cycle tokens and the debounce scheduler."""

import asyncio
from unittest.mock import Mock

import pytest

from smart_launcher.core.cancellation import CancellationCoordinator, DebounceScheduler


class TestCancellationCoordinator:
    def test_no_token_before_first_cycle(self):
        coordinator = CancellationCoordinator()

        assert coordinator.current_token() is None
        assert not coordinator.is_current(None)

    def test_new_cycle_makes_old_token_stale(self):
        coordinator = CancellationCoordinator("fs")

        first = coordinator.begin_cycle()
        second = coordinator.begin_cycle()

        assert first != second
        assert first.startswith("fs-")
        assert not coordinator.is_current(first)
        assert coordinator.is_current(second)
        assert coordinator.current_token() == second

    def test_coordinators_are_independent(self):
        build, fs = CancellationCoordinator("build"), CancellationCoordinator("fs")

        token = build.begin_cycle()
        fs.begin_cycle()

        assert build.is_current(token)


class TestDebounceScheduler:
    @pytest.mark.asyncio
    async def test_fires_after_delay(self):
        scheduler = DebounceScheduler()
        fired = asyncio.Event()

        scheduler.schedule(fired.set, 0.01)
        assert scheduler.pending

        await asyncio.wait_for(fired.wait(), timeout=1)
        assert not scheduler.pending

    @pytest.mark.asyncio
    async def test_reschedule_replaces_pending_callback(self):
        scheduler = DebounceScheduler()
        first, second = Mock(), Mock()

        scheduler.schedule(first, 0.01)
        scheduler.schedule(second, 0.01)
        await asyncio.sleep(0.05)

        first.assert_not_called()
        second.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_cancel(self):
        scheduler = DebounceScheduler()
        callback = Mock()

        scheduler.schedule(callback, 0.01)
        assert scheduler.cancel() is True
        assert scheduler.cancel() is False
        await asyncio.sleep(0.03)

        callback.assert_not_called()
