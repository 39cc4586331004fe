"""Tests for the exit timer scheduler."""

import asyncio
import logging

import pytest

from scalpbot.services.exit_scheduler import ExitScheduler


class TestExitScheduler:
    @pytest.mark.asyncio
    async def test_fires_after_delay(self):
        scheduler = ExitScheduler()
        fired = []

        async def callback():
            fired.append("ACME")

        scheduler.schedule("ACME", 0.01, callback)
        assert scheduler.is_scheduled("ACME")

        await asyncio.sleep(0.1)
        assert fired == ["ACME"]
        assert not scheduler.is_scheduled("ACME")

    @pytest.mark.asyncio
    async def test_cancel(self):
        scheduler = ExitScheduler()
        fired = []

        async def callback():
            fired.append(True)

        scheduler.schedule("ACME", 0.01, callback)
        assert scheduler.cancel("ACME") is True
        assert scheduler.cancel("ACME") is False

        await asyncio.sleep(0.05)
        assert fired == []

    @pytest.mark.asyncio
    async def test_reschedule_replaces(self):
        scheduler = ExitScheduler()
        fired = []

        async def first():
            fired.append("first")

        async def second():
            fired.append("second")

        scheduler.schedule("ACME", 0.01, first)
        scheduler.schedule("ACME", 0.02, second)
        assert len(scheduler) == 1

        await asyncio.sleep(0.1)
        assert fired == ["second"]

    @pytest.mark.asyncio
    async def test_cancel_all_stops_running_callbacks(self):
        scheduler = ExitScheduler()
        started = asyncio.Event()
        finished = []

        async def slow():
            started.set()
            await asyncio.sleep(10)
            finished.append(True)

        scheduler.schedule("ACME", 0, slow)
        scheduler.schedule("BETA", 60, slow)
        await asyncio.wait_for(started.wait(), 1)

        await scheduler.cancel_all()

        assert len(scheduler) == 0
        assert finished == []

    @pytest.mark.asyncio
    async def test_failing_callback_is_logged(self, caplog):
        scheduler = ExitScheduler()

        async def boom():
            raise RuntimeError("boom")

        with caplog.at_level(logging.ERROR):
            scheduler.schedule("ACME", 0, boom)
            await asyncio.sleep(0.05)

        assert "Scheduled exit failed: boom" in caplog.text
