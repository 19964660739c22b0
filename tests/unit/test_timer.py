"""Tests for the questionnaire countdown timer."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from legacy_letters.core.models import TimerUrgency
from legacy_letters.services.questionnaire.timer import SectionTimer, drain_detached_writes


@pytest.fixture
def persist():
    return AsyncMock()


@pytest.fixture
def make_timer(persist, settings):
    def _make(initial=7200):
        return SectionTimer(initial, persist, settings=settings)

    return _make


class TestTick:
    def test_decrements_and_notifies(self, make_timer):
        timer = make_timer(10)
        seen = []
        timer.add_listener(seen.append)

        timer.tick()
        timer.tick()

        assert timer.time_remaining == 8
        assert seen == [9, 8]

    def test_clamps_at_zero(self, make_timer):
        timer = make_timer(1)
        timer.tick()
        timer.tick()

        assert timer.time_remaining == 0

    def test_paused_does_nothing(self, make_timer):
        timer = make_timer(10)
        timer.pause()
        timer.tick()
        assert timer.time_remaining == 10

        timer.resume()
        timer.tick()
        assert timer.time_remaining == 9

    def test_removed_listener_not_called(self, make_timer):
        timer = make_timer(10)
        seen = []
        timer.add_listener(seen.append)
        timer.remove_listener(seen.append)
        timer.remove_listener(seen.append)

        timer.tick()

        assert seen == []

    def test_negative_initial_clamped(self, make_timer):
        assert make_timer(-3).time_remaining == 0


class TestDisplay:
    @pytest.mark.parametrize(
        ("seconds", "urgency"),
        [
            (7200, TimerUrgency.normal),
            (1201, TimerUrgency.normal),
            (1200, TimerUrgency.warning),
            (1, TimerUrgency.warning),
            (0, TimerUrgency.expired),
        ],
    )
    def test_urgency_bands(self, make_timer, seconds, urgency):
        assert make_timer(seconds).urgency == urgency

    def test_state(self, make_timer):
        assert make_timer(3661).state() == {
            "time_remaining": 3661,
            "display": "01:01:01",
            "urgency": "normal",
            "paused": False,
        }


class TestRun:
    async def test_counts_down_to_zero(self, make_timer):
        timer = make_timer(3)

        await asyncio.wait_for(timer.start(), timeout=2)

        assert timer.time_remaining == 0
        assert not timer.running

    async def test_stop_ends_loop(self, make_timer):
        timer = make_timer(7200)
        task = timer.start()
        await asyncio.sleep(0.05)

        timer.stop()
        await asyncio.wait_for(task, timeout=1)

        assert 0 < timer.time_remaining < 7200

    async def test_restart_after_stop(self, make_timer):
        timer = make_timer(7200)
        timer.stop()

        task = timer.start()
        await asyncio.sleep(0.05)
        timer.stop()
        await task

        assert timer.time_remaining < 7200

    async def test_ticks_never_persist(self, make_timer, persist):
        await asyncio.wait_for(make_timer(3).start(), timeout=2)

        persist.assert_not_awaited()


class TestPersistence:
    async def test_hidden_persists(self, make_timer, persist):
        timer = make_timer(500)

        await timer.on_visibility_change(True)

        persist.assert_awaited_once_with(500)

    async def test_visible_does_not_persist(self, make_timer, persist):
        await make_timer(500).on_visibility_change(False)

        persist.assert_not_awaited()

    async def test_failure_logged_not_raised(self, make_timer, persist):
        persist.side_effect = ConnectionError("offline")

        assert await make_timer(500).persist_now() is False

    async def test_teardown_outlives_caller(self, make_timer, persist):
        timer = make_timer(7200)
        task = timer.start()
        await asyncio.sleep(0.03)

        timer.on_teardown()
        await drain_detached_writes()
        await task

        persist.assert_awaited_once_with(timer.time_remaining)
        assert not timer.running


def test_five_ticks_from_five_reaches_zero(make_timer):
    timer = make_timer(5)
    for _ in range(7):
        timer.tick()

    assert timer.display == "00:00:00"
    assert timer.time_remaining == 0
    assert timer.urgency == TimerUrgency.expired
