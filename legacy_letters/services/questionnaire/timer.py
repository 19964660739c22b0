"""Countdown timer for the questionnaire.

The timer only counts; persisting its value is event-driven (the page
being hidden, the page going away, the beacon endpoint) and never
happens on ticks.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from legacy_letters.core.config import get_settings
from legacy_letters.core.models import TimerUrgency
from legacy_letters.core.utils import format_hms

logger = logging.getLogger(__name__)

PersistCallback = Callable[[int], Awaitable[None]]
TickListener = Callable[[int], None]

# Teardown writes are detached from their caller; hold references until done
_detached_writes: set[asyncio.Task] = set()


async def drain_detached_writes() -> None:
    """Wait for outstanding teardown writes (used on shutdown)."""
    while True:
        pending = [task for task in _detached_writes if not task.done()]
        if not pending:
            return
        await asyncio.gather(*pending, return_exceptions=True)


class SectionTimer:
    """Soft countdown, one tick per interval while not paused.

    Args:
        initial: Starting value in seconds.
        persist: Coroutine function that stores a value durably.
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(self, initial: int, persist: PersistCallback, settings=None) -> None:
        self._settings = settings or get_settings()
        self.time_remaining = max(int(initial), 0)
        self.paused = False
        self._persist = persist
        self._listeners: list[TickListener] = []
        self._stopped = asyncio.Event()

    @property
    def display(self) -> str:
        return format_hms(self.time_remaining)

    @property
    def urgency(self) -> TimerUrgency:
        if self.time_remaining <= 0:
            return TimerUrgency.expired
        if self.time_remaining <= self._settings.timer_warning_threshold:
            return TimerUrgency.warning
        return TimerUrgency.normal

    @property
    def running(self) -> bool:
        return not self._stopped.is_set() and self.time_remaining > 0

    def state(self) -> dict:
        return {
            "time_remaining": self.time_remaining,
            "display": self.display,
            "urgency": self.urgency.value,
            "paused": self.paused,
        }

    def add_listener(self, listener: TickListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: TickListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def tick(self) -> int:
        """Advance one second; clamps at 0 and does nothing while paused."""
        if self.paused or self.time_remaining <= 0:
            return self.time_remaining
        self.time_remaining -= 1
        for listener in list(self._listeners):
            listener(self.time_remaining)
        return self.time_remaining

    def start(self) -> asyncio.Task:
        """Re-arm the timer and run it in a background task."""
        self._stopped.clear()
        return asyncio.create_task(self.run())

    async def run(self) -> None:
        """Tick once per interval until the countdown ends or ``stop()``."""
        interval = self._settings.timer_tick_interval
        while self.running:
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=interval)
            except TimeoutError:
                self.tick()
        logger.debug("Timer loop ended at %s", self.display)

    def stop(self) -> None:
        self._stopped.set()

    async def persist_now(self) -> bool:
        """Store the current value. Failures are logged, not raised."""
        value = self.time_remaining
        try:
            await self._persist(value)
        except Exception:
            logger.warning("Failed to persist timer value %d", value, exc_info=True)
            return False
        return True

    async def on_visibility_change(self, hidden: bool) -> None:
        if hidden:
            await self.persist_now()

    def on_teardown(self) -> asyncio.Task:
        """Stop ticking and persist in a task that outlives the caller."""
        self.stop()
        task = asyncio.create_task(self.persist_now())
        _detached_writes.add(task)
        task.add_done_callback(_detached_writes.discard)
        return task
