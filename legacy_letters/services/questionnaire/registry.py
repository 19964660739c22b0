"""Live questionnaire registry.

Keeps one ``LiveQuestionnaire`` (state machine, timer and navigator) per
user for the lifetime of the API process. Concurrent first requests for
the same user share one initialization.

Usage::

    from legacy_letters.services.questionnaire.registry import get_or_start, discard, cleanup

    live = await get_or_start(user_id)
    live.session.save_answer("q1_1", "My Loved Ones")
    await discard(user_id)
"""

import asyncio
import logging
from dataclasses import dataclass, field

from legacy_letters.core.exceptions import RecordingAlreadyActiveError
from legacy_letters.services.audio.recorder import RecordingController
from legacy_letters.services.questionnaire.navigation import ProgressNavigator
from legacy_letters.services.questionnaire.session import QuestionnaireSession
from legacy_letters.services.questionnaire.timer import SectionTimer, drain_detached_writes
from legacy_letters.services.storage.base import BaseStore
from legacy_letters.services.storage.sql_store import SQLStore

logger = logging.getLogger(__name__)


@dataclass
class LiveQuestionnaire:
    """Everything one open questionnaire needs in memory."""

    session: QuestionnaireSession
    timer: SectionTimer
    navigator: ProgressNavigator
    channels: int = 0
    recorder: RecordingController | None = field(default=None, repr=False)
    _timer_task: asyncio.Task | None = field(default=None, repr=False)

    @classmethod
    def create(cls, session: QuestionnaireSession) -> "LiveQuestionnaire":
        timer = SectionTimer(session.time_remaining, session.persist_time)
        live = cls(session=session, timer=timer, navigator=ProgressNavigator(session))
        timer.add_listener(live._on_tick)
        return live

    def _on_tick(self, seconds: int) -> None:
        self.session.time_remaining = seconds

    def snapshot(self):
        self.session.time_remaining = self.timer.time_remaining
        return self.session.snapshot()

    def attach_channel(self) -> None:
        """A page opened: start ticking if nothing else is."""
        self.channels += 1
        if self._timer_task is None or self._timer_task.done():
            self._timer_task = self.timer.start()

    def detach_channel(self) -> asyncio.Task | None:
        """A page went away. The last one out stops the timer and persists it."""
        self.channels = max(self.channels - 1, 0)
        if self.channels:
            return None
        self._timer_task = None
        return self.timer.on_teardown()

    def claim_recorder(self, controller: RecordingController) -> None:
        """Reserve dictation for *controller*; a user records one field at a time.

        Raises:
            RecordingAlreadyActiveError: Another of the user's pages is dictating.
        """
        if self.recorder is not None and self.recorder is not controller:
            raise RecordingAlreadyActiveError()
        self.recorder = controller

    def release_recorder(self, controller: RecordingController) -> None:
        if self.recorder is controller:
            self.recorder = None

    async def close(self, persist: bool = True) -> None:
        self.timer.stop()
        if self._timer_task is not None:
            await self._timer_task
            self._timer_task = None
        await self.session.flush()
        if persist and self.session.submission_id is not None:
            await self.timer.persist_now()


_sessions: dict[str, LiveQuestionnaire] = {}
_starting: dict[str, asyncio.Task] = {}


async def _start(user_id: str, store: BaseStore) -> LiveQuestionnaire:
    session = QuestionnaireSession(store)
    await session.initialize(user_id)
    live = LiveQuestionnaire.create(session)
    _sessions[user_id] = live
    logger.info("Started live questionnaire for user %s", user_id)
    return live


async def get_or_start(user_id: str, store: BaseStore | None = None) -> LiveQuestionnaire:
    """Return the user's live questionnaire, initializing it on first use.

    Raises:
        PersistenceError: If the submission could not be loaded or created.
    """
    live = _sessions.get(user_id)
    if live is not None:
        return live

    task = _starting.get(user_id)
    if task is None:
        task = asyncio.ensure_future(_start(user_id, store or SQLStore()))
        _starting[user_id] = task
        task.add_done_callback(lambda _t: _starting.pop(user_id, None))
    return await asyncio.shield(task)


def get_live(user_id: str) -> LiveQuestionnaire | None:
    """Return the user's live questionnaire, or None if not started."""
    return _sessions.get(user_id)


async def discard(user_id: str, persist: bool = True) -> None:
    """Close and forget the user's live questionnaire."""
    live = _sessions.pop(user_id, None)
    if live is None:
        return
    await live.close(persist=persist)
    logger.info("Discarded live questionnaire for user %s", user_id)


async def cleanup() -> None:
    """Flush and persist every live questionnaire (called during app shutdown)."""
    for user_id in list(_sessions):
        try:
            await discard(user_id)
        except Exception:
            logger.exception("Failed to close live questionnaire for user %s", user_id)
    await drain_detached_writes()


def find_by_submission(submission_id: str) -> LiveQuestionnaire | None:
    """Return the live questionnaire holding *submission_id*, if any."""
    for live in _sessions.values():
        if live.session.submission_id == submission_id:
            return live
    return None
