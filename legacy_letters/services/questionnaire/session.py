"""
Questionnaire state machine.

One ``QuestionnaireSession`` tracks a single user's walk through the
section catalog::

    initializing -> active -> submitting -> done
         |
         +-> redirected   (no authenticated user)

Answers are applied to memory first and written behind in background
tasks; section transitions and the final submission are awaited
checkpoints.
"""

import asyncio
import logging
from datetime import UTC, datetime

from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from legacy_letters.core.config import get_settings
from legacy_letters.core.exceptions import (
    InvalidAnswerError,
    LegacyLettersError,
    PersistenceError,
    QuestionnaireStateError,
)
from legacy_letters.core.models import (
    AnswerValue,
    EntityKind,
    NavigationOutcome,
    QuestionnairePhase,
    QuestionnaireSnapshot,
    QuestionType,
    SubmissionStatus,
)
from legacy_letters.core.utils import decode_answer, encode_answer
from legacy_letters.services.questionnaire.catalog import SECTIONS, TOTAL_SECTIONS, find_question, get_section
from legacy_letters.services.questionnaire.entities import (
    ASSET,
    CHILD,
    ENTITY_SPECS,
    SPOUSE,
    EntitySpec,
    derive_count,
    entity_key,
    parse_entity_key,
    parse_story_key,
    story_prefix,
)
from legacy_letters.services.storage.base import BaseStore

logger = logging.getLogger(__name__)

SUBMISSIONS = "submissions"
ANSWERS = "answers"
ANSWER_CONFLICT_KEYS = ["submission_id", "question_id"]


class QuestionnaireSession:
    """Section position, answers and repeatable blocks for one user.

    Args:
        store: Record store holding ``submissions`` and ``answers``.
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(self, store: BaseStore, settings=None) -> None:
        self._store = store
        self._settings = settings or get_settings()

        self.phase = QuestionnairePhase.initializing
        self.user_id: str | None = None
        self.submission_id: str | None = None
        self.status = SubmissionStatus.in_progress
        self.current_section_index = 1
        self.time_remaining = self._settings.default_time_budget
        self.answers: dict[str, AnswerValue] = {}

        self._entity_counts: dict[str, int] = {}
        self._pending: set[asyncio.Task] = set()
        self._last_write: dict[str, asyncio.Task] = {}
        self._write_seq: dict[str, int] = {}

    @property
    def total_sections(self) -> int:
        return TOTAL_SECTIONS

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    def _require_active(self, operation: str) -> None:
        if self.phase != QuestionnairePhase.active:
            raise QuestionnaireStateError(self.phase.value, operation)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self, user_id: str | None) -> bool:
        """Resume the user's submission, or create one at section 1.

        Returns:
            False when there is no user (phase ``redirected``), else True.

        Raises:
            PersistenceError: If the store could not be read or written.
        """
        if self.phase != QuestionnairePhase.initializing:
            raise QuestionnaireStateError(self.phase.value, "initialize")
        if not user_id:
            self.phase = QuestionnairePhase.redirected
            logger.info("No authenticated user; questionnaire redirected to login")
            return False

        self.user_id = user_id
        try:
            record = await self._store.fetch_one(SUBMISSIONS, {"user_id": user_id})
            if record is None:
                record = await self._store.insert(
                    SUBMISSIONS,
                    {
                        "user_id": user_id,
                        "current_section_index": 1,
                        "status": SubmissionStatus.in_progress.value,
                        "time_remaining": self._settings.default_time_budget,
                    },
                )
                logger.info("Created submission %s for user %s", record["id"], user_id)
                rows = []
            else:
                rows = await self._store.fetch_many(ANSWERS, {"submission_id": record["id"]})
        except LegacyLettersError:
            raise
        except Exception as exc:
            logger.exception("Failed to load questionnaire for user %s", user_id)
            raise PersistenceError("Could not load your questionnaire") from exc

        self.submission_id = record["id"]
        self.answers = {row["question_id"]: decode_answer(row["answer_text"]) for row in rows}
        self.current_section_index = min(max(int(record["current_section_index"] or 1), 1), TOTAL_SECTIONS)
        stored_time = record.get("time_remaining")
        self.time_remaining = self._settings.default_time_budget if stored_time is None else max(int(stored_time), 0)
        self.status = SubmissionStatus(record["status"])
        self.phase = (
            QuestionnairePhase.done
            if self.status == SubmissionStatus.completed
            else QuestionnairePhase.active
        )
        logger.info(
            "Questionnaire %s ready: section %d/%d, %d answers, phase=%s",
            self.submission_id,
            self.current_section_index,
            TOTAL_SECTIONS,
            len(self.answers),
            self.phase,
        )
        return True

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    def save_answer(self, question_id: str, value: AnswerValue) -> asyncio.Task:
        """Apply *value* locally and schedule its write-behind upsert.

        Returns immediately. Writes for the same question are applied in
        call order; a failed write is logged and never rolled back.

        Returns:
            The background write task.
        """
        self._require_active("save answer")
        self.answers[question_id] = value
        self._track_entity_key(question_id)

        seq = self._write_seq.get(question_id, 0) + 1
        self._write_seq[question_id] = seq
        previous = self._last_write.get(question_id)
        task = asyncio.create_task(self._write_answer(question_id, value, seq, previous))
        self._last_write[question_id] = task
        self._pending.add(task)
        task.add_done_callback(self._write_done)
        return task

    def _write_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        for question_id, last in list(self._last_write.items()):
            if last is task:
                del self._last_write[question_id]

    async def _write_answer(
        self,
        question_id: str,
        value: AnswerValue,
        seq: int,
        previous: asyncio.Task | None,
    ) -> None:
        if previous is not None:
            await asyncio.wait({previous})
        if self._write_seq.get(question_id) != seq:
            # A newer value for this question is queued behind us
            return

        record = {
            "submission_id": self.submission_id,
            "question_id": question_id,
            "answer_text": encode_answer(value),
        }
        attempts = self._settings.answer_save_attempts
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=0.5, max=self._settings.answer_save_backoff_max),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    await self._store.upsert(ANSWERS, record, ANSWER_CONFLICT_KEYS)
        except Exception:
            logger.warning(
                "Failed to save answer %s for submission %s after %d attempts",
                question_id,
                self.submission_id,
                attempts,
                exc_info=True,
            )

    async def flush(self) -> None:
        """Wait for every pending answer write to finish."""
        while True:
            pending = [task for task in self._pending if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Checkpoints
    # ------------------------------------------------------------------

    async def _checkpoint(self, patch: dict, detail: str) -> None:
        try:
            await self._store.update(SUBMISSIONS, {"id": self.submission_id}, patch)
        except Exception as exc:
            logger.exception("Checkpoint failed for submission %s: %s", self.submission_id, patch)
            raise PersistenceError(detail) from exc

    async def persist_time(self, seconds: int) -> None:
        """Write the timer value to the submission.

        Raises:
            PersistenceError: If the write fails.
        """
        if self.submission_id is None:
            return
        seconds = max(int(seconds), 0)
        self.time_remaining = seconds
        await self._checkpoint({"time_remaining": seconds}, "Could not save timer")

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    async def advance_section(self) -> NavigationOutcome:
        """Move forward, or submit when on the last section.

        Raises:
            PersistenceError: If the checkpoint could not be written. The
                local section index stays advanced.
        """
        self._require_active("advance")
        if self.current_section_index < TOTAL_SECTIONS:
            self.current_section_index += 1
            await self._checkpoint(
                {"current_section_index": self.current_section_index},
                "Could not save your progress",
            )
            return NavigationOutcome.advanced

        self.phase = QuestionnairePhase.submitting
        await self.flush()
        try:
            await self._checkpoint(
                {
                    "status": SubmissionStatus.completed.value,
                    "submitted_at": datetime.now(UTC),
                },
                "Could not submit your questionnaire",
            )
        except PersistenceError:
            self.phase = QuestionnairePhase.active
            raise
        self.status = SubmissionStatus.completed
        self.phase = QuestionnairePhase.done
        logger.info("Submission %s completed", self.submission_id)
        return NavigationOutcome.completed

    def retreat_section(self) -> NavigationOutcome:
        """Move back one section; on section 1 signal exit instead."""
        self._require_active("retreat")
        if self.current_section_index <= 1:
            return NavigationOutcome.exit
        self.current_section_index -= 1
        return NavigationOutcome.retreated

    def jump_to_section(self, section_id: int) -> NavigationOutcome:
        """Go to any catalog section without completion checks.

        Raises:
            SectionOutOfRangeError: If *section_id* is outside the catalog.
        """
        self._require_active("jump")
        get_section(section_id)
        self.current_section_index = section_id
        return NavigationOutcome.jumped

    # ------------------------------------------------------------------
    # Repeatable entities
    # ------------------------------------------------------------------

    def _resolve_prefix(self, kind_or_prefix: EntityKind | str) -> str:
        if kind_or_prefix in ENTITY_SPECS:
            return ENTITY_SPECS[EntityKind(kind_or_prefix)].prefix
        return kind_or_prefix

    def entity_count(self, kind_or_prefix: EntityKind | str) -> int:
        """Number of blocks for an entity kind or key prefix (at least 1)."""
        prefix = self._resolve_prefix(kind_or_prefix)
        if prefix not in self._entity_counts:
            self._entity_counts[prefix] = derive_count(self.answers, prefix)
        return self._entity_counts[prefix]

    def _track_entity_key(self, question_id: str) -> None:
        parsed = parse_entity_key(question_id)
        if parsed is not None:
            prefix, index = parsed[0].prefix, parsed[1]
        else:
            story = parse_story_key(question_id)
            if story is None:
                return
            prefix, index = story_prefix(story[0]), story[1]
        if prefix in self._entity_counts:
            self._entity_counts[prefix] = max(self._entity_counts[prefix], index + 1)

    def _add_entity(self, spec: EntitySpec) -> int:
        self._require_active(f"add {spec.kind}")
        index = self.entity_count(spec.prefix)
        self.save_answer(spec.key(index), "")
        self._entity_counts[spec.prefix] = index + 1
        logger.debug("Added %s block %d to submission %s", spec.kind, index, self.submission_id)
        return index

    def add_child(self) -> int:
        return self._add_entity(CHILD)

    def add_spouse(self) -> int:
        return self._add_entity(SPOUSE)

    def add_asset(self) -> int:
        return self._add_entity(ASSET)

    def add_story(self, question_id: str) -> int:
        """Append an additional story under *question_id*; returns its index (from 1)."""
        self._require_active("add story")
        question = find_question(question_id)
        if question.type != QuestionType.story or parse_story_key(question_id) is not None:
            raise InvalidAnswerError(f"{question_id} does not accept additional stories")
        prefix = story_prefix(question_id)
        index = self.entity_count(prefix)
        self.save_answer(entity_key(prefix, index), "")
        self._entity_counts[prefix] = index + 1
        return index

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def entity_counts(self) -> dict[str, int]:
        counts = {spec.prefix: self.entity_count(spec.prefix) for spec in ENTITY_SPECS.values()}
        for section in SECTIONS:
            for question in section.questions:
                if question.type == QuestionType.story:
                    prefix = story_prefix(question.id)
                    counts[prefix] = self.entity_count(prefix)
        return counts

    def snapshot(self) -> QuestionnaireSnapshot:
        return QuestionnaireSnapshot(
            submission_id=self.submission_id,
            phase=self.phase,
            status=self.status,
            current_section_index=self.current_section_index,
            total_sections=TOTAL_SECTIONS,
            time_remaining=self.time_remaining,
            answers=dict(self.answers),
            entity_counts=self.entity_counts(),
        )
