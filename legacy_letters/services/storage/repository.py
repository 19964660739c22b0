"""
Typed CRUD repository for submissions and answers.

``SubmissionRepository`` receives an ``AsyncSession`` and provides the
data-access methods used by the admin viewer and by user-initiated data
deletion. It calls ``flush()`` rather than ``commit()`` so that
transaction boundaries are controlled by the caller (typically
:func:`get_session`).
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from legacy_letters.core.exceptions import SubmissionNotFoundError
from legacy_letters.services.storage.models_db import Answer, Submission

logger = logging.getLogger(__name__)


class SubmissionRepository:
    """Data-access layer for the questionnaire schema.

    Args:
        session: An active SQLAlchemy ``AsyncSession``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    async def create_submission(self, user_id: str, **fields: object) -> Submission:
        """Create and return a new *in_progress* submission for *user_id*."""
        submission = Submission(user_id=user_id, **fields)
        self._session.add(submission)
        await self._session.flush()
        return submission

    async def get_submission(self, submission_id: str) -> Submission:
        """Return a submission with its answers or raise :class:`SubmissionNotFoundError`."""
        stmt = (
            select(Submission)
            .where(Submission.id == submission_id)
            .options(selectinload(Submission.answers))
        )
        result = await self._session.execute(stmt)
        submission = result.scalar_one_or_none()
        if submission is None:
            raise SubmissionNotFoundError(submission_id)
        return submission

    async def get_submission_for_user(self, user_id: str) -> Submission | None:
        """Return the user's submission, or ``None`` if they have not started."""
        stmt = select(Submission).where(Submission.user_id == user_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_submissions(
        self,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Submission]:
        """Return submissions newest first, optionally filtered by *status*."""
        stmt = (
            select(Submission)
            .options(selectinload(Submission.answers))
            .order_by(Submission.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        if status is not None:
            stmt = stmt.where(Submission.status == status)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def delete_submission(self, submission_id: str) -> int:
        """Delete a submission and cascade to its answers.

        Returns:
            The number of answer rows removed with it.
        """
        submission = await self.get_submission(submission_id)
        answers_deleted = len(submission.answers)
        await self._session.delete(submission)
        await self._session.flush()
        logger.info(
            "Deleted submission %s (%d answers)", submission_id, answers_deleted
        )
        return answers_deleted

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    async def list_answers(self, submission_id: str) -> list[Answer]:
        """Return a submission's answers ordered by *question_id*."""
        stmt = (
            select(Answer)
            .where(Answer.submission_id == submission_id)
            .order_by(Answer.question_id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
