"""
SQLAlchemy ORM models for the questionnaire schema.

Tables: ``submissions``, ``answers``.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from legacy_letters.core.config import get_settings
from legacy_letters.services.storage.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _default_time_budget() -> int:
    return get_settings().default_time_budget


class Submission(Base):
    """One user's questionnaire."""

    __tablename__ = "submissions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    current_section_index: Mapped[int] = mapped_column(default=1)
    status: Mapped[str] = mapped_column(String(20), default="in_progress", index=True)
    time_remaining: Mapped[int] = mapped_column(default=_default_time_budget)
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    answers: Mapped[list["Answer"]] = relationship(
        back_populates="submission",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Submission id={self.id} user={self.user_id!r} status={self.status!r}>"


class Answer(Base):
    """A single answer; unique per (submission, question)."""

    __tablename__ = "answers"
    __table_args__ = (
        UniqueConstraint("submission_id", "question_id", name="uq_answers_submission_question"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    submission_id: Mapped[str] = mapped_column(
        ForeignKey("submissions.id", ondelete="CASCADE"), index=True
    )
    question_id: Mapped[str] = mapped_column(String(128))
    answer_text: Mapped[str] = mapped_column(Text, default="")
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    submission: Mapped["Submission"] = relationship(back_populates="answers")

    def __repr__(self) -> str:
        return f"<Answer submission={self.submission_id} question={self.question_id!r}>"
