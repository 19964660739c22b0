"""
Admin submission viewer.

Protected by ``AdminAuthMiddleware``. Lists submissions newest first with
the signer's name, initials and a short preview drawn from the answers.
"""

from fastapi import APIRouter, Query

from legacy_letters.core.models import SubmissionDetail, SubmissionStatus, SubmissionSummary
from legacy_letters.core.utils import decode_answer
from legacy_letters.services.questionnaire.catalog import SIGNATURE_QUESTION_ID
from legacy_letters.services.storage.database import get_session
from legacy_letters.services.storage.models_db import Answer, Submission
from legacy_letters.services.storage.repository import SubmissionRepository

router = APIRouter(prefix="/admin/submissions", tags=["admin"])

PREVIEW_MIN_LENGTH = 50
PREVIEW_MAX_LENGTH = 120


def initials(name: str) -> str:
    """Two-letter avatar text: first and last initials, or the first two letters."""
    parts = name.split()
    if not parts:
        return "NA"
    if len(parts) == 1:
        return parts[0][:2].upper()
    return (parts[0][0] + parts[-1][0]).upper()


def preview_text(answers: list[Answer]) -> str:
    """First substantial answer (over 50 chars), else the first non-empty one."""
    chosen = next((a.answer_text for a in answers if a.answer_text and len(a.answer_text) > PREVIEW_MIN_LENGTH), None)
    if chosen is None:
        chosen = next((a.answer_text for a in answers if a.answer_text), "")
    if len(chosen) > PREVIEW_MAX_LENGTH:
        return chosen[:PREVIEW_MAX_LENGTH] + ".."
    return chosen


def signer_name(answers: list[Answer]) -> str:
    for answer in answers:
        if answer.question_id == SIGNATURE_QUESTION_ID and answer.answer_text:
            return answer.answer_text
    return "Anonymous"


def _summary_fields(submission: Submission, answers: list[Answer]) -> dict:
    name = signer_name(answers)
    return {
        "id": submission.id,
        "user_id": submission.user_id,
        "status": SubmissionStatus(submission.status),
        "current_section_index": submission.current_section_index,
        "time_remaining": submission.time_remaining,
        "submitted_at": submission.submitted_at,
        "created_at": submission.created_at,
        "answer_count": len(answers),
        "signer_name": name,
        "initials": initials(name),
        "preview": preview_text(answers),
    }


@router.get("", response_model=list[SubmissionSummary])
async def list_submissions(
    status: SubmissionStatus | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    """List submissions, newest first."""
    async with get_session() as session:
        repo = SubmissionRepository(session)
        submissions = await repo.list_submissions(
            status=status.value if status else None, limit=limit, offset=offset
        )
        return [
            SubmissionSummary(
                **_summary_fields(sub, sorted(sub.answers, key=lambda a: a.question_id))
            )
            for sub in submissions
        ]


@router.get("/{submission_id}", response_model=SubmissionDetail)
async def get_submission(submission_id: str):
    """Return one submission with its decoded answers."""
    async with get_session() as session:
        repo = SubmissionRepository(session)
        submission = await repo.get_submission(submission_id)
        answers = await repo.list_answers(submission_id)
        return SubmissionDetail(
            **_summary_fields(submission, answers),
            answers={a.question_id: decode_answer(a.answer_text) for a in answers},
        )
