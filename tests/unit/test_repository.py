"""Tests for SubmissionRepository."""

import pytest

from legacy_letters.core.exceptions import SubmissionNotFoundError
from legacy_letters.services.storage.models_db import Answer


async def _with_answers(repository, db_session, user_id, answers):
    submission = await repository.create_submission(user_id)
    for question_id, text in answers.items():
        db_session.add(Answer(submission_id=submission.id, question_id=question_id, answer_text=text))
    await db_session.flush()
    return submission


async def test_create_defaults(repository):
    submission = await repository.create_submission("user-1")

    assert submission.status == "in_progress"
    assert submission.current_section_index == 1
    assert submission.time_remaining == 7200


async def test_get_submission_for_user(repository):
    created = await repository.create_submission("user-1")

    assert (await repository.get_submission_for_user("user-1")).id == created.id
    assert await repository.get_submission_for_user("user-2") is None


async def test_get_missing_raises(repository):
    with pytest.raises(SubmissionNotFoundError):
        await repository.get_submission("missing")


async def test_list_filters_by_status(repository):
    await repository.create_submission("user-1")
    await repository.create_submission("user-2", status="completed")

    assert len(await repository.list_submissions()) == 2
    completed = await repository.list_submissions(status="completed")
    assert [s.user_id for s in completed] == ["user-2"]
    assert len(await repository.list_submissions(limit=1)) == 1


async def test_list_answers_sorted(repository, db_session):
    submission = await _with_answers(
        repository, db_session, "user-1", {"q7_5": "John", "q1_1": "My Loved Ones"}
    )

    answers = await repository.list_answers(submission.id)

    assert [a.question_id for a in answers] == ["q1_1", "q7_5"]


async def test_delete_cascades(repository, db_session):
    submission = await _with_answers(repository, db_session, "user-1", {"q1_1": "a", "q1_2": "b"})
    submission_id = submission.id
    db_session.expunge_all()

    assert await repository.delete_submission(submission_id) == 2

    assert await repository.list_answers(submission_id) == []
    with pytest.raises(SubmissionNotFoundError):
        await repository.get_submission(submission_id)
