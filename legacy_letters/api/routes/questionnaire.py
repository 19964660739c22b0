"""
Questionnaire REST endpoints.

Every route acts on the caller's live questionnaire (see
``services.questionnaire.registry``); the state machine owns the rules.
"""

import logging

from fastapi import APIRouter, Depends

from legacy_letters.api.dependencies import get_current_user, resolve_live
from legacy_letters.core.exceptions import InvalidAnswerError, SubmissionNotFoundError
from legacy_letters.core.models import (
    AnswerSaveRequest,
    AnswerSaveResponse,
    DeleteSubmissionResponse,
    EntityAddRequest,
    EntityAddResponse,
    EntityKind,
    NavigationOverview,
    NavigationResponse,
    QuestionnaireSnapshot,
)
from legacy_letters.services.questionnaire import registry
from legacy_letters.services.questionnaire.catalog import find_question, validate_answer
from legacy_letters.services.questionnaire.entities import ENTITY_SPECS, entity_key, story_prefix
from legacy_letters.services.storage.database import get_session
from legacy_letters.services.storage.repository import SubmissionRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/questionnaire", tags=["questionnaire"])


@router.get("", response_model=QuestionnaireSnapshot)
async def get_questionnaire(user_id: str = Depends(get_current_user)):
    """Resume the caller's questionnaire, creating a submission on first visit."""
    live = await resolve_live(user_id)
    return live.snapshot()


@router.put("/answers/{question_id}", response_model=AnswerSaveResponse)
async def save_answer(
    question_id: str,
    body: AnswerSaveRequest,
    user_id: str = Depends(get_current_user),
):
    """Accept an answer; it is stored in the background."""
    live = await resolve_live(user_id)
    value = validate_answer(find_question(question_id), body.value)
    live.session.save_answer(question_id, value)
    return AnswerSaveResponse(
        question_id=question_id,
        value=value,
        pending_writes=live.session.pending_writes,
    )


@router.post("/advance", response_model=NavigationResponse)
async def advance(user_id: str = Depends(get_current_user)):
    """Go to the next section, or submit from the last one."""
    live = await resolve_live(user_id)
    outcome = await live.session.advance_section()
    return NavigationResponse(outcome=outcome, questionnaire=live.snapshot())


@router.post("/retreat", response_model=NavigationResponse)
async def retreat(user_id: str = Depends(get_current_user)):
    live = await resolve_live(user_id)
    outcome = live.session.retreat_section()
    return NavigationResponse(outcome=outcome, questionnaire=live.snapshot())


@router.post("/jump/{section_id}", response_model=NavigationResponse)
async def jump(section_id: int, user_id: str = Depends(get_current_user)):
    live = await resolve_live(user_id)
    outcome = live.navigator.select(section_id)
    return NavigationResponse(outcome=outcome, questionnaire=live.snapshot())


@router.post("/entities/{kind}", response_model=EntityAddResponse)
async def add_entity(
    kind: EntityKind,
    body: EntityAddRequest | None = None,
    user_id: str = Depends(get_current_user),
):
    """Append a repeatable block (child, spouse, asset, or additional story)."""
    live = await resolve_live(user_id)
    session = live.session

    if kind == EntityKind.story:
        if body is None or not body.question_id:
            raise InvalidAnswerError("question_id is required to add a story")
        prefix = story_prefix(body.question_id)
        index = session.add_story(body.question_id)
        key = entity_key(prefix, index)
    else:
        spec = ENTITY_SPECS[kind]
        adders = {
            EntityKind.child: session.add_child,
            EntityKind.spouse: session.add_spouse,
            EntityKind.asset: session.add_asset,
        }
        prefix = spec.prefix
        index = adders[kind]()
        key = spec.key(index)

    return EntityAddResponse(kind=kind, index=index, key=key, count=session.entity_count(prefix))


@router.get("/navigation", response_model=NavigationOverview)
async def navigation(user_id: str = Depends(get_current_user)):
    live = await resolve_live(user_id)
    return live.navigator.overview()


@router.post("/navigation/toggle", response_model=NavigationOverview)
async def toggle_navigation(user_id: str = Depends(get_current_user)):
    live = await resolve_live(user_id)
    live.navigator.toggle()
    return live.navigator.overview()


@router.delete("", response_model=DeleteSubmissionResponse)
async def delete_questionnaire(user_id: str = Depends(get_current_user)):
    """Delete the caller's submission and every answer in it."""
    await registry.discard(user_id, persist=False)
    async with get_session() as session:
        repo = SubmissionRepository(session)
        submission = await repo.get_submission_for_user(user_id)
        if submission is None:
            raise SubmissionNotFoundError(f"user {user_id}")
        submission_id = submission.id
        answers_deleted = await repo.delete_submission(submission_id)
    logger.info("User %s deleted submission %s", user_id, submission_id)
    return DeleteSubmissionResponse(submission_id=submission_id, answers_deleted=answers_deleted)
