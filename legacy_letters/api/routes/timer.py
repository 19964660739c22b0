"""
Timer beacon endpoint.

Browsers send the remaining time with ``navigator.sendBeacon`` as the page
unloads. Beacons carry no identity header and nobody reads the response,
so the body alone identifies the submission.
"""

import logging

from fastapi import APIRouter, Request
from pydantic import ValidationError

from legacy_letters.core.exceptions import LegacyLettersError
from legacy_letters.core.models import TimerBeaconRequest, TimerBeaconResponse
from legacy_letters.services.questionnaire import registry
from legacy_letters.services.storage.sql_store import SQLStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/timer", tags=["timer"])


def _missing_fields() -> LegacyLettersError:
    return LegacyLettersError(
        detail="Missing required fields",
        code="INVALID_BEACON",
        status_code=400,
    )


@router.post("", response_model=TimerBeaconResponse)
async def save_timer(request: Request):
    """Persist ``{"submissionId", "timeRemaining"}`` from a page-unload beacon."""
    # Beacon bodies often arrive as text/plain, so parse the raw bytes
    raw = await request.body()
    try:
        beacon = TimerBeaconRequest.model_validate_json(raw or b"{}")
    except ValidationError as exc:
        raise _missing_fields() from exc
    if not beacon.submission_id or beacon.time_remaining is None:
        raise _missing_fields()

    live = registry.find_by_submission(beacon.submission_id)
    if live is not None:
        # A running timer only counts down; stale tabs cannot wind it back up
        remaining = min(live.timer.time_remaining, beacon.time_remaining)
        live.timer.time_remaining = remaining
        await live.session.persist_time(remaining)
    else:
        await SQLStore().update(
            "submissions",
            {"id": beacon.submission_id},
            {"time_remaining": beacon.time_remaining},
        )
    logger.debug("Timer beacon: submission %s at %ds", beacon.submission_id, beacon.time_remaining)
    return TimerBeaconResponse()
