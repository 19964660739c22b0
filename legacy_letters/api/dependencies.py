"""
Request dependencies shared by the questionnaire routes.

Authentication happens upstream; the identity provider forwards the
signed-in user's id in a trusted header (``settings.identity_header``).
"""

from fastapi import Request

from legacy_letters.core.config import get_settings
from legacy_letters.core.exceptions import UnauthenticatedError
from legacy_letters.services.questionnaire import registry
from legacy_letters.services.questionnaire.registry import LiveQuestionnaire


def get_current_user(request: Request) -> str:
    """Return the authenticated user id, or raise ``UnauthenticatedError``."""
    settings = get_settings()
    user_id = request.headers.get(settings.identity_header, "").strip()
    if not user_id:
        raise UnauthenticatedError(login_url=settings.login_url)
    return user_id


async def resolve_live(user_id: str) -> LiveQuestionnaire:
    """Return the user's live questionnaire, starting it on first use."""
    return await registry.get_or_start(user_id)
