"""Read-only section catalog endpoints."""

from fastapi import APIRouter

from legacy_letters.core.models import Section
from legacy_letters.services.questionnaire.catalog import SECTIONS, get_section

router = APIRouter(prefix="/sections", tags=["sections"])


@router.get("", response_model=list[Section])
async def list_sections():
    """Return the full ordered catalog."""
    return list(SECTIONS)


@router.get("/{section_id}", response_model=Section)
async def read_section(section_id: int):
    return get_section(section_id)
