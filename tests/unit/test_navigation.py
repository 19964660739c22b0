"""Tests for the progress overview."""

import pytest

from legacy_letters.core.exceptions import SectionOutOfRangeError
from legacy_letters.core.models import NavigationOutcome
from legacy_letters.services.questionnaire.catalog import TOTAL_SECTIONS
from legacy_letters.services.questionnaire.navigation import ProgressNavigator
from legacy_letters.services.questionnaire.session import QuestionnaireSession


@pytest.fixture
async def navigator(memory_store, settings):
    session = QuestionnaireSession(memory_store, settings=settings)
    await session.initialize("user-1")
    return ProgressNavigator(session)


async def test_starts_closed(navigator):
    assert navigator.open is False
    assert navigator.toggle() is True
    assert navigator.toggle() is False


async def test_entries_mark_current(navigator):
    entries = navigator.entries()

    assert len(entries) == TOTAL_SECTIONS
    assert [e.current for e in entries].count(True) == 1
    assert entries[0].current
    assert entries[0].title == "First Things First"


async def test_select_jumps_and_closes(navigator):
    navigator.toggle()

    assert navigator.select(5) == NavigationOutcome.jumped

    overview = navigator.overview()
    assert overview.current_section_index == 5
    assert overview.open is False
    assert overview.progress_percent == round(5 / TOTAL_SECTIONS * 100, 2)
    assert overview.entries[4].current


async def test_select_out_of_range_keeps_state(navigator):
    navigator.toggle()

    with pytest.raises(SectionOutOfRangeError):
        navigator.select(TOTAL_SECTIONS + 1)

    assert navigator.open is True
    assert navigator.overview().current_section_index == 1
