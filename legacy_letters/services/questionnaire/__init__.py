"""
Questionnaire module - catalog, state machine, timer and navigation.
"""

from legacy_letters.services.questionnaire.catalog import (
    SECTIONS,
    TOTAL_SECTIONS,
    find_question,
    get_section,
    validate_answer,
)
from legacy_letters.services.questionnaire.navigation import ProgressNavigator
from legacy_letters.services.questionnaire.session import QuestionnaireSession
from legacy_letters.services.questionnaire.timer import SectionTimer

__all__ = [
    "SECTIONS",
    "TOTAL_SECTIONS",
    "ProgressNavigator",
    "QuestionnaireSession",
    "SectionTimer",
    "find_question",
    "get_section",
    "validate_answer",
]
