"""Progress overview and free navigation between sections."""

from legacy_letters.core.models import NavigationEntry, NavigationOutcome, NavigationOverview
from legacy_letters.services.questionnaire.catalog import SECTIONS, TOTAL_SECTIONS
from legacy_letters.services.questionnaire.session import QuestionnaireSession


class ProgressNavigator:
    """Section list with a current marker; the open flag is its only state."""

    def __init__(self, session: QuestionnaireSession) -> None:
        self._session = session
        self.open = False

    @property
    def progress_percent(self) -> float:
        return round(self._session.current_section_index / TOTAL_SECTIONS * 100, 2)

    def entries(self) -> list[NavigationEntry]:
        current = self._session.current_section_index
        return [
            NavigationEntry(id=section.id, title=section.title, current=section.id == current)
            for section in SECTIONS
        ]

    def toggle(self) -> bool:
        self.open = not self.open
        return self.open

    def select(self, section_id: int) -> NavigationOutcome:
        """Jump to *section_id* and close the overview."""
        outcome = self._session.jump_to_section(section_id)
        self.open = False
        return outcome

    def overview(self) -> NavigationOverview:
        return NavigationOverview(
            open=self.open,
            current_section_index=self._session.current_section_index,
            total_sections=TOTAL_SECTIONS,
            progress_percent=self.progress_percent,
            entries=self.entries(),
        )
