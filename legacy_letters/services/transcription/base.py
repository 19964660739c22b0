"""
Abstract base class for Speech-to-Text providers.

All STT implementations must implement this interface, enabling
provider-agnostic dictation in the recording controller.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from legacy_letters.core.models import ModelStatus, TranscriptionResult

if TYPE_CHECKING:
    from legacy_letters.services.audio.processor import AudioClip


class BaseSTT(ABC):
    """Interface that every STT provider must implement.

    Implementations expose their model state through ``status``,
    ``progress`` (0-100) and ``error`` rather than raising on load failure.
    """

    status: ModelStatus = ModelStatus.idle
    progress: int = 0
    error: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.status == ModelStatus.ready

    @abstractmethod
    async def load_model(self) -> None:
        """Make the model available. Idempotent; failures land in ``error``."""

    @abstractmethod
    async def transcribe(self, clip: "AudioClip", **kwargs) -> TranscriptionResult:
        """Transcribe one recorded clip.

        Raises:
            TranscriptionError: If no model is loaded or inference fails.
        """
