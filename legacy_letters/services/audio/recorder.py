"""Recording session controller.

Owns one capture source at a time, buffers its chunks and hands the
assembled clip to the transcription engine. A capture device owned by
the server (the local microphone) is held by at most one controller
process-wide; streamed sources are limited per user by the caller.

State machine::

    idle -> recording -> transcribing -> idle

Recoverable failures never raise; they land in ``error`` and the
controller returns to ``idle``.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable

from legacy_letters.core.config import get_settings
from legacy_letters.core.exceptions import (
    MicrophonePermissionError,
    RecordingAlreadyActiveError,
    TranscriptionError,
)
from legacy_letters.core.models import RecordingStatus
from legacy_letters.services.audio.processor import ChunkBuffer
from legacy_letters.services.audio.sources import BaseAudioSource, MicrophoneSource
from legacy_letters.services.transcription.base import BaseSTT

logger = logging.getLogger(__name__)

PERMISSION_DENIED_MESSAGE = "Microphone access denied. Please allow microphone access."
START_FAILED_MESSAGE = "Failed to start recording. Please check your microphone."
TRANSCRIBE_FAILED_MESSAGE = "Failed to transcribe. Please try again."

TranscriptCallback = Callable[[str | None, str], Awaitable[None] | None]

_device_owner: "RecordingController | None" = None


def get_device_owner() -> "RecordingController | None":
    """Return the controller currently holding the local capture device."""
    return _device_owner


class RecordingController:
    """Start/stop dictation for one answer field at a time.

    Args:
        engine: Transcription engine used on stop.
        on_transcript: Called with ``(target, text)`` after a successful,
            non-empty transcription. May be sync or async.
        source_factory: Builds a source when ``start_recording`` gets none.
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(
        self,
        engine: BaseSTT,
        on_transcript: TranscriptCallback | None = None,
        source_factory: Callable[[], BaseAudioSource] | None = None,
        settings=None,
    ) -> None:
        self._settings = settings or get_settings()
        self.engine = engine
        self._on_transcript = on_transcript
        self._source_factory = source_factory or (
            lambda: MicrophoneSource(sample_rate=self._settings.recording_sample_rate)
        )
        self._source: BaseAudioSource | None = None
        self._buffer = ChunkBuffer()

        self.status = RecordingStatus.idle
        self.error: str | None = None
        self.target: str | None = None

    @property
    def source(self) -> BaseAudioSource | None:
        return self._source

    def state(self) -> dict:
        """Status payload for clients."""
        return {
            "recording_status": self.status.value,
            "model_status": self.engine.status.value,
            "progress": self.engine.progress,
            "model_error": self.engine.error,
            "error": self.error,
            "target": self.target,
        }

    async def start_recording(
        self,
        target: str | None = None,
        source: BaseAudioSource | None = None,
    ) -> bool:
        """Acquire the capture source and begin buffering.

        Sources with ``exclusive_device`` (the server's own microphone) can
        only be held by one controller process-wide. Streamed sources belong
        to the client, so controllers using them never block each other.

        Returns:
            True if recording started. False when the device could not be
            opened; ``error`` then says why.

        Raises:
            RecordingAlreadyActiveError: This controller is busy, or the
                shared device is held by another controller.
        """
        if self.status != RecordingStatus.idle:
            raise RecordingAlreadyActiveError()
        source = source or self._source_factory()
        self._check_device(source)

        self.error = None
        self.target = target

        if not self.engine.is_ready:
            # A failed load does not block recording; transcription fails later
            await self.engine.load_model()

        # Re-checked after the load: another controller may have taken the device
        self._claim_device(source)
        self._buffer = ChunkBuffer(format=source.format, sample_rate=source.sample_rate)
        try:
            await source.open(self._buffer.add, timeslice=self._settings.recording_timeslice)
        except MicrophonePermissionError:
            logger.warning("Microphone permission denied (target=%s)", target)
            await self._abort_start(source)
            self.error = PERMISSION_DENIED_MESSAGE
            return False
        except Exception:
            logger.exception("Failed to start recording (target=%s)", target)
            await self._abort_start(source)
            self.error = START_FAILED_MESSAGE
            return False

        self._source = source
        self.status = RecordingStatus.recording
        logger.info("Recording started (target=%s, format=%s)", target, source.format)
        return True

    def _check_device(self, source: BaseAudioSource) -> None:
        if source.exclusive_device and _device_owner is not None and _device_owner is not self:
            raise RecordingAlreadyActiveError()

    def _claim_device(self, source: BaseAudioSource) -> None:
        global _device_owner
        self._check_device(source)
        if source.exclusive_device:
            _device_owner = self

    def _free_device(self) -> None:
        global _device_owner
        if _device_owner is self:
            _device_owner = None

    async def _abort_start(self, source: BaseAudioSource) -> None:
        try:
            await source.release()
        except Exception:
            logger.exception("Failed to release audio source after a failed start")
        finally:
            self._free_device()

    async def stop_recording(self) -> str | None:
        """Release the device and transcribe what was captured.

        A source that fails to release is logged and dropped; the audio
        already buffered is still transcribed.

        Returns:
            The transcript, or None when not recording or transcription failed.
        """
        if self.status != RecordingStatus.recording:
            return None

        self.status = RecordingStatus.transcribing
        await self._release_source()

        clip = self._buffer.assemble()
        self._buffer.reset()
        logger.info("Recording stopped: %d bytes captured", len(clip.data))

        try:
            result = await self.engine.transcribe(clip)
        except TranscriptionError as exc:
            logger.warning("Transcription failed (target=%s): %s", self.target, exc.detail)
            return self._fail_transcription()
        except Exception:
            logger.exception("Unexpected transcription failure (target=%s)", self.target)
            return self._fail_transcription()

        self.status = RecordingStatus.idle
        text = result.text
        if text and self._on_transcript is not None:
            outcome = self._on_transcript(self.target, text)
            if inspect.isawaitable(outcome):
                await outcome
        return text

    def _fail_transcription(self) -> None:
        self.error = TRANSCRIBE_FAILED_MESSAGE
        self.status = RecordingStatus.idle
        return None

    async def _release_source(self) -> None:
        source, self._source = self._source, None
        try:
            if source is not None:
                await source.release()
        except Exception:
            logger.exception("Failed to release audio source (target=%s)", self.target)
        finally:
            self._free_device()

    async def close(self) -> None:
        """Teardown: release the device even mid-recording and drop buffered audio."""
        was_recording = self.status == RecordingStatus.recording
        await self._release_source()
        self._buffer.reset()
        if was_recording:
            self.status = RecordingStatus.idle
            logger.info("Recording discarded on teardown (target=%s)", self.target)
