"""Audio capture sources for the recording controller.

A source delivers raw chunks to a callback between ``open()`` and
``release()``. ``release()`` is idempotent and must always free the
underlying device.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

from legacy_letters.core.exceptions import AudioDeviceError, MicrophonePermissionError
from legacy_letters.core.models import AudioFormat

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[bytes], None]


class BaseAudioSource(ABC):
    """Interface every capture source implements."""

    format: AudioFormat = AudioFormat.pcm16
    sample_rate: int = 16000
    # Sources on a device the server itself owns allow one recording process-wide
    exclusive_device: bool = False

    @property
    @abstractmethod
    def is_open(self) -> bool: ...

    @abstractmethod
    async def open(self, on_chunk: ChunkCallback, timeslice: float = 1.0) -> None:
        """Acquire the device and start delivering chunks.

        Raises:
            MicrophonePermissionError: Access to the microphone was denied.
            AudioDeviceError: No usable device, or capture failed to start.
        """

    @abstractmethod
    async def release(self) -> None:
        """Stop capture and release every held track. Safe to call twice."""


class StreamAudioSource(BaseAudioSource):
    """Chunks pushed by a remote client (the browser's MediaRecorder).

    The client owns the physical microphone and reports whether permission
    was granted; audio then arrives through :meth:`push`.

    Args:
        permission_granted: Whether the client obtained microphone access.
        format: Container of the pushed chunks.
        sample_rate: Sample rate for ``pcm16`` chunks.
    """

    def __init__(
        self,
        permission_granted: bool = True,
        format: AudioFormat = AudioFormat.webm,
        sample_rate: int = 16000,
    ) -> None:
        self.permission_granted = permission_granted
        self.format = format
        self.sample_rate = sample_rate
        self._on_chunk: ChunkCallback | None = None

    @property
    def is_open(self) -> bool:
        return self._on_chunk is not None

    async def open(self, on_chunk: ChunkCallback, timeslice: float = 1.0) -> None:
        # Slicing happens client-side
        if not self.permission_granted:
            raise MicrophonePermissionError()
        self._on_chunk = on_chunk

    def push(self, chunk: bytes) -> bool:
        """Deliver one chunk. Returns False (and drops it) when not open."""
        if self._on_chunk is None:
            return False
        self._on_chunk(chunk)
        return True

    async def release(self) -> None:
        self._on_chunk = None


class MicrophoneSource(BaseAudioSource):
    """Local microphone capture through sounddevice (16-bit mono PCM)."""

    format = AudioFormat.pcm16
    exclusive_device = True

    def __init__(self, sample_rate: int = 16000, device: int | str | None = None) -> None:
        self.sample_rate = sample_rate
        self.device = device
        self._stream = None

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    async def open(self, on_chunk: ChunkCallback, timeslice: float = 1.0) -> None:
        loop = asyncio.get_running_loop()

        def callback(indata, frames, time, status):
            if status:
                logger.debug("Audio status: %s", status)
            loop.call_soon_threadsafe(on_chunk, indata.tobytes())

        try:
            import sounddevice as sd

            stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype="int16",
                blocksize=int(self.sample_rate * timeslice),
                device=self.device,
                callback=callback,
            )
            stream.start()
        except PermissionError as exc:
            raise MicrophonePermissionError(detail=str(exc)) from exc
        except Exception as exc:
            raise AudioDeviceError(detail=f"Could not open microphone: {exc}") from exc
        self._stream = stream

    async def release(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()
