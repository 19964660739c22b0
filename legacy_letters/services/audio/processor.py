"""Audio clip assembly and PCM utilities.

Recorded audio arrives as time-sliced chunks; ``ChunkBuffer`` collects them
and ``assemble()`` produces the single ``AudioClip`` handed to the
transcription engine.
"""

import wave
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from legacy_letters.core.models import AudioFormat


@dataclass(frozen=True)
class AudioClip:
    """One finished recording.

    Attributes:
        data: Raw 16-bit mono PCM for ``pcm16``, encoded container bytes otherwise.
        format: Container of ``data``.
        sample_rate: Sample rate in Hz (meaningful for ``pcm16``).
    """

    data: bytes
    format: AudioFormat = AudioFormat.pcm16
    sample_rate: int = 16000

    @property
    def duration(self) -> float:
        """Length in seconds; 0.0 for encoded formats whose length is unknown."""
        if self.format != AudioFormat.pcm16 or not self.sample_rate:
            return 0.0
        return len(self.data) / (self.sample_rate * 2)


class AudioProcessor:
    """Handles PCM audio data conversion and analysis."""

    def __init__(
        self,
        sample_rate: int = 16000,
        sample_width: int = 2,
        channels: int = 1,
    ) -> None:
        self.sample_rate = sample_rate
        self.sample_width = sample_width
        self.channels = channels

    def pcm_to_ndarray(self, pcm_data: bytes) -> np.ndarray:
        """Convert raw 16-bit PCM bytes to a float32 array in [-1.0, 1.0].

        A trailing partial frame is dropped.
        """
        frame_size = self.sample_width * self.channels
        usable = len(pcm_data) - (len(pcm_data) % frame_size)
        return np.frombuffer(pcm_data[:usable], dtype=np.int16).astype(np.float32) / 32768.0

    def save_wav(self, pcm_data: bytes, file_path: str | Path) -> str:
        """Write raw PCM bytes to a WAV file and return its absolute path.

        Raises:
            ValueError: If pcm_data is empty.
        """
        if not pcm_data:
            raise ValueError("Cannot save empty PCM data to WAV")
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with wave.open(str(path), "wb") as wf:
            wf.setnchannels(self.channels)
            wf.setsampwidth(self.sample_width)
            wf.setframerate(self.sample_rate)
            wf.writeframes(pcm_data)
        return str(path.resolve())

    def is_silent(self, audio: np.ndarray, threshold: float = 0.01) -> bool:
        """True if the RMS energy of *audio* is below *threshold*."""
        if len(audio) == 0:
            return True
        rms = np.sqrt(np.mean(audio**2))
        return float(rms) < threshold


class ChunkBuffer:
    """Accumulates time-sliced chunks for one recording session."""

    def __init__(self, format: AudioFormat = AudioFormat.pcm16, sample_rate: int = 16000) -> None:
        self.format = format
        self.sample_rate = sample_rate
        self._chunks: list[bytes] = []

    def __len__(self) -> int:
        return len(self._chunks)

    @property
    def byte_count(self) -> int:
        return sum(len(chunk) for chunk in self._chunks)

    def add(self, chunk: bytes) -> None:
        if chunk:
            self._chunks.append(bytes(chunk))

    def assemble(self) -> AudioClip:
        """Concatenate buffered chunks into a single clip."""
        return AudioClip(
            data=b"".join(self._chunks),
            format=self.format,
            sample_rate=self.sample_rate,
        )

    def reset(self) -> None:
        self._chunks.clear()
