"""
Audio module - capture sources, clip assembly and the recording controller.
"""

from legacy_letters.services.audio.processor import AudioClip, AudioProcessor, ChunkBuffer
from legacy_letters.services.audio.recorder import RecordingController
from legacy_letters.services.audio.sources import (
    BaseAudioSource,
    MicrophoneSource,
    StreamAudioSource,
)

__all__ = [
    "AudioClip",
    "AudioProcessor",
    "BaseAudioSource",
    "ChunkBuffer",
    "MicrophoneSource",
    "RecordingController",
    "StreamAudioSource",
]
