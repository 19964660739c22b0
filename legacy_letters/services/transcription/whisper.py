"""Whisper STT implementation using faster-whisper.

The WhisperModel is loaded lazily and cached at module level so every
dictation field in the process shares one instance. Loading is
single-flight: while a load is running, further ``load_model()`` calls
await the same task instead of fetching the weights again.
"""

import asyncio
import logging
import tempfile
from collections.abc import Callable
from pathlib import Path

from faster_whisper import WhisperModel, download_model

from legacy_letters.core.config import get_settings
from legacy_letters.core.exceptions import ModelLoadError, TranscriptionError
from legacy_letters.core.models import AudioFormat, ModelStatus, TranscriptionResult
from legacy_letters.services.audio.processor import AudioClip, AudioProcessor
from legacy_letters.services.transcription.base import BaseSTT

logger = logging.getLogger(__name__)

LOAD_ERROR_MESSAGE = "Speech recognition model failed to load. Please try again."

ProgressCallback = Callable[[dict], None]
ModelLoader = Callable[[ProgressCallback], WhisperModel]

_model_cache: WhisperModel | None = None
_load_task: asyncio.Task | None = None


def _load_whisper_model(
    on_progress: ProgressCallback,
    model_size: str,
    device: str,
    compute_type: str,
    download_root: str | None = None,
) -> WhisperModel:
    """Fetch the weights and build the model (blocking; run in a worker thread)."""
    on_progress({"status": "initiate", "name": model_size})
    model_path = download_model(model_size, cache_dir=download_root)
    on_progress({"status": "progress", "progress": 80.0})
    model = WhisperModel(model_path, device=device, compute_type=compute_type)
    on_progress({"status": "done"})
    return model


def get_cached_model() -> WhisperModel | None:
    """Return the process-wide model, or None if nothing has loaded yet."""
    return _model_cache


class WhisperEngine(BaseSTT):
    """Speech-to-text provider using faster-whisper (CTranslate2).

    Model status, load progress and the last error are tracked per engine
    instance; the model itself is shared process-wide.

    Args:
        model_size: Whisper model name (tiny.en, base, small, ...).
        device: Computation device ("cpu" or "cuda").
        compute_type: CTranslate2 compute type ("int8", "float16", etc.).
        loader: Blocking callable that builds the model; defaults to
            downloading and constructing a ``WhisperModel``.
        on_progress: Called on the event loop with the new 0-100 progress.
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(
        self,
        model_size: str | None = None,
        device: str | None = None,
        compute_type: str | None = None,
        loader: ModelLoader | None = None,
        on_progress: Callable[[int], None] | None = None,
        settings=None,
    ) -> None:
        self._settings = settings or get_settings()
        self._model_size = model_size or self._settings.whisper_model
        self._device = device or self._settings.whisper_device
        self._compute_type = compute_type or self._settings.whisper_compute_type
        self._loader = loader or self._default_loader
        self._on_progress = on_progress
        self._processor = AudioProcessor(sample_rate=self._settings.recording_sample_rate)

        cached = _model_cache is not None
        self.status = ModelStatus.ready if cached else ModelStatus.idle
        self.progress = 100 if cached else 0
        self.error = None

    def _default_loader(self, on_progress: ProgressCallback) -> WhisperModel:
        return _load_whisper_model(
            on_progress,
            model_size=self._model_size,
            device=self._device,
            compute_type=self._compute_type,
            download_root=self._settings.whisper_download_root or None,
        )

    # ------------------------------------------------------------------
    # Model loading
    # ------------------------------------------------------------------

    async def load_model(self) -> None:
        """Load the shared model once; concurrent callers share one load."""
        global _load_task
        if _model_cache is not None:
            self._mark_ready()
            return

        if _load_task is not None:
            try:
                await asyncio.shield(_load_task)
            except Exception:
                self._mark_failed()
            else:
                self._mark_ready()
            return

        self.status = ModelStatus.loading
        self._set_progress(0, force=True)
        self.error = None

        loop = asyncio.get_running_loop()

        def on_progress(event: dict) -> None:
            loop.call_soon_threadsafe(self._handle_progress_event, event)

        task = asyncio.ensure_future(self._fetch_model(on_progress))
        _load_task = task
        try:
            await asyncio.shield(task)
        except Exception:
            logger.exception("Failed to load Whisper model %s", self._model_size)
            self._mark_failed()
        else:
            self._mark_ready()

    async def _fetch_model(self, on_progress: ProgressCallback) -> WhisperModel:
        global _model_cache, _load_task
        logger.info(
            "Loading Whisper model: %s (device=%s, compute=%s)",
            self._model_size,
            self._device,
            self._compute_type,
        )
        try:
            model = await asyncio.to_thread(self._loader, on_progress)
        except Exception as exc:
            raise ModelLoadError(detail=f"Whisper model load failed: {exc}") from exc
        finally:
            # The in-flight task never outlives the load, whoever was awaiting it
            if _load_task is asyncio.current_task():
                _load_task = None
        _model_cache = model
        return model

    def _handle_progress_event(self, event: dict) -> None:
        status = event.get("status")
        if status == "done":
            self._set_progress(100)
        elif status == "progress" and isinstance(event.get("progress"), int | float):
            self._set_progress(round(event["progress"]))

    def _set_progress(self, value: int, force: bool = False) -> None:
        value = max(0, min(100, value))
        # Progress only moves forward within one load
        if not force and value <= self.progress:
            return
        self.progress = value
        if self._on_progress is not None:
            self._on_progress(value)

    def _mark_ready(self) -> None:
        self.status = ModelStatus.ready
        self.error = None
        self._set_progress(100)

    def _mark_failed(self) -> None:
        self.status = ModelStatus.error
        self.error = LOAD_ERROR_MESSAGE

    # ------------------------------------------------------------------
    # Transcription
    # ------------------------------------------------------------------

    def _run_transcription(
        self,
        model: WhisperModel,
        audio_path: str,
        language: str | None = None,
        beam_size: int = 5,
        vad_filter: bool = True,
    ) -> tuple:
        """Run synchronous transcription (CPU-bound).

        Must be called via asyncio.to_thread(). The segment iterator is
        materialized into a list inside this function to avoid CTranslate2
        thread-safety issues.
        """
        segments_iter, info = model.transcribe(
            audio_path,
            language=language,
            beam_size=beam_size,
            vad_filter=vad_filter,
        )
        segments = list(segments_iter)
        return segments, info

    def _write_temp_audio(self, clip: AudioClip) -> Path:
        """Write the clip to a temporary file faster-whisper can decode."""
        suffix = ".wav" if clip.format in (AudioFormat.pcm16, AudioFormat.wav) else f".{clip.format}"
        with tempfile.NamedTemporaryFile(prefix="dictation-", suffix=suffix, delete=False) as tmp:
            path = Path(tmp.name)
            if clip.format != AudioFormat.pcm16:
                tmp.write(clip.data)
        if clip.format == AudioFormat.pcm16:
            self._processor.save_wav(clip.data, path)
        return path

    async def transcribe(self, clip: AudioClip, **kwargs) -> TranscriptionResult:
        """Transcribe a recorded clip to text.

        Args:
            clip: Assembled audio from one recording session.
            **kwargs: Optional keys: language, beam_size, vad_filter.

        Returns:
            TranscriptionResult with the stripped transcript.
        """
        model = _model_cache
        if model is None:
            raise TranscriptionError(detail="Model not loaded")
        if not clip.data:
            raise TranscriptionError(detail="No audio captured")

        if clip.format == AudioFormat.pcm16:
            audio = self._processor.pcm_to_ndarray(clip.data)
            if self._processor.is_silent(audio):
                return TranscriptionResult(text="", duration=clip.duration)

        language = kwargs.get("language", self._settings.whisper_language or None)
        path = self._write_temp_audio(clip)
        try:
            segments, info = await asyncio.to_thread(
                self._run_transcription,
                model,
                str(path),
                language=language,
                beam_size=kwargs.get("beam_size", self._settings.whisper_beam_size),
                vad_filter=kwargs.get("vad_filter", True),
            )
        except Exception as exc:
            raise TranscriptionError(detail=f"Whisper transcription failed: {exc}") from exc
        finally:
            path.unlink(missing_ok=True)

        text = " ".join(seg.text.strip() for seg in segments if seg.text.strip())
        return TranscriptionResult(
            text=text.strip(),
            language=info.language or "unknown",
            duration=info.duration,
        )
