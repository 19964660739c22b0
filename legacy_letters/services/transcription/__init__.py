"""
Transcription module - on-device speech-to-text for dictation.

``create_stt`` builds the engine named by ``settings.whisper_provider``.
Engines are imported on first use so the API can start without loading
CTranslate2 until someone dictates.
"""

from importlib import import_module

from .base import BaseSTT

__all__ = ["PROVIDERS", "BaseSTT", "create_stt"]

# Provider name -> "module:class" relative to this package
PROVIDERS: dict[str, str] = {
    "local": ".whisper:WhisperEngine",
    "whisper": ".whisper:WhisperEngine",
}


def create_stt(provider: str = "local", **kwargs) -> BaseSTT:
    """Build the dictation engine for *provider*.

    Args:
        provider: Key of :data:`PROVIDERS`; both names run faster-whisper locally.
        **kwargs: Passed to the engine (model_size, on_progress, settings, ...).

    Raises:
        ValueError: If provider is unknown.
    """
    try:
        target = PROVIDERS[provider]
    except KeyError:
        raise ValueError(f"Unknown STT provider: {provider}") from None
    module_name, class_name = target.split(":")
    engine_cls = getattr(import_module(module_name, __name__), class_name)
    return engine_cls(**kwargs)
