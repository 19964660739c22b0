"""
Application configuration via pydantic-settings.

Loads values from .env file with sensible defaults for local development.
Use ``get_settings()`` to obtain the cached singleton instance.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Legacy Letters settings loaded from environment / .env file.

    All settings can be overridden via environment variables or a `.env` file.
    Field names map directly to env var names (case-insensitive).

    Attributes:
        database_url: Async SQLAlchemy connection string.
        whisper_model: faster-whisper model name used for dictation.
        default_time_budget: Seconds on the questionnaire timer for a new submission.
        identity_header: Header carrying the user id set by the upstream identity provider.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Silently ignore unrecognized env vars
    )

    # --- Whisper STT ---
    # On-device dictation; English-only tiny model keeps the first load small
    whisper_provider: str = "local"
    whisper_model: str = "tiny.en"
    whisper_device: str = "cpu"
    whisper_compute_type: str = "int8"
    whisper_language: str = "en"  # Empty = auto-detect
    whisper_beam_size: int = 5
    whisper_download_root: str = ""  # Empty = huggingface cache default

    # --- Recording ---
    recording_timeslice: float = 1.0  # Seconds of audio per buffered chunk
    recording_sample_rate: int = 16000

    # --- Questionnaire ---
    default_time_budget: int = 7200  # 2 hours
    timer_warning_threshold: int = 1200  # 20 minutes
    timer_tick_interval: float = 1.0
    answer_save_attempts: int = 3  # Write-behind retries per field save
    answer_save_backoff_max: float = 4.0

    # --- Identity ---
    identity_header: str = "x-user-id"
    login_url: str = "/login"
    admin_api_key: str = ""  # Empty = admin endpoints disabled

    # --- Application ---
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000"]

    # --- Storage ---
    database_url: str = "sqlite+aiosqlite:///data/legacy_letters.db"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings singleton.

    Uses ``functools.lru_cache`` so the .env file is read only once.

    Returns:
        Settings: The application-wide configuration object.
    """
    return Settings()
