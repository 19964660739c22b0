"""Shared pytest fixtures for the Legacy Letters test suite.

Provides audio samples, an in-memory record store, a file-backed SQLite
engine, and resets the process-wide singletons (Whisper model cache,
capture-device owner, live questionnaire registry) around every test.
"""

import copy
import struct
import uuid
from datetime import UTC, datetime

import pytest

import legacy_letters.services.audio.recorder as recorder_module
import legacy_letters.services.questionnaire.registry as registry_module
import legacy_letters.services.transcription.whisper as whisper_module
from legacy_letters.core.config import Settings
from legacy_letters.services.storage.base import BaseStore, Record

# ---------------------------------------------------------------------------
# Process-wide state
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Clear module-level caches so tests never share a model, device or session."""
    whisper_module._model_cache = None
    whisper_module._load_task = None
    recorder_module._device_owner = None
    registry_module._sessions.clear()
    registry_module._starting.clear()
    yield
    whisper_module._model_cache = None
    whisper_module._load_task = None
    recorder_module._device_owner = None
    registry_module._sessions.clear()
    registry_module._starting.clear()


@pytest.fixture
def settings():
    """Settings with instant retries and a fast timer."""
    return Settings(
        answer_save_attempts=3,
        answer_save_backoff_max=0,
        timer_tick_interval=0.01,
        default_time_budget=7200,
        timer_warning_threshold=1200,
    )


# ---------------------------------------------------------------------------
# Record store
# ---------------------------------------------------------------------------


class MemoryStore(BaseStore):
    """Dict-backed ``BaseStore`` with failure injection.

    Attributes:
        fail_upserts: Number of upcoming upsert calls that raise.
        fail_updates: When True every update raises.
        calls: (operation, table, payload) tuples in call order.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[Record]] = {"submissions": [], "answers": []}
        self.fail_upserts = 0
        self.fail_updates = False
        self.calls: list[tuple[str, str, Record]] = []

    @staticmethod
    def _matches(record: Record, filters: Record) -> bool:
        return all(record.get(k) == v for k, v in filters.items())

    async def fetch_one(self, table, filters):
        self.calls.append(("fetch_one", table, filters))
        for record in self.tables[table]:
            if self._matches(record, filters):
                return copy.deepcopy(record)
        return None

    async def fetch_many(self, table, filters):
        self.calls.append(("fetch_many", table, filters))
        return [copy.deepcopy(r) for r in self.tables[table] if self._matches(r, filters)]

    async def insert(self, table, record):
        self.calls.append(("insert", table, record))
        stored = dict(record)
        stored.setdefault("id", str(uuid.uuid4()))
        stored.setdefault("created_at", datetime.now(UTC))
        stored.setdefault("submitted_at", None)
        self.tables[table].append(stored)
        return copy.deepcopy(stored)

    async def update(self, table, filters, patch):
        self.calls.append(("update", table, patch))
        if self.fail_updates:
            raise ConnectionError("store unavailable")
        for record in self.tables[table]:
            if self._matches(record, filters):
                record.update(patch)

    async def upsert(self, table, record, conflict_keys):
        self.calls.append(("upsert", table, record))
        if self.fail_upserts:
            self.fail_upserts -= 1
            raise ConnectionError("store unavailable")
        key = {k: record[k] for k in conflict_keys}
        for existing in self.tables[table]:
            if self._matches(existing, key):
                existing.update(record)
                return copy.deepcopy(existing)
        self.tables[table].append(dict(record))
        return copy.deepcopy(record)

    def answers_for(self, submission_id: str) -> dict[str, str]:
        return {
            r["question_id"]: r["answer_text"]
            for r in self.tables["answers"]
            if r["submission_id"] == submission_id
        }


@pytest.fixture
def memory_store():
    return MemoryStore()


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def db_engine(tmp_path):
    """File-backed SQLite engine with tables, dispose after test.

    A file database gives every connection the same data, so concurrent
    write-behind sessions behave as in production.
    """
    from legacy_letters.services.storage.database import create_engine, init_db

    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Provide an AsyncSession that rolls back after each test."""
    from sqlalchemy.ext.asyncio import async_sessionmaker

    factory = async_sessionmaker(db_engine, expire_on_commit=False)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def repository(db_session):
    from legacy_letters.services.storage.repository import SubmissionRepository

    return SubmissionRepository(db_session)


@pytest.fixture
def sql_store(db_engine):
    """SQLStore wired to the test engine through the database module globals."""
    from legacy_letters.services.storage import database
    from legacy_letters.services.storage.sql_store import SQLStore

    database.use_engine(db_engine)
    yield SQLStore()
    database.use_engine(None)


# ---------------------------------------------------------------------------
# Audio Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_pcm_bytes():
    """Generate 1 second of 440Hz sine-wave PCM audio (16kHz, 16-bit, mono)."""
    import math

    sample_rate = 16000
    amplitude = 16000  # ~50% of max int16

    samples = []
    for i in range(sample_rate):
        value = int(amplitude * math.sin(2 * math.pi * 440.0 * i / sample_rate))
        samples.append(struct.pack("<h", value))
    return b"".join(samples)


@pytest.fixture
def silent_pcm_bytes():
    """1 second of silence as PCM audio (16kHz, 16-bit, mono)."""
    return b"\x00\x00" * 16000
