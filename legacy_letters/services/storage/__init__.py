"""
Storage module - Database and record store operations.
"""

from legacy_letters.services.storage.base import BaseStore, Record
from legacy_letters.services.storage.database import (
    Base,
    close_db,
    get_engine,
    get_session,
    init_db,
)
from legacy_letters.services.storage.models_db import Answer, Submission
from legacy_letters.services.storage.repository import SubmissionRepository
from legacy_letters.services.storage.sql_store import SQLStore

__all__ = [
    "Answer",
    "Base",
    "BaseStore",
    "Record",
    "SQLStore",
    "Submission",
    "SubmissionRepository",
    "close_db",
    "get_engine",
    "get_session",
    "init_db",
]
