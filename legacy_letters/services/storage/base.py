"""
Abstract base class for the remote record store.

The questionnaire state machine talks to persistence only through this
table/record interface, so it can run against the local SQL database or
any hosted relational store exposing the same five operations.
"""

from abc import ABC, abstractmethod
from typing import Any

Record = dict[str, Any]


class BaseStore(ABC):
    """Interface that every store backend must implement.

    Records are plain dicts keyed by column name. Filters are equality
    matches on columns.
    """

    @abstractmethod
    async def fetch_one(self, table: str, filters: Record) -> Record | None:
        """Return the first record matching *filters*, or ``None``."""

    @abstractmethod
    async def fetch_many(self, table: str, filters: Record) -> list[Record]:
        """Return every record matching *filters*."""

    @abstractmethod
    async def insert(self, table: str, record: Record) -> Record:
        """Insert *record* and return it with generated columns filled in."""

    @abstractmethod
    async def update(self, table: str, filters: Record, patch: Record) -> None:
        """Apply *patch* to every record matching *filters*."""

    @abstractmethod
    async def upsert(self, table: str, record: Record, conflict_keys: list[str]) -> Record:
        """Insert *record*, or overwrite the existing row sharing *conflict_keys*."""
