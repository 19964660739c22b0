"""
SQLAlchemy implementation of :class:`BaseStore`.

Each call runs in its own transaction via :func:`get_session`, mirroring a
hosted store where every request is committed independently.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from legacy_letters.core.exceptions import LegacyLettersError
from legacy_letters.services.storage.base import BaseStore, Record
from legacy_letters.services.storage.database import Base, get_session
from legacy_letters.services.storage.models_db import Answer, Submission

logger = logging.getLogger(__name__)

_TABLES: dict[str, type[Base]] = {
    "submissions": Submission,
    "answers": Answer,
}


def _model_for(table: str) -> type[Base]:
    try:
        return _TABLES[table]
    except KeyError:
        raise LegacyLettersError(
            detail=f"Unknown table: {table}",
            code="UNKNOWN_TABLE",
            status_code=500,
        ) from None


def _to_record(obj: Base) -> Record:
    """Flatten an ORM row into a column dict."""
    return {column.key: getattr(obj, column.key) for column in obj.__mapper__.column_attrs}


def _where(model: type[Base], filters: Record) -> list:
    return [getattr(model, key) == value for key, value in filters.items()]


class SQLStore(BaseStore):
    """Table/record store backed by the application database."""

    async def fetch_one(self, table: str, filters: Record) -> Record | None:
        model = _model_for(table)
        async with get_session() as session:
            stmt = select(model).where(*_where(model, filters)).limit(1)
            result = await session.execute(stmt)
            obj = result.scalars().first()
            return _to_record(obj) if obj is not None else None

    async def fetch_many(self, table: str, filters: Record) -> list[Record]:
        model = _model_for(table)
        async with get_session() as session:
            stmt = select(model).where(*_where(model, filters))
            result = await session.execute(stmt)
            return [_to_record(obj) for obj in result.scalars().all()]

    async def insert(self, table: str, record: Record) -> Record:
        model = _model_for(table)
        async with get_session() as session:
            obj = model(**record)
            session.add(obj)
            await session.flush()
            await session.refresh(obj)
            return _to_record(obj)

    async def update(self, table: str, filters: Record, patch: Record) -> None:
        model = _model_for(table)
        async with get_session() as session:
            stmt = update(model).where(*_where(model, filters)).values(**patch)
            await session.execute(stmt)

    async def upsert(self, table: str, record: Record, conflict_keys: list[str]) -> Record:
        """Insert-or-update keyed on *conflict_keys* (last write wins).

        A concurrent insert of the same key surfaces as an IntegrityError on
        the unique constraint; the second attempt then finds the row and
        updates it.
        """
        model = _model_for(table)
        key = {k: record[k] for k in conflict_keys}
        try:
            return await self._upsert_once(model, record, key)
        except IntegrityError:
            logger.debug("Upsert race on %s %s; retrying as update", table, key)
            return await self._upsert_once(model, record, key)

    async def _upsert_once(self, model: type[Base], record: Record, key: Record) -> Record:
        async with get_session() as session:
            stmt = select(model).where(*_where(model, key)).limit(1)
            obj = (await session.execute(stmt)).scalars().first()
            if obj is None:
                obj = model(**record)
                session.add(obj)
            else:
                for column, value in record.items():
                    setattr(obj, column, value)
            await session.flush()
            return _to_record(obj)
