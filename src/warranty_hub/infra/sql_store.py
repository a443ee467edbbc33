"""Hosted backend: records persisted as rows through SQLAlchemy async sessions.

Each operation opens its own session; there is no unit of work spanning
several records.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Generic

from pydantic import ValidationError
from sqlalchemy import JSON, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from warranty_hub.infra.record_store import RecordT

logger = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class SqlRecordStore(Generic[RecordT]):
    """RecordStore over one ORM table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        model: type,
        schema: type[RecordT],
        id_field: str = "id",
        order_field: str = "created_at",
    ) -> None:
        self._session_factory = session_factory
        self._model = model
        self._schema = schema
        self._id_field = id_field
        self._order_field = order_field
        self._json_columns = {
            column.name
            for column in model.__table__.columns
            if isinstance(column.type, JSON)
        }

    # ------------------------------------------------------------------
    # Row <-> record conversion
    # ------------------------------------------------------------------

    def _to_record(self, row) -> RecordT | None:
        try:
            return self._schema.model_validate(row)
        except ValidationError as exc:
            logger.warning(
                "Dropping invalid %s row %s: %s",
                self._model.__tablename__,
                getattr(row, self._id_field, "?"),
                exc.errors()[0]["msg"],
            )
            return None

    def _column_values(self, record: RecordT) -> dict[str, Any]:
        values = {key: _plain(value) for key, value in record.to_storage().items()}
        if self._json_columns:
            json_values = record.to_storage("json")
            for name in self._json_columns:
                values[name] = json_values.get(name)
        return values

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------

    async def list(self, **filters: Any) -> list[RecordT]:
        stmt = select(self._model)
        for field, expected in filters.items():
            stmt = stmt.where(getattr(self._model, field) == _plain(expected))
        stmt = stmt.order_by(getattr(self._model, self._order_field).desc())

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()
        return [record for record in map(self._to_record, rows) if record is not None]

    async def get(self, record_id: str) -> RecordT | None:
        async with self._session_factory() as session:
            row = await session.get(self._model, record_id)
        if row is None:
            return None
        return self._to_record(row)

    async def insert(self, record: RecordT) -> RecordT:
        async with self._session_factory() as session:
            session.add(self._model(**self._column_values(record)))
            await session.commit()
        return record

    async def replace(self, record: RecordT) -> RecordT:
        record_id = getattr(record, self._id_field)
        async with self._session_factory() as session:
            row = await session.get(self._model, record_id)
            if row is None:
                session.add(self._model(**self._column_values(record)))
            else:
                for key, value in self._column_values(record).items():
                    setattr(row, key, value)
            await session.commit()
        return record

    async def delete(self, record_id: str) -> None:
        async with self._session_factory() as session:
            row = await session.get(self._model, record_id)
            if row is not None:
                await session.delete(row)
                await session.commit()
