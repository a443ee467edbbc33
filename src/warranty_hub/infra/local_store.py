"""Local backend: each entity is a JSON array under one key of a KeyValueStore.

Records are validated into their schema on read. A corrupt collection reads
as empty and individually invalid records are dropped, both with a warning.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Generic

from pydantic import ValidationError

from warranty_hub.infra.kv_store import KeyValueStore
from warranty_hub.infra.record_store import RecordT

logger = logging.getLogger(__name__)

KEY_PREFIX = "warrantyhub.local."


def storage_key(entity: str) -> str:
    return f"{KEY_PREFIX}{entity}"


class LocalRecordStore(Generic[RecordT]):
    """RecordStore over a key-value store."""

    def __init__(
        self,
        kv: KeyValueStore,
        entity: str,
        schema: type[RecordT],
        id_field: str = "id",
        order_field: str = "created_at",
    ) -> None:
        self._kv = kv
        self._key = storage_key(entity)
        self._schema = schema
        self._id_field = id_field
        self._order_field = order_field

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def _read(self) -> list[RecordT]:
        raw = self._kv.get(self._key)
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Corrupt local collection %s, reading as empty: %s", self._key, exc)
            return []
        if not isinstance(items, list):
            logger.warning("Local collection %s is not a list, reading as empty", self._key)
            return []

        records = []
        for item in items:
            try:
                records.append(self._schema.model_validate(item))
            except ValidationError as exc:
                logger.warning(
                    "Dropping invalid record in %s: %s", self._key, exc.errors()[0]["msg"]
                )
        return records

    def _write(self, records: list[RecordT]) -> None:
        self._kv.set(self._key, json.dumps([r.to_storage("json") for r in records]))

    def _record_id(self, record: RecordT) -> str:
        return getattr(record, self._id_field)

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------

    async def list(self, **filters: Any) -> list[RecordT]:
        records = [r for r in self._read() if _matches(r, filters)]
        records.sort(key=lambda r: getattr(r, self._order_field), reverse=True)
        return records

    async def get(self, record_id: str) -> RecordT | None:
        for record in self._read():
            if self._record_id(record) == record_id:
                return record
        return None

    async def insert(self, record: RecordT) -> RecordT:
        self._write([record, *self._read()])
        return record

    async def replace(self, record: RecordT) -> RecordT:
        """Swap the stored record with the same id in place, or prepend it."""
        record_id = self._record_id(record)
        records = self._read()
        if not any(self._record_id(r) == record_id for r in records):
            self._write([record, *records])
            return record
        self._write([record if self._record_id(r) == record_id else r for r in records])
        return record

    async def delete(self, record_id: str) -> None:
        self._write([r for r in self._read() if self._record_id(r) != record_id])


def _matches(record, filters: dict[str, Any]) -> bool:
    for field, expected in filters.items():
        actual = getattr(record, field)
        if isinstance(actual, Enum):
            actual = actual.value
        if isinstance(expected, Enum):
            expected = expected.value
        if actual != expected:
            return False
    return True
