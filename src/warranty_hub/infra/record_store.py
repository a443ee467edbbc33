"""Record store interface shared by the local and hosted backends.

A store persists one entity type as validated pydantic records. Entity
repositories in `warranty_hub.infra.repositories` layer ids, timestamps,
ownership and state-machine guards on top of it.
"""

from __future__ import annotations

from typing import Any, Protocol, TypeVar

from warranty_hub.domain.schemas import Record

RecordT = TypeVar("RecordT", bound=Record)


class RecordStore(Protocol[RecordT]):
    async def list(self, **filters: Any) -> list[RecordT]:
        """All records whose fields equal `filters`, newest first."""
        ...

    async def get(self, record_id: str) -> RecordT | None: ...

    async def insert(self, record: RecordT) -> RecordT: ...

    async def replace(self, record: RecordT) -> RecordT:
        """Overwrite the record with the same id, inserting it when missing."""
        ...

    async def delete(self, record_id: str) -> None: ...
