"""
Shared plumbing for the table repositories.
"""
from __future__ import annotations

import logging
from typing import Generic, Iterable, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from checkup.storage.database import Database

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class BaseRepository(Generic[T]):
    """
    One repository per table; rows come back as model_class instances.

    Subclasses set table_name and model_class.
    """

    table_name: str
    model_class: Type[T]

    def __init__(self, db: Database) -> None:
        self.db = db

    def _record_to_model(self, record) -> Optional[T]:
        return None if record is None else self.model_class(**dict(record))

    def _records_to_models(self, records: Iterable) -> list[T]:
        """
        Convert rows one at a time.

        Rows are written by the CRUD layer; one that does not validate is
        logged and left out so the rest of the batch still loads.
        """
        models: list[T] = []
        for record in records:
            row = dict(record)
            try:
                models.append(self.model_class(**row))
            except ValidationError as e:
                logger.error(
                    f"Skipping {self.table_name} row {row.get('id')}: "
                    f"{e.error_count()} invalid field(s): {e}"
                )
        return models

    async def get(self, row_id: int) -> Optional[T]:
        record = await self.db.fetchrow(f"SELECT * FROM {self.table_name} WHERE id = $1", row_id)
        return self._record_to_model(record)

    async def list_all(self) -> list[T]:
        """Snapshot of every row, ordered by id. No transaction spans the caller's use of it."""
        records = await self.db.fetch(f"SELECT * FROM {self.table_name} ORDER BY id")
        return self._records_to_models(records)


def deleted_count(status: str) -> int:
    """Row count from an asyncpg command status such as 'DELETE 12'."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0
