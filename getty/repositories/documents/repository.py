from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import Column, DateTime, MetaData, Table, Text, delete, func, select, text
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.exc import SQLAlchemyError

from getty.core.errors import DeleteFailed, ReadFailed, WriteFailed
from getty.models.store.document import DocumentRecord
from getty.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

metadata = MetaData()

data_table = Table(
    "data",
    metadata,
    Column("table_name", Text, primary_key=True),
    Column("content", Text, nullable=False),
    Column("updated_at", DateTime, server_default=text("CURRENT_TIMESTAMP")),
)


class DocumentRepository(BaseRepository):
    """SQLite repository for the ``data`` table.

    One row per key, last write wins.  ``LockUnavailable`` raised by the
    store passes through untouched; SQL failures are logged and re-raised
    as the matching ``StoreError``.
    """

    TABLE = data_table

    async def save(self, key: str, content: str) -> None:
        """Insert or fully replace the document stored under *key*.

        ``updated_at`` is reset to the database's current time on every
        write, whether the row is new or replaced.
        """
        await self._run(self._save, key, content)

    async def load(self, key: str) -> Optional[str]:
        """Return the content stored under *key*, or ``None`` if absent."""
        return await self._run(self._load, key)

    async def find_record(self, key: str) -> Optional[DocumentRecord]:
        """Return the full row for *key*, or ``None`` if absent."""
        return await self._run(self._find_record, key)

    async def delete(self, key: str, id: Optional[str] = None) -> None:
        """Remove every row stored under *key*.

        ``id`` does not narrow the delete.  Deleting a missing key is not
        an error.
        """
        await self._run(self._delete, key)

    # ------------------------------------------------------------------
    # Blocking halves, run in a worker thread
    # ------------------------------------------------------------------

    def _save(self, key: str, content: str) -> None:
        stmt = insert(data_table).values(
            table_name=key,
            content=content,
            updated_at=func.current_timestamp(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[data_table.c.table_name],
            set_={
                "content": stmt.excluded.content,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        try:
            with self._store.transaction() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as exc:
            logger.exception("Store write failed for key=%s", key)
            raise WriteFailed(f"Error saving data: {exc}") from exc

    def _load(self, key: str) -> Optional[str]:
        stmt = select(data_table.c.content).where(data_table.c.table_name == key)
        try:
            with self._store.transaction() as conn:
                return conn.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.exception("Store read failed for key=%s", key)
            raise ReadFailed(f"Error loading data: {exc}") from exc

    def _find_record(self, key: str) -> Optional[DocumentRecord]:
        stmt = select(data_table).where(data_table.c.table_name == key)
        try:
            with self._store.transaction() as conn:
                row = conn.execute(stmt).first()
        except SQLAlchemyError as exc:
            logger.exception("Store read failed for key=%s", key)
            raise ReadFailed(f"Error loading data: {exc}") from exc
        if row is None:
            return None
        return DocumentRecord(key=row.table_name, content=row.content, updated_at=row.updated_at)

    def _delete(self, key: str) -> None:
        stmt = delete(data_table).where(data_table.c.table_name == key)
        try:
            with self._store.transaction() as conn:
                result = conn.execute(stmt)
        except SQLAlchemyError as exc:
            logger.exception("Store delete failed for key=%s", key)
            raise DeleteFailed(f"Error deleting data: {exc}") from exc
        logger.debug("Deleted %d row(s) for key=%s", result.rowcount, key)
