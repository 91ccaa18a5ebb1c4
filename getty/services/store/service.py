from __future__ import annotations

import logging
from typing import Optional

from getty.models.store.document import DocumentRecord
from getty.repositories.documents.repository import DocumentRepository

logger = logging.getLogger(__name__)


class StoreService:
    """Business logic for the keyed document store."""

    def __init__(self, repo: DocumentRepository) -> None:
        self._repo = repo

    async def save(self, table: str, data: str) -> None:
        """Persist *data* under *table*, replacing any previous content.

        Raises:
            LockUnavailable: the shared connection could not be acquired.
            WriteFailed: the database rejected the write.
        """
        await self._repo.save(table, data)
        logger.debug("Saved %d chars under %s", len(data), table)

    async def load(self, table: str) -> Optional[str]:
        """Return the content stored under *table*, or ``None``."""
        return await self._repo.load(table)

    async def get_record(self, table: str) -> Optional[DocumentRecord]:
        """Return the full stored row for *table*, including ``updated_at``.

        Not exposed as a command; used where the write timestamp matters.
        """
        return await self._repo.find_record(table)

    async def delete(self, table: str, id: Optional[str] = None) -> None:
        """Delete everything stored under *table*.

        ``id`` is forwarded but ignored by the repository: both forms remove
        the whole key.
        """
        if id is not None:
            logger.debug("store_delete for %s received id=%s; deleting whole key", table, id)
        await self._repo.delete(table, id)
