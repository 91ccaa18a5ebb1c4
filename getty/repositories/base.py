"""Abstract base class for all document store repositories.

Every repository in this project must extend ``BaseRepository``.

Extending for a new table:
    1. Declare the ``sqlalchemy.Table`` next to the repository.
    2. Subclass ``BaseRepository``, set ``TABLE``, and keep the default
       ``ensure_schema()`` unless the table needs more than ``CREATE TABLE``.
    3. Call ``ensure_schema()`` from the app lifespan (``main.py``).

Example::

    class HistoryRepository(BaseRepository):
        TABLE = history_table

        async def latest(self) -> str | None:
            return await self._run(self._latest)
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC
from typing import Any, Callable, ClassVar, TypeVar

from sqlalchemy import Table
from sqlalchemy.exc import SQLAlchemyError

from getty.core.database import DocumentStore
from getty.core.errors import StoreInitFailed

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="BaseRepository")
R = TypeVar("R")


class BaseRepository(ABC):
    """Base class that wires a repository to the shared ``DocumentStore``.

    Subclasses declare:
    - ``TABLE`` - the ``sqlalchemy.Table`` the repository owns.

    Store access is synchronous SQLite work behind a lock, so every public
    coroutine hands its blocking half to a worker thread via ``_run``.
    """

    TABLE: ClassVar[Table]

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def from_db(cls: type[T], store: DocumentStore) -> T:
        """Instantiate the repository on the live ``DocumentStore``.

        Usage::

            repo = DocumentRepository.from_db(store)
        """
        return cls(store)

    # ------------------------------------------------------------------
    # Schema management
    # ------------------------------------------------------------------

    async def ensure_schema(self) -> None:
        """Create ``TABLE`` if it does not exist.  Called once at startup.

        Raises:
            StoreInitFailed: the table could not be created.
        """
        await self._run(self._create_table)

    def _create_table(self) -> None:
        try:
            with self._store.transaction() as conn:
                self.TABLE.create(conn, checkfirst=True)
        except SQLAlchemyError as exc:
            logger.exception("Schema creation failed for table=%s", self.TABLE.name)
            raise StoreInitFailed(
                f"Could not initialise table {self.TABLE.name}: {exc}"
            ) from exc

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _run(self, func: Callable[..., R], *args: Any) -> R:
        return await asyncio.to_thread(func, *args)
