from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from getty.core.config import Settings
from getty.core.errors import LockUnavailable, StoreInitFailed

logger = logging.getLogger(__name__)


def resolve_data_dir(cfg: Settings, cwd: Optional[Path] = None) -> Path:
    """Return the directory that holds the database file.

    An explicit ``data_dir`` setting wins.  Otherwise the store lives in
    ``<cwd>/data``, except when the process was launched from the build
    subdirectory (``launch_subdir``), in which case its parent is used.
    """
    if cfg.data_dir is not None:
        return cfg.data_dir
    root = cwd if cwd is not None else Path.cwd()
    if root.name == cfg.launch_subdir:
        root = root.parent
    return root / "data"


def ensure_data_dir(path: Path) -> None:
    """Create *path* if missing.  Failure is logged, not raised.

    A directory that cannot be created surfaces later as a
    ``StoreInitFailed`` when the database file is opened.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Could not create data directory %s: %s", path, exc)


class DocumentStore:
    """Single shared SQLite connection guarded by a mutual-exclusion lock.

    Create one instance at startup with :func:`open_store` and hand it to
    every repository that needs it; do not keep it in a module global.

    Lifecycle::

        store = open_store(settings)   # once, at startup
        with store.transaction() as conn:
            conn.execute(...)
        store.disconnect()             # at shutdown

    Exactly one ``transaction()`` block runs at a time.  Each block is its
    own transaction, committed on normal exit and rolled back on error.
    """

    def __init__(self, path: Path, lock_timeout: float = -1.0) -> None:
        self._path = path
        self._lock_timeout = lock_timeout
        self._lock = threading.Lock()
        self._engine: Engine | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    def connect(self) -> None:
        """Open (or create) the database file and verify it with a query."""
        try:
            engine = create_engine(
                URL.create("sqlite", database=str(self._path)),
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise StoreInitFailed(
                f"Could not open document store at {self._path}: {exc}"
            ) from exc
        self._engine = engine
        logger.info("Opened document store at %s.", self._path)

    def disconnect(self) -> None:
        """Release the underlying connection."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info("Closed document store.")

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Yield the shared connection inside a transaction, holding the lock.

        Raises:
            LockUnavailable: the lock was not acquired within
                ``lock_timeout`` seconds.
            RuntimeError: the store is not connected.
        """
        if self._engine is None:
            raise RuntimeError("DocumentStore is not connected. Call connect() first.")
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise LockUnavailable(
                f"Could not acquire the store connection within {self._lock_timeout}s"
            )
        try:
            with self._engine.begin() as conn:
                yield conn
        finally:
            self._lock.release()


def open_store(cfg: Settings) -> DocumentStore:
    """Resolve the on-disk location, create it, and open the store.

    Raises:
        StoreInitFailed: the database file could not be opened.
    """
    data_dir = resolve_data_dir(cfg)
    ensure_data_dir(data_dir)
    store = DocumentStore(data_dir / cfg.db_filename, lock_timeout=cfg.store_lock_timeout)
    store.connect()
    return store
