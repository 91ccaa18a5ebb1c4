from __future__ import annotations

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from getty.core.config import Settings
from getty.core.database import DocumentStore, ensure_data_dir, open_store, resolve_data_dir
from getty.core.errors import (
    DeleteFailed,
    LockUnavailable,
    ReadFailed,
    StoreError,
    StoreInitFailed,
    WriteFailed,
)
from getty.models.store.document import DocumentRecord
from getty.repositories.documents.repository import DocumentRepository
from getty.services.store.service import StoreService


# ---------------------------------------------------------------------------
# Location & initialisation
# ---------------------------------------------------------------------------


class TestResolveDataDir:
    def test_explicit_data_dir_wins(self, tmp_path):
        cfg = Settings(data_dir=tmp_path / "custom")
        assert resolve_data_dir(cfg, cwd=tmp_path / "src-tauri") == tmp_path / "custom"

    def test_defaults_to_cwd_data(self, tmp_path):
        assert resolve_data_dir(Settings(), cwd=tmp_path) == tmp_path / "data"

    def test_launch_subdir_moves_up_one_level(self, tmp_path):
        cwd = tmp_path / "src-tauri"
        assert resolve_data_dir(Settings(), cwd=cwd) == tmp_path / "data"

    def test_custom_launch_subdir(self, tmp_path):
        cfg = Settings(launch_subdir="build")
        assert resolve_data_dir(cfg, cwd=tmp_path / "build") == tmp_path / "data"


class TestOpenStore:
    def test_creates_directory_and_file(self, tmp_path):
        cfg = Settings(data_dir=tmp_path / "nested" / "data", db_filename="x.db")
        store = open_store(cfg)
        try:
            assert store.is_connected
            assert store.path == tmp_path / "nested" / "data" / "x.db"
            assert store.path.exists()
        finally:
            store.disconnect()

    def test_directory_failure_is_not_raised(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        ensure_data_dir(blocker / "data")  # logged only
        assert not (blocker / "data").exists()

    def test_unopenable_store_raises_init_failed(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(StoreInitFailed, match="Could not open document store"):
            open_store(Settings(data_dir=blocker / "data"))

    def test_transaction_requires_connect(self, tmp_path):
        store = DocumentStore(tmp_path / "never.db")
        with pytest.raises(RuntimeError, match="not connected"):
            with store.transaction():
                pass

    async def test_ensure_schema_is_idempotent(self, store, repo):
        await repo.ensure_schema()
        await repo.save("k", "v")
        await repo.ensure_schema()
        assert await repo.load("k") == "v"


# ---------------------------------------------------------------------------
# DocumentRepository
# ---------------------------------------------------------------------------


class TestDocumentRepository:
    async def test_save_then_load(self, repo):
        await repo.save("notes", "hello")
        assert await repo.load("notes") == "hello"

    async def test_last_write_wins(self, repo):
        await repo.save("notes", "hello")
        await repo.save("notes", "world")
        assert await repo.load("notes") == "world"

    async def test_load_missing_returns_none(self, repo):
        assert await repo.load("missing") is None

    async def test_content_is_opaque(self, repo):
        raw = '{"not": "validated"'
        await repo.save("broken-json", raw)
        assert await repo.load("broken-json") == raw

    async def test_empty_content_round_trips(self, repo):
        await repo.save("empty", "")
        assert await repo.load("empty") == ""

    async def test_find_record_has_timestamp(self, repo):
        await repo.save("env", "{}")
        record = await repo.find_record("env")
        assert isinstance(record, DocumentRecord)
        assert record.key == "env"
        assert record.content == "{}"
        assert isinstance(record.updated_at, datetime)

    async def test_find_record_missing(self, repo):
        assert await repo.find_record("missing") is None

    async def test_overwrite_keeps_single_row(self, repo, store):
        await repo.save("history", "1")
        await repo.save("history", "2")
        with store.transaction() as conn:
            count = conn.exec_driver_sql(
                "SELECT COUNT(*) FROM data WHERE table_name = ?", ("history",)
            ).scalar_one()
        assert count == 1

    @pytest.mark.parametrize("id", [None, "some-id"])
    async def test_delete_removes_key(self, repo, id):
        await repo.save("notes", "hello")
        await repo.delete("notes", id)
        assert await repo.load("notes") is None

    async def test_delete_with_id_removes_whole_key(self, repo):
        await repo.save("collections", "[1, 2, 3]")
        await repo.delete("collections", "2")
        assert await repo.load("collections") is None

    async def test_delete_missing_key_is_ok(self, repo):
        await repo.delete("never-created")

    async def test_delete_leaves_other_keys(self, repo):
        await repo.save("a", "1")
        await repo.save("b", "2")
        await repo.delete("a")
        assert await repo.load("b") == "2"

    async def test_concurrent_saves_are_all_kept(self, repo):
        keys = [f"key-{i}" for i in range(25)]
        await asyncio.gather(*(repo.save(key, f"value-{key}") for key in keys))
        loaded = await asyncio.gather(*(repo.load(key) for key in keys))
        assert loaded == [f"value-{key}" for key in keys]


class TestStoreFailures:
    @pytest.mark.parametrize("error", [LockUnavailable, WriteFailed, ReadFailed, DeleteFailed, StoreInitFailed])
    def test_errors_share_store_base(self, error):
        assert issubclass(error, StoreError)
        assert error.__doc__

    @pytest.fixture
    def bare_repo(self, tmp_path):
        """Repository on a store whose ``data`` table was never created."""
        store = DocumentStore(tmp_path / "bare.db")
        store.connect()
        yield DocumentRepository.from_db(store)
        store.disconnect()

    async def test_write_failure(self, bare_repo):
        with pytest.raises(WriteFailed, match="Error saving data"):
            await bare_repo.save("k", "v")

    async def test_read_failure(self, bare_repo):
        with pytest.raises(ReadFailed, match="Error loading data"):
            await bare_repo.load("k")

    async def test_delete_failure(self, bare_repo):
        with pytest.raises(DeleteFailed, match="Error deleting data"):
            await bare_repo.delete("k")

    async def test_lock_timeout_raises_lock_unavailable(self, tmp_path):
        store = DocumentStore(tmp_path / "locked.db", lock_timeout=0.05)
        store.connect()
        repo = DocumentRepository.from_db(store)
        store._lock.acquire()
        try:
            with pytest.raises(LockUnavailable):
                await repo.save("k", "v")
        finally:
            store._lock.release()
            store.disconnect()

    async def test_lock_released_after_failure(self, bare_repo):
        with pytest.raises(WriteFailed):
            await bare_repo.save("k", "v")
        await bare_repo.ensure_schema()
        await bare_repo.save("k", "v")
        assert await bare_repo.load("k") == "v"


# ---------------------------------------------------------------------------
# StoreService
# ---------------------------------------------------------------------------


class TestStoreService:
    @pytest.fixture
    def mock_repo(self):
        return AsyncMock(spec=DocumentRepository)

    @pytest.fixture
    def service(self, mock_repo):
        return StoreService(mock_repo)

    async def test_save_delegates(self, service, mock_repo):
        await service.save("notes", "hello")
        mock_repo.save.assert_called_once_with("notes", "hello")

    async def test_load_returns_content(self, service, mock_repo):
        mock_repo.load.return_value = "hello"
        assert await service.load("notes") == "hello"

    async def test_load_miss_returns_none(self, service, mock_repo):
        mock_repo.load.return_value = None
        assert await service.load("notes") is None

    async def test_delete_forwards_id(self, service, mock_repo):
        await service.delete("notes", "abc")
        mock_repo.delete.assert_called_once_with("notes", "abc")

    async def test_errors_propagate(self, service, mock_repo):
        mock_repo.save.side_effect = WriteFailed("disk full")
        with pytest.raises(WriteFailed, match="disk full"):
            await service.save("notes", "hello")

    async def test_get_record_uses_find_record(self, service, mock_repo):
        mock_repo.find_record.return_value = None
        assert await service.get_record("notes") is None
        mock_repo.find_record.assert_called_once_with("notes")
