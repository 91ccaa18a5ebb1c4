from __future__ import annotations

from typing import AsyncIterator
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

import getty.workers.executor as executor_module
from getty.core.config import settings
from getty.core.database import DocumentStore
from getty.main import app
from getty.repositories.documents.repository import DocumentRepository


@pytest.fixture(autouse=True)
def fresh_http_client():
    """Never let a shared AsyncClient leak across event loops or tests."""
    executor_module._http_client = None
    yield
    executor_module._http_client = None


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Point the app's store at a per-test directory."""
    monkeypatch.setattr(settings, "data_dir", tmp_path)
    return tmp_path


@pytest.fixture
def client(data_dir):
    """TestClient running the real lifespan against a temporary store."""
    with patch("getty.main.close_http_client", new_callable=AsyncMock):
        with TestClient(app) as c:
            yield c


@pytest.fixture
async def store(tmp_path) -> AsyncIterator[DocumentStore]:
    """A connected store with the ``data`` table in place."""
    store = DocumentStore(tmp_path / "test.db", lock_timeout=1.0)
    store.connect()
    await DocumentRepository.from_db(store).ensure_schema()
    yield store
    store.disconnect()


@pytest.fixture
def repo(store) -> DocumentRepository:
    return DocumentRepository.from_db(store)
