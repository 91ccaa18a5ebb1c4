from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from getty.api.router import router
from getty.core.config import settings
from getty.core.database import open_store
from getty.repositories.documents.repository import DocumentRepository
from getty.workers.executor import close_http_client


def _configure_logging() -> None:
    """Configure the ``getty`` logger namespace.

    ``logging.basicConfig`` is a no-op when the root logger already has
    handlers (e.g. when uvicorn sets up its own handlers before our lifespan
    runs).  Configuring the ``getty`` namespace directly, with
    ``propagate = False``, ensures all application logs reach stdout
    regardless of uvicorn's root-logger setup.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")
    )
    app_log = logging.getLogger("getty")
    app_log.setLevel(level)
    if not app_log.handlers:
        app_log.addHandler(handler)
    app_log.propagate = False


_configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # ── Startup ──────────────────────────────────────────────────────
    # StoreInitFailed propagates: the service must not start without a store.
    store = open_store(settings)
    await DocumentRepository.from_db(store).ensure_schema()
    app.state.store = store
    yield
    # ── Shutdown ─────────────────────────────────────────────────────
    await close_http_client()
    store.disconnect()


app = FastAPI(
    title="Getty",
    description="Backend for a desktop API client: executes HTTP requests and stores documents.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)


@app.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    return {"status": "ok"}
