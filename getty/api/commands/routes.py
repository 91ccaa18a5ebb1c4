from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from getty.core.config import settings
from getty.core.database import DocumentStore
from getty.core.errors import (
    BodyReadFailed,
    InvalidMethod,
    LockUnavailable,
    RequestFailed,
    StoreError,
)
from getty.models.common import ErrorResponse, MessageResponse
from getty.models.http.schemas import RequestDescription, ResponseDescription
from getty.models.store.schemas import (
    StoreDeleteRequest,
    StoreLoadRequest,
    StoreLoadResponse,
    StoreSaveRequest,
)
from getty.repositories.documents.repository import DocumentRepository
from getty.services.store.service import StoreService
from getty.workers.executor import execute_request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invoke", tags=["commands"])

_STORE_ERRORS = {500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}}


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_store(request: Request) -> DocumentStore:
    """Return the store opened by the lifespan hook."""
    return request.app.state.store


def _get_service(store: DocumentStore = Depends(_get_store)) -> StoreService:
    """FastAPI dependency that builds a ``StoreService`` for each request."""
    return StoreService(DocumentRepository.from_db(store))


def _store_http_error(exc: StoreError) -> HTTPException:
    status = 503 if isinstance(exc, LockUnavailable) else 500
    return HTTPException(status_code=status, detail=str(exc))


# ---------------------------------------------------------------------------
# POST /invoke/execute_request
# ---------------------------------------------------------------------------


@router.post(
    "/execute_request",
    response_model=ResponseDescription,
    responses={
        400: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
    summary="Execute an HTTP request and return the normalised response",
)
async def post_execute_request(payload: RequestDescription) -> ResponseDescription:
    """Perform one outbound HTTP call.

    Any status code returned by the remote side is a successful command;
    only failures to obtain a response are errors.

    - **200** — response captured (whatever its status code)
    - **400** — invalid HTTP method
    - **502** — network failure or unreadable body
    - **504** — ``command_timeout`` elapsed
    """
    try:
        return await asyncio.wait_for(execute_request(payload), timeout=settings.command_timeout)
    except InvalidMethod as exc:
        logger.warning("execute_request rejected method %r: %s", payload.method, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except (RequestFailed, BodyReadFailed) as exc:
        logger.warning("execute_request failed for %s: %s", payload.url, exc)
        raise HTTPException(status_code=502, detail=str(exc))
    except asyncio.TimeoutError:
        logger.warning("execute_request timed out for %s", payload.url)
        raise HTTPException(
            status_code=504,
            detail=f"Request to {payload.url} exceeded {settings.command_timeout}s",
        )


# ---------------------------------------------------------------------------
# POST /invoke/store_save
# ---------------------------------------------------------------------------


@router.post(
    "/store_save",
    response_model=MessageResponse,
    responses=_STORE_ERRORS,
    summary="Save a document under a key",
)
async def post_store_save(
    request: StoreSaveRequest,
    service: StoreService = Depends(_get_service),
) -> MessageResponse:
    try:
        await service.save(request.table, request.data)
    except StoreError as exc:
        logger.error("store_save failed for %s: %s", request.table, exc)
        raise _store_http_error(exc)
    return MessageResponse(message=f"Saved {request.table}")


# ---------------------------------------------------------------------------
# POST /invoke/store_load
# ---------------------------------------------------------------------------


@router.post(
    "/store_load",
    response_model=StoreLoadResponse,
    responses=_STORE_ERRORS,
    summary="Load the document stored under a key",
)
async def post_store_load(
    request: StoreLoadRequest,
    service: StoreService = Depends(_get_service),
) -> StoreLoadResponse:
    """Return the stored content, or ``{"data": null}`` for an unknown key."""
    try:
        data = await service.load(request.table)
    except StoreError as exc:
        logger.error("store_load failed for %s: %s", request.table, exc)
        raise _store_http_error(exc)
    return StoreLoadResponse(data=data)


# ---------------------------------------------------------------------------
# POST /invoke/store_delete
# ---------------------------------------------------------------------------


@router.post(
    "/store_delete",
    response_model=MessageResponse,
    responses=_STORE_ERRORS,
    summary="Delete the document stored under a key",
)
async def post_store_delete(
    request: StoreDeleteRequest,
    service: StoreService = Depends(_get_service),
) -> MessageResponse:
    try:
        await service.delete(request.table, request.id)
    except StoreError as exc:
        logger.error("store_delete failed for %s: %s", request.table, exc)
        raise _store_http_error(exc)
    return MessageResponse(message=f"Deleted {request.table}")
