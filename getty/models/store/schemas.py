from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class StoreSaveRequest(BaseModel):
    """Request body for POST /invoke/store_save."""

    table: str
    data: str


class StoreLoadRequest(BaseModel):
    """Request body for POST /invoke/store_load."""

    table: str


class StoreLoadResponse(BaseModel):
    """``data`` is ``None`` when nothing has been saved under the key."""

    data: Optional[str] = None


class StoreDeleteRequest(BaseModel):
    """Request body for POST /invoke/store_delete.

    ``id`` is accepted for compatibility with existing callers but does not
    narrow the delete; every row stored under ``table`` is removed.
    """

    table: str
    id: Optional[str] = None
