from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class DocumentRecord(BaseModel):
    """One key → content row of the document store.

    ``content`` is opaque to the store; it is usually serialised JSON but is
    never parsed or validated here.
    """

    key: str
    content: str
    updated_at: datetime
