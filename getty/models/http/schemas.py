from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class RequestDescription(BaseModel):
    """Caller-supplied description of one HTTP call.

    ``url`` is deliberately a plain string: anything the transport rejects
    surfaces as ``RequestFailed`` rather than a validation error.
    """

    method: str
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    cookies: Optional[dict[str, str]] = None
    body: Optional[str] = None


class ResponseDescription(BaseModel):
    """Normalised, fully-read result of an HTTP call.

    Serialised with camelCase field names (``statusCode``, ``contentType``)
    for the UI; Python code uses the snake_case attributes.
    """

    model_config = ConfigDict(populate_by_name=True)

    status_code: int = Field(alias="statusCode")
    time: int = Field(ge=0, description="Elapsed milliseconds, call start to body read.")
    size: int = Field(ge=0, description="Byte length of the raw body text.")
    headers: dict[str, str]
    cookies: dict[str, str]
    body: Any
    content_type: str = Field(alias="contentType")
