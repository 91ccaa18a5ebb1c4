"""Async HTTP request executor.

Performs exactly one outbound HTTP call per ``execute_request`` and maps the
outcome to a :class:`ResponseDescription`.  There is no retry: a transport
failure surfaces immediately.

Uses httpx.AsyncClient which is meant to be long-lived and reused.
A single shared client is managed by the module; see ``get_http_client``
and ``close_http_client`` for lifecycle hooks.  The shared client's cookie
jar refuses every cookie, so nothing set by one response is sent with the
next request.
"""

from __future__ import annotations

import json
import logging
import re
import time
from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Any, Optional

import httpx

from getty.core.config import settings
from getty.core.errors import BodyReadFailed, InvalidMethod, RequestFailed
from getty.models.http.schemas import RequestDescription, ResponseDescription

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "text/plain"

# RFC 9110 section 5.6.2 "token"
_METHOD_TOKEN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")

# Module-level shared client
_http_client: Optional[httpx.AsyncClient] = None


def _refusing_cookie_jar() -> CookieJar:
    # An empty allow-list rejects every domain, so the jar never fills up.
    return CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))


def get_http_client() -> httpx.AsyncClient:
    """Return the shared AsyncClient.  Creates one if missing."""
    global _http_client  # noqa: PLW0603
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.http_timeout),
            follow_redirects=settings.http_follow_redirects,
            verify=settings.http_verify_ssl,
            headers={"User-Agent": settings.http_user_agent},
            cookies=_refusing_cookie_jar(),
        )
    return _http_client


async def close_http_client() -> None:
    """Close the shared AsyncClient gracefully."""
    global _http_client  # noqa: PLW0603
    if _http_client is not None and not _http_client.is_closed:
        await _http_client.aclose()
        _http_client = None
        logger.info("HTTP client closed.")


# ---------------------------------------------------------------------------
# Request side
# ---------------------------------------------------------------------------


def parse_method(token: str) -> str:
    """Return *token* if it is a syntactically valid HTTP method.

    Case is not normalised here, but httpx upper-cases the method it puts
    on the wire, so ``patch`` is sent as ``PATCH``.

    Raises:
        InvalidMethod: *token* is empty or contains characters outside the
            HTTP token grammar (whitespace, separators, non-ASCII).
    """
    if not _METHOD_TOKEN.fullmatch(token):
        raise InvalidMethod(f"Invalid HTTP method {token!r}: not a valid method token")
    return token


def format_cookie_header(cookies: Optional[dict[str, str]]) -> Optional[str]:
    """Join *cookies* into a single ``Cookie`` header value.

    Returns ``None`` for a missing or empty mapping.
    """
    if not cookies:
        return None
    return "; ".join(f"{name}={value}" for name, value in cookies.items())


def _build_request(client: httpx.AsyncClient, method: str, payload: RequestDescription) -> httpx.Request:
    headers = httpx.Headers(payload.headers)
    cookie_header = format_cookie_header(payload.cookies)
    if cookie_header is not None:
        # Replaces any Cookie header the caller set explicitly.
        headers["Cookie"] = cookie_header
    return client.build_request(method, payload.url, headers=headers, content=payload.body)


# ---------------------------------------------------------------------------
# Response side
# ---------------------------------------------------------------------------


def collect_headers(headers: httpx.Headers) -> dict[str, str]:
    """Flatten *headers* to a lowercase-keyed dict; the last duplicate wins."""
    return {name: value for name, value in headers.multi_items()}


def parse_set_cookie(raw: str) -> dict[str, str]:
    """Best-effort parse of a single ``Set-Cookie`` header value.

    The value is split on ``,``; each segment contributes the ``name=value``
    pair in front of its first ``;``.  Segments without ``=`` are skipped
    and later names overwrite earlier ones.  Cookie values containing
    commas (e.g. ``Expires`` dates) are not reassembled.
    """
    cookies: dict[str, str] = {}
    for segment in raw.split(","):
        pair = segment.split(";", 1)[0]
        name, sep, value = pair.partition("=")
        if not sep:
            continue
        cookies[name.strip()] = value.strip()
    return cookies


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant {name}")


def classify_body(text: str, content_type: str) -> Any:
    """Return the parsed JSON value when the response is JSON, else *text*.

    JSON parsing is attempted only if *content_type* mentions
    ``application/json``; invalid JSON falls back to the raw text.
    """
    if "application/json" not in content_type:
        return text
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return text


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def execute_request(payload: RequestDescription) -> ResponseDescription:
    """Perform the HTTP call described by *payload* and normalise the result.

    ``time`` covers connection setup, header exchange and the full body
    read.  No timeout is applied beyond ``settings.http_timeout`` (unset by
    default); callers needing bounded latency wrap this coroutine.

    Raises:
        InvalidMethod: the method token is malformed; no request is sent.
        RequestFailed: the transport failed (DNS, refused connection, TLS,
            timeout, malformed or unsupported URL, unencodable header).
        BodyReadFailed: the response body could not be read.
    """
    method = parse_method(payload.method)
    client = get_http_client()
    start = time.perf_counter()

    try:
        request = _build_request(client, method, payload)
        response = await client.send(request, stream=True)
    except (httpx.InvalidURL, httpx.RequestError, UnicodeEncodeError) as exc:
        logger.warning("Request %s %s failed: %s", method, payload.url, exc)
        raise RequestFailed(f"Request error: {exc}") from exc

    try:
        await response.aread()
    except httpx.RequestError as exc:
        logger.warning("Reading response from %s failed: %s", payload.url, exc)
        raise BodyReadFailed(f"Error reading response: {exc}") from exc
    finally:
        await response.aclose()

    body_text = response.text
    elapsed_ms = int((time.perf_counter() - start) * 1000)

    headers = collect_headers(response.headers)
    content_type = headers.get("content-type", DEFAULT_CONTENT_TYPE)
    raw_set_cookie = headers.get("set-cookie")
    cookies = parse_set_cookie(raw_set_cookie) if raw_set_cookie is not None else {}

    logger.debug(
        "%s %s -> %d (%d ms, %s)", method, payload.url, response.status_code, elapsed_ms, content_type
    )

    return ResponseDescription(
        status_code=response.status_code,
        time=elapsed_ms,
        size=len(body_text.encode("utf-8")),
        headers=headers,
        cookies=cookies,
        body=classify_body(body_text, content_type),
        content_type=content_type,
    )
