"""Request normalization and the retry loop around a transport adapter.

``dispatch`` never talks to the network itself. Any coroutine function with
the ``handle(request) -> FetchResponse`` signature can do the fetching; the
dispatcher prepares the request, retries failed attempts and turns the raw
body of the final response into typed data.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any
from urllib.parse import quote

from browserfetch.config import DEFAULT_TIMEOUT
from browserfetch.content import extract_content_type
from browserfetch.decoder import resolve_response
from browserfetch.errors import FetchError, TransportError
from browserfetch.magic import resolve_magic_vars
from browserfetch.models import FetchRequest, FetchResponse, fix_response, lower_headers
from browserfetch.retry import ExponentialBackoff, RetryDecision, describe_error, evaluate_attempt

LOGGER = logging.getLogger(__name__)

Handler = Callable[[FetchRequest], Awaitable[FetchResponse]]
Sleeper = Callable[[float], Awaitable[Any]]

QUERY_METHODS = {"GET", "HEAD"}


def _scalar(value: Any) -> str:
    if value is True:
        return "true"
    if value is False:
        return "false"
    if value is None:
        return ""
    return str(value)


def _flatten(prefix: str, value: Any) -> list[tuple[str, Any]]:
    if isinstance(value, Mapping):
        pairs: list[tuple[str, Any]] = []
        for key, item in value.items():
            pairs.extend(_flatten(f"{prefix}[{key}]" if prefix else str(key), item))
        return pairs
    if isinstance(value, (list, tuple)):
        pairs = []
        for index, item in enumerate(value):
            pairs.extend(_flatten(f"{prefix}[{index}]", item))
        return pairs
    return [(prefix, value)]


def stringify_query(data: Mapping[str, Any], *, encode_values_only: bool = False) -> str:
    """Serialize ``data`` the way browsers' ``qs`` does: ``a[b]=1&c[0]=x``."""
    parts = []
    for key, value in _flatten("", data):
        name = key if encode_values_only else quote(key, safe="")
        parts.append(f"{name}={quote(_scalar(value), safe='')}")
    return "&".join(parts)


def _append_query(url: str, query: str) -> str:
    if not query:
        return url
    return f"{url}&{query}" if "?" in url else f"{url}?{query}"


def normalize_request(request: FetchRequest) -> FetchRequest:
    """Apply defaults and move GET/HEAD bodies into the query string.

    Returns a new request; the caller's object is left alone.
    """
    req = dataclasses.replace(
        request,
        method=(request.method or "GET").upper(),
        headers=lower_headers(request.headers),
        cookies=list(request.cookies or []),
        timeout=request.timeout if request.timeout is not None else DEFAULT_TIMEOUT,
        retries=max(0, request.retries or 0),
    )

    if not req.data:
        return req

    if isinstance(req.data, (Mapping, list, tuple)):
        if req.method in QUERY_METHODS:
            req.url = _append_query(req.url, stringify_query(_as_mapping(req.data)))
            req.data = None
        else:
            content_type = req.headers.get("content-type")
            if isinstance(content_type, list):
                content_type = content_type[0] if content_type else None
            if extract_content_type(content_type).type == "x-www-form-urlencoded":
                req.data = stringify_query(_as_mapping(req.data), encode_values_only=True)
    elif isinstance(req.data, str) and req.method in QUERY_METHODS:
        req.url = _append_query(req.url, req.data.lstrip("?&"))
        req.data = None

    return req


def _as_mapping(data: Any) -> Mapping[str, Any]:
    if isinstance(data, Mapping):
        return data
    return {str(index): item for index, item in enumerate(data)}


def _terminal_error(
    error: BaseException,
    request: FetchRequest,
    response: FetchResponse | None,
    *,
    gone: bool,
) -> FetchError:
    if isinstance(error, FetchError):
        error.request = request
        error.response = response
        return error

    message = f"net::ERR_EMPTY_RESPONSE at {request.url}" if gone else str(error) or describe_error(error)
    return TransportError(message, request=request, response=response)


async def dispatch(
    request: FetchRequest,
    handle: Handler,
    magic_vars: bool = False,
    *,
    sleep: Sleeper = asyncio.sleep,
    backoff: ExponentialBackoff | None = None,
) -> FetchResponse:
    """Run ``handle`` until it succeeds, fails terminally or the retry budget is spent.

    Non-ok responses are returned, not raised; inspect ``response.ok``. Raised
    errors surface as :class:`FetchError` with ``request``/``response`` attached.
    """
    request = normalize_request(request)
    backoff = backoff or ExponentialBackoff()
    url_template = request.url
    referer = request.headers.get("referer")
    attempt = 0

    while True:
        if magic_vars:
            request.url = resolve_magic_vars(url_template)
            if isinstance(referer, str) and referer:
                request.headers["referer"] = resolve_magic_vars(referer)

        response: FetchResponse | None = None
        error: Exception | None = None
        LOGGER.debug(f"{request.method} {request.url} (attempt {attempt + 1})")
        try:
            response = fix_response(await handle(request), request)
        except Exception as exc:  # noqa: BLE001
            error = exc

        decision = evaluate_attempt(attempt, request.retries, response=response, error=error)
        if decision is RetryDecision.RETRY:
            delay = backoff.next_delay()
            reason = f"status={response.status}" if response is not None else describe_error(error)
            LOGGER.warning(f"Retrying {request.url} in {delay:.1f}s ({reason})")
            if response is not None:
                await response.aclose()
            await sleep(delay)
            attempt += 1
            continue

        backoff.reset()
        if error is not None:
            last_response = getattr(error, "response", None)
            if not isinstance(last_response, FetchResponse):
                last_response = None
            failure = _terminal_error(error, request, last_response, gone=decision is RetryDecision.GONE)
            LOGGER.warning(f"{request.method} {request.url} failed: {failure}")
            if failure is error:
                raise failure
            raise failure from error

        try:
            return resolve_response(response, request)
        except FetchError as exc:
            exc.request = request
            exc.response = response
            raise
