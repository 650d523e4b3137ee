from __future__ import annotations

import asyncio
import dataclasses
import locale
import logging
import mimetypes
import posixpath
import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import httpx

from browserfetch.config import BROWSER_HEADERS, DEFAULT_MAX_REDIRECTS, FetcherConfig
from browserfetch.dispatcher import dispatch
from browserfetch.models import (
    FetchRequest,
    FetchResponse,
    HeaderValue,
    capitalize_headers,
    construct_proxy,
    is_ok_status,
    lower_headers,
)

LOGGER = logging.getLogger(__name__)


def system_language() -> str:
    lang = None
    try:
        lang = locale.getlocale()[0]
    except ValueError:
        lang = None
    if not lang or lang in {"C", "POSIX"}:
        return "en-US"
    return lang.split(".")[0].replace("_", "-")


SYSTEM_LANGUAGE = system_language()
_SYSTEM_LANGUAGE_RE = re.compile(rf"\b{re.escape(SYSTEM_LANGUAGE)}\b")


def make_request_cookies(cookies: list[str]) -> str:
    """``["foo=abc", "bar=123; path=/; HttpOnly"]`` -> ``"foo=abc; bar=123"``."""
    pairs = []
    for cookie in cookies:
        pair = cookie.split(";", 1)[0].strip()
        if "=" in pair:
            name, _, value = pair.partition("=")
            pairs.append(f"{name.strip()}={value.strip()}")
    return "; ".join(pairs)


def guess_accept(url: str) -> str:
    path = urlsplit(url).path
    ext = posixpath.splitext(path)[1] if path else ""
    mime = mimetypes.guess_type(f"file{ext}")[0] if ext else None
    return f"{mime},*/*;q=0.9" if mime else "*/*"


def strip_credentials(url: str) -> str:
    """Drop ``user:pass@`` and the fragment from ``url``."""
    parts = urlsplit(url)
    netloc = parts.netloc.rpartition("@")[2]
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, ""))


def _joined(value: HeaderValue | None, sep: str) -> str:
    if isinstance(value, list):
        return sep.join(str(item) for item in value)
    return value or ""


def _response_headers(headers: httpx.Headers) -> dict[str, HeaderValue]:
    result: dict[str, HeaderValue] = {}
    for name in headers.keys():
        values = headers.get_list(name)
        result[name.lower()] = values[0] if len(values) == 1 else values
    return result


class ClientPool:
    """Connection pools keyed by proxy URL; ``""`` is the direct pool."""

    def __init__(self, config: FetcherConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.config = config
        self.transport = transport
        self._clients: dict[str, httpx.AsyncClient] = {}
        self._lock = asyncio.Lock()

    def _create(self, proxy_url: str | None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            proxy=proxy_url,
            transport=self.transport,
            verify=self.config.verify,
            follow_redirects=False,
            trust_env=False,
            limits=httpx.Limits(
                max_connections=self.config.max_connections,
                max_keepalive_connections=self.config.max_connections,
            ),
        )

    async def get(self, key: str = "", proxy_url: str | None = None) -> httpx.AsyncClient:
        client = self._clients.get(key)
        if client is not None:
            return client
        async with self._lock:
            client = self._clients.get(key)
            if client is None:
                LOGGER.debug(f"Creating connection pool for {key or 'direct connections'}")
                client = self._create(proxy_url)
                self._clients[key] = client
        return client

    def __len__(self) -> int:
        return len(self._clients)

    async def aclose(self) -> None:
        async with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            await client.aclose()


class Fetcher:
    """Browser-like HTTP client: default headers, retries and typed bodies."""

    def __init__(
        self,
        config: FetcherConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or FetcherConfig()
        self.pool = ClientPool(self.config, transport=transport)

    async def __aenter__(self) -> Fetcher:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.pool.aclose()

    async def fetch(self, target: str | FetchRequest, **options: Any) -> FetchResponse:
        if isinstance(target, FetchRequest):
            request = dataclasses.replace(target, **options)
        else:
            request = FetchRequest(url=target, **options)

        headers = {**BROWSER_HEADERS, **lower_headers(request.headers)}

        if urlsplit(request.url).scheme == "http":
            headers["upgrade-insecure-requests"] = "1"

        cookie = _joined(headers.pop("cookie", None), "; ")
        if request.cookies:
            # Prefer the ``cookies`` option; browser adapters ignore cookie headers.
            extra = make_request_cookies(request.cookies)
            cookie = f"{cookie}; {extra}" if cookie else extra
        if cookie:
            headers["cookie"] = cookie

        if not headers.get("accept"):
            headers["accept"] = guess_accept(request.url)

        accept_language = _joined(headers.get("accept-language"), ",")
        if not _SYSTEM_LANGUAGE_RE.search(accept_language):
            accept_language = f"{SYSTEM_LANGUAGE},{accept_language}" if accept_language else SYSTEM_LANGUAGE
        headers["accept-language"] = accept_language

        request.headers = headers
        if not request.timeout:
            request.timeout = self.config.timeout

        return await dispatch(request, self.make_request, self.config.magic_vars)

    async def _client_for(self, request: FetchRequest) -> httpx.AsyncClient:
        if not request.proxy:
            return await self.pool.get()
        proxy = construct_proxy(request.proxy)
        return await self.pool.get(proxy.url, proxy.auth_url)

    def _build(self, client: httpx.AsyncClient, request: FetchRequest) -> httpx.Request:
        kwargs: dict[str, Any] = {}
        if isinstance(request.data, (Mapping, list)):
            kwargs["json"] = request.data
        elif request.data is not None:
            kwargs["content"] = request.data
        return client.build_request(
            request.method,
            request.url,
            headers=capitalize_headers(request.headers),
            timeout=request.timeout,
            **kwargs,
        )

    async def make_request(self, request: FetchRequest) -> FetchResponse:
        """Transport adapter: one network round trip (plus redirects) via httpx."""
        client = await self._client_for(request)
        max_redirects = DEFAULT_MAX_REDIRECTS if request.max_redirects is None else request.max_redirects
        outgoing = self._build(client, request)
        redirects = 0

        while True:
            raw = await client.send(outgoing, stream=True)
            if not raw.is_redirect or raw.next_request is None:
                break
            await raw.aclose()
            redirects += 1
            if redirects > max_redirects:
                raise httpx.TooManyRedirects(
                    f"Max redirects ({max_redirects}) exceeded", request=outgoing
                )
            outgoing = raw.next_request

        response = FetchResponse(
            url=strip_credentials(str(raw.url)),
            status=raw.status_code,
            status_text=raw.reason_phrase or "",
            headers=_response_headers(raw.headers),
            cookies=raw.headers.get_list("set-cookie"),
            ok=is_ok_status(raw.status_code),
        )

        # Streams are handed over untouched; nothing is decoded.
        if request.response_type == "stream":
            response.type = "stream"
            response.data = raw.aiter_bytes()
            response.stream = raw
            return response

        try:
            response.data = await raw.aread()
        finally:
            await raw.aclose()
        return response


async def fetch(target: str | FetchRequest, **options: Any) -> FetchResponse:
    """One-off fetch with magic variables enabled."""
    async with Fetcher(FetcherConfig(magic_vars=True)) as fetcher:
        return await fetcher.fetch(target, **options)
