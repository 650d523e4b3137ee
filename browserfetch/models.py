from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal
from urllib.parse import quote, unquote, urlsplit

HeaderValue = str | list[str]
ResponseType = Literal["buffer", "text", "json", "stream"]


@dataclass(slots=True)
class ProxyInfo:
    host: str
    port: int
    protocol: str = "http:"
    username: str | None = None
    password: str | None = None

    @property
    def url(self) -> str:
        """Cache key for the proxy, credentials excluded."""
        scheme = "https" if self.protocol == "https:" else "http"
        return f"{scheme}://{self.host}:{self.port}"

    @property
    def auth_url(self) -> str:
        if self.username is None:
            return self.url
        scheme, _, rest = self.url.partition("://")
        credentials = quote(self.username, safe="") + ":" + quote(self.password or "", safe="")
        return f"{scheme}://{credentials}@{rest}"


@dataclass(slots=True)
class FetchRequest:
    url: str
    method: str = "GET"
    headers: dict[str, HeaderValue] = field(default_factory=dict)
    cookies: list[str] = field(default_factory=list)
    data: Any = None
    timeout: float | None = None
    retries: int | None = None
    max_redirects: int | None = None
    response_type: ResponseType | None = None
    response_charset: str | None = None
    proxy: str | ProxyInfo | None = None


@dataclass(slots=True)
class FetchResponse:
    url: str
    status: int
    status_text: str = ""
    headers: dict[str, HeaderValue] = field(default_factory=dict)
    cookies: list[str] = field(default_factory=list)
    ok: bool = False
    type: ResponseType | None = None
    data: Any = None
    stream: Any = None

    async def aclose(self) -> None:
        if self.stream is not None:
            await self.stream.aclose()
            self.stream = None


@dataclass(slots=True)
class ContentInfo:
    type: str
    charset: str | None = None
    prefix: str = "*"


def is_ok_status(status: int) -> bool:
    return 200 <= status <= 299 or status == 304


def lower_headers(headers: dict[str, HeaderValue] | None) -> dict[str, HeaderValue]:
    return {str(name).lower(): value for name, value in (headers or {}).items() if value is not None}


def capitalize_headers(headers: dict[str, HeaderValue]) -> list[tuple[str, str]]:
    """Browser-style header names (``content-type`` -> ``Content-Type``), one pair per value."""
    pairs: list[tuple[str, str]] = []
    for name, value in headers.items():
        wire_name = "-".join(part.capitalize() for part in name.split("-"))
        values = value if isinstance(value, list) else [value]
        pairs.extend((wire_name, str(item)) for item in values)
    return pairs


def construct_proxy(proxy: str | ProxyInfo) -> ProxyInfo:
    if isinstance(proxy, ProxyInfo):
        return proxy

    raw = proxy.strip()
    if "://" not in raw:
        raw = "http://" + raw
    parts = urlsplit(raw)
    if not parts.hostname:
        raise ValueError(f"Invalid proxy: {proxy!r}")

    protocol = "https:" if parts.scheme == "https" else "http:"
    port = parts.port or (443 if protocol == "https:" else 80)
    return ProxyInfo(
        host=parts.hostname,
        port=port,
        protocol=protocol,
        username=unquote(parts.username) if parts.username else None,
        password=unquote(parts.password) if parts.password else None,
    )


def fix_response(response: FetchResponse, request: FetchRequest) -> FetchResponse:
    """Fill the fields a transport adapter may leave out."""
    response.url = response.url or request.url
    response.headers = lower_headers(response.headers)
    if not response.cookies:
        set_cookie = response.headers.get("set-cookie") or []
        response.cookies = [set_cookie] if isinstance(set_cookie, str) else list(set_cookie)
    response.status_text = response.status_text or ""
    response.ok = is_ok_status(response.status)
    return response
