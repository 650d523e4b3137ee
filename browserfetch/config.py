from __future__ import annotations

import os
from dataclasses import dataclass

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_3) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/80.0.3987.116 Safari/537.36"
)

# Copied from Chrome so the transport looks like a browser.
BROWSER_HEADERS = {
    "accept-encoding": "gzip, deflate",
    "accept-language": "en-US,en;q=0.9,zh-CN;q=0.8,zh;q=0.7",
    "cache-control": "no-cache",
    "connection": "keep-alive",
    "pragma": "no-cache",
    "user-agent": USER_AGENT,
}

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_REDIRECTS = 5
DEFAULT_MAX_CONNECTIONS = 10

_TRUTHY = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUTHY


@dataclass
class FetcherConfig:
    # Resolve {ts}, {ms}, {date}, {rand} placeholders in url/referer per attempt.
    magic_vars: bool = False
    timeout: float = DEFAULT_TIMEOUT

    # Connection pools
    verify: bool = False
    max_connections: int = DEFAULT_MAX_CONNECTIONS

    @classmethod
    def from_env(cls) -> FetcherConfig:
        timeout = os.getenv("BROWSERFETCH_TIMEOUT")
        max_connections = os.getenv("BROWSERFETCH_MAX_CONNECTIONS")
        return cls(
            magic_vars=_env_bool("BROWSERFETCH_MAGIC_VARS", False),
            timeout=float(timeout) if timeout else DEFAULT_TIMEOUT,
            verify=_env_bool("BROWSERFETCH_VERIFY_TLS", False),
            max_connections=int(max_connections) if max_connections else DEFAULT_MAX_CONNECTIONS,
        )
