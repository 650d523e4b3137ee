from __future__ import annotations

import enum
import re

from browserfetch.errors import DecodeError
from browserfetch.models import FetchResponse

RETRYABLE_STATUSES = frozenset({408, 409, 425, 500, 502, 503, 504})

# The remote end closed the socket without answering.
HANG_UP_PATTERN = re.compile(
    r"net::ERR_EMPTY_RESPONSE|socket hang up|Server disconnected without sending a response"
)

# Refused connections, redirect loops, unresolvable hosts and lost networks.
UNRETRYABLE_PATTERN = re.compile(
    "|".join(
        [
            "ERR_CONNECTION_REFUSED",
            "ECONNREFUSED",
            "Connection refused",
            "All connection attempts failed",
            "ERR_TOO_MANY_REDIRECTS",
            "Max redirects",
            "TooManyRedirects",
            "ERR_INTERNET_DISCONNECTED",
            "ENOTFOUND",
            "Name or service not known",
            "nodename nor servname",
            "getaddrinfo failed",
            "Network is unreachable",
        ]
    ),
    re.IGNORECASE,
)


class RetryDecision(enum.Enum):
    RETRY = "retry"
    SUCCESS = "success"
    FAILURE = "failure"
    # Hung-up socket that already used its single retry.
    GONE = "gone"


def describe_error(error: BaseException) -> str:
    return f"{type(error).__name__}: {error}"


def evaluate_attempt(
    attempt: int,
    max_retries: int,
    *,
    response: FetchResponse | None = None,
    error: BaseException | None = None,
) -> RetryDecision:
    """Classify the outcome of attempt number ``attempt`` (0-based)."""
    if response is not None:
        if not response.ok and attempt < max_retries and response.status in RETRYABLE_STATUSES:
            return RetryDecision.RETRY
        # A non-ok response that is not retried is still a result for the caller.
        return RetryDecision.SUCCESS

    if isinstance(error, DecodeError):
        return RetryDecision.FAILURE

    description = describe_error(error) if error is not None else ""
    if HANG_UP_PATTERN.search(description):
        # One retry at most: a server that hung up rarely recovers within seconds.
        return RetryDecision.RETRY if attempt < 1 else RetryDecision.GONE
    if attempt < max_retries and not UNRETRYABLE_PATTERN.search(description):
        return RetryDecision.RETRY
    return RetryDecision.FAILURE


class ExponentialBackoff:
    """Delays of ``initial * factor**n`` seconds, capped at ``maximum``."""

    def __init__(self, initial: float = 1.0, maximum: float = 5.0, factor: float = 2.0) -> None:
        self.initial = initial
        self.maximum = maximum
        self.factor = factor
        self.attempts = 0

    def next_delay(self) -> float:
        delay = min(self.initial * (self.factor**self.attempts), self.maximum)
        self.attempts += 1
        return delay

    def reset(self) -> None:
        self.attempts = 0
