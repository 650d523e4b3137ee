from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from browserfetch.models import FetchRequest, FetchResponse


class FetchError(Exception):
    """Base error. ``request``/``response`` are filled in once the dispatch terminates."""

    def __init__(
        self,
        message: str,
        *,
        request: FetchRequest | None = None,
        response: FetchResponse | None = None,
    ) -> None:
        super().__init__(message)
        self.request = request
        self.response = response

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""


class DecodeError(FetchError):
    """The body could not be turned into text with the requested/detected charset."""


class ParseError(DecodeError):
    """The decoded text is not valid JSON/XML."""


class TransportError(FetchError):
    """Network, DNS, TLS or redirect failure surfaced by the transport adapter."""
