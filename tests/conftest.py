from __future__ import annotations

import pytest

from browserfetch.models import FetchRequest, FetchResponse


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class ScriptedHandler:
    """Transport adapter replaying a list of responses/exceptions, one per attempt."""

    def __init__(self, *outcomes: FetchResponse | Exception) -> None:
        self.outcomes = list(outcomes)
        self.requests: list[FetchRequest] = []

    async def __call__(self, request: FetchRequest) -> FetchResponse:
        self.requests.append(FetchRequest(url=request.url, headers=dict(request.headers)))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return FetchResponse(
            url=outcome.url,
            status=outcome.status,
            headers=dict(outcome.headers),
            data=outcome.data,
        )

    @property
    def calls(self) -> int:
        return len(self.requests)


def raw_response(status: int = 200, body: bytes = b"", content_type: str | None = None) -> FetchResponse:
    headers = {"content-type": content_type} if content_type else {}
    return FetchResponse(url="http://localhost/", status=status, headers=headers, data=body)


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
