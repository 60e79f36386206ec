"""
Shared fixtures for the paywall tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import pytest
from starlette.datastructures import Headers
from starlette.requests import Request

from metered_paywall.models.visitor import VisitorView
from metered_paywall.service.telemetry import TelemetrySink


class FakeClock:
    """A controllable UTC clock."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class RecordingTelemetrySink(TelemetrySink):
    """Keeps every delivered event in memory."""

    def __init__(self) -> None:
        self.events: List[VisitorView] = []

    async def send(self, event: VisitorView) -> None:
        self.events.append(event)


def build_request(
    headers: Optional[Dict[str, str]] = None,
    cookies: Optional[Dict[str, str]] = None,
    path: str = "/paywall/evaluate",
) -> Request:
    all_headers = dict(headers or {})
    if cookies:
        all_headers["cookie"] = "; ".join(f"{k}={v}" for k, v in cookies.items())
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": path,
            "query_string": b"",
            "headers": Headers(all_headers).raw,
        }
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def telemetry_sink() -> RecordingTelemetrySink:
    return RecordingTelemetrySink()


@pytest.fixture
def make_request() -> Callable[..., Request]:
    return build_request
