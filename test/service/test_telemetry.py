"""
Tests for the analytics sinks.
"""

import logging
from datetime import datetime, timezone
from unittest.mock import MagicMock

import httpx
import pytest
from httpx import AsyncClient, Request, Response

from metered_paywall.errors import TelemetryDeliveryError
from metered_paywall.models.access import Reason
from metered_paywall.models.visitor import VisitorView
from metered_paywall.service.telemetry import HttpTelemetrySink, LoggingTelemetrySink

COLLECTOR_URL = "https://analytics.example.com/paywall"

EVENT = VisitorView(
    content_id="article-1",
    visitor_id="anonymous",
    blocked=True,
    reason=Reason.QUOTA_EXCEEDED,
    occurred_at=datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc),
)


async def test_http_sink_posts_event() -> None:
    # Arrange
    mock_client = MagicMock(spec=AsyncClient)
    mock_client.post.return_value = Response(202, request=Request("POST", COLLECTOR_URL))
    sink = HttpTelemetrySink(url=COLLECTOR_URL)
    sink.client = mock_client

    # Act
    await sink.send(EVENT)

    # Assert
    mock_client.post.assert_called_once_with(
        COLLECTOR_URL,
        json={
            "content_id": "article-1",
            "visitor_id": "anonymous",
            "blocked": True,
            "reason": "QUOTA_EXCEEDED",
            "repeat": False,
            "title": None,
            "url": None,
            "timestamp": "2026-01-01T09:00:00+00:00",
        },
    )


async def test_http_sink_raises_delivery_error_on_bad_status() -> None:
    mock_client = MagicMock(spec=AsyncClient)
    mock_client.post.return_value = Response(500, request=Request("POST", COLLECTOR_URL))
    sink = HttpTelemetrySink(url=COLLECTOR_URL)
    sink.client = mock_client

    with pytest.raises(TelemetryDeliveryError):
        await sink.send(EVENT)


async def test_http_sink_raises_delivery_error_on_network_error() -> None:
    mock_client = MagicMock(spec=AsyncClient)
    mock_client.post.side_effect = httpx.ConnectError("refused")
    sink = HttpTelemetrySink(url=COLLECTOR_URL)
    sink.client = mock_client

    with pytest.raises(TelemetryDeliveryError):
        await sink.send(EVENT)


async def test_logging_sink(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="metered_paywall.service.telemetry"):
        await LoggingTelemetrySink().send(EVENT)

    assert "content=article-1" in caplog.text
    assert "blocked=True" in caplog.text
