"""
Analytics sinks for paywall view events.

Delivery is fire-and-forget: the gateway schedules `send` in the background
and a failure never affects an access decision.
"""

import logging
from abc import ABC, abstractmethod

import httpx

from metered_paywall.errors import TelemetryDeliveryError
from metered_paywall.models.visitor import VisitorView

logger = logging.getLogger(__name__)


class TelemetrySink(ABC):
    """Receives one event per paywall evaluation."""

    @abstractmethod
    async def send(self, event: VisitorView) -> None:
        """
        Deliver an event.

        Raises:
            TelemetryDeliveryError: if the event could not be delivered
        """


class LoggingTelemetrySink(TelemetrySink):
    """Writes events to the application log."""

    async def send(self, event: VisitorView) -> None:
        logger.info(
            "Paywall analytics event: content=%s visitor=%s blocked=%s reason=%s repeat=%s",
            event.content_id,
            event.visitor_id,
            event.blocked,
            event.reason.value,
            event.repeat,
        )

    def __str__(self) -> str:
        return "LoggingTelemetrySink()"


class HttpTelemetrySink(TelemetrySink):
    """Posts events as JSON to an analytics collector."""

    def __init__(self, url: str, timeout: float = 2.0):
        """
        Args:
            url: Collector endpoint
            timeout: HTTP request timeout in seconds
        """
        self.url = url
        self.timeout = timeout
        self.client = httpx.AsyncClient(timeout=timeout)

    async def send(self, event: VisitorView) -> None:
        try:
            response = await self.client.post(self.url, json=event.to_dict())
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TelemetryDeliveryError(f"Analytics delivery to {self.url} failed: {e}") from e

    async def aclose(self) -> None:
        await self.client.aclose()

    def __str__(self) -> str:
        return f"HttpTelemetrySink(url='{self.url}')"
