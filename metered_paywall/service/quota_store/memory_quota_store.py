"""In-process quota store for development and single-process deployments."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Callable, Dict, Optional

from metered_paywall.models.quota import QuotaRecord
from metered_paywall.service.quota_store.base import QuotaStore, ResetPeriodProvider

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _Window:
    started_at: datetime
    views: Dict[str, int] = field(default_factory=dict)
    blocked: int = 0


class InMemoryQuotaStore(QuotaStore):
    """
    Quota store keeping records in a dictionary.

    No method awaits while touching the records, so each operation is atomic
    with respect to other coroutines on the same event loop. State is not
    shared between processes; use the Redis store for that.
    """

    def __init__(
        self,
        reset_period: ResetPeriodProvider,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(reset_period)
        self.clock = clock
        self._windows: Dict[str, _Window] = {}

    def _live_window(self, visitor_id: str, now: datetime) -> Optional[_Window]:
        window = self._windows.get(visitor_id)
        if window is None or now - window.started_at >= self.reset_period():
            return None
        return window

    @staticmethod
    def _snapshot(visitor_id: str, window: _Window) -> QuotaRecord:
        return QuotaRecord(
            visitor_id=visitor_id,
            viewed_content_ids=MappingProxyType(dict(window.views)),
            window_started_at=window.started_at,
            blocked_count=window.blocked,
        )

    async def has_viewed(self, visitor_id: str, content_id: str) -> bool:
        window = self._live_window(visitor_id, self.clock())
        return window is not None and content_id in window.views

    async def record_view(self, visitor_id: str, content_id: str) -> QuotaRecord:
        now = self.clock()
        window = self._live_window(visitor_id, now)
        if window is None:
            logger.debug("Starting new quota window for visitor %s", visitor_id)
            window = _Window(started_at=now)
            self._windows[visitor_id] = window

        window.views.setdefault(content_id, len(window.views) + 1)
        return self._snapshot(visitor_id, window)

    async def current_count(self, visitor_id: str) -> int:
        window = self._live_window(visitor_id, self.clock())
        return len(window.views) if window else 0

    async def get_record(self, visitor_id: str) -> Optional[QuotaRecord]:
        window = self._live_window(visitor_id, self.clock())
        return self._snapshot(visitor_id, window) if window else None

    async def record_blocked(self, visitor_id: str) -> None:
        window = self._live_window(visitor_id, self.clock())
        if window is not None:
            window.blocked += 1

    def __str__(self) -> str:
        return f"InMemoryQuotaStore(visitors={len(self._windows)})"
