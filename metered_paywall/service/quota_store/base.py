"""Base class for quota store implementations."""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Callable, Optional

from metered_paywall.models.quota import QuotaRecord

ResetPeriodProvider = Callable[[], timedelta]


class QuotaStore(ABC):
    """
    Abstract base class for quota store implementations.

    Quota stores track, per visitor, the distinct free content viewed within a
    rolling window. The window starts with the first recorded view and expires
    once the reset period has elapsed; an expired window counts as empty on
    every read and is cleared by the next write.

    Implementations never raise for backend failures. They fail open: a visitor
    whose record cannot be read or written is treated as being within quota.
    """

    def __init__(self, reset_period: ResetPeriodProvider):
        """
        Args:
            reset_period: Returns the current window length. Read on every call
                so configuration changes apply without a restart.
        """
        self.reset_period = reset_period

    @abstractmethod
    async def has_viewed(self, visitor_id: str, content_id: str) -> bool:
        """
        Check whether the content was already viewed in the current window.

        Returns:
            True for a re-read, False otherwise (also when the store is down)
        """

    @abstractmethod
    async def record_view(self, visitor_id: str, content_id: str) -> QuotaRecord:
        """
        Atomically record a view for the visitor.

        Resets an expired window first, then adds the content to the viewed
        set if it is not already there. Concurrent calls for the same visitor
        neither lose updates nor count one content id twice.

        Returns:
            The updated record, or a degraded fail-open record
        """

    @abstractmethod
    async def current_count(self, visitor_id: str) -> int:
        """
        Number of distinct content ids viewed in the current window.

        Returns 0 for expired windows and when the store is down.
        """

    @abstractmethod
    async def get_record(self, visitor_id: str) -> Optional[QuotaRecord]:
        """Read the visitor's current-window record, None if there is none."""

    @abstractmethod
    async def record_blocked(self, visitor_id: str) -> None:
        """Count a denied view for analytics. Best effort."""
