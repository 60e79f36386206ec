"""Per-visitor quota record."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping, Optional


@dataclass(frozen=True)
class QuotaRecord:
    """
    Snapshot of a visitor's metered views within the current window.

    `viewed_content_ids` maps each content id viewed in the window to the
    1-based position at which it was first recorded. Membership is what the
    quota counts; the position lets a re-read reproduce its original decision.
    """

    visitor_id: str
    viewed_content_ids: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType({})
    )
    window_started_at: Optional[datetime] = None
    blocked_count: int = 0
    degraded: bool = False

    @property
    def count(self) -> int:
        return len(self.viewed_content_ids)

    def has_viewed(self, content_id: str) -> bool:
        return content_id in self.viewed_content_ids

    def position_of(self, content_id: str) -> Optional[int]:
        return self.viewed_content_ids.get(content_id)

    @classmethod
    def fail_open(cls, visitor_id: str, content_id: str) -> "QuotaRecord":
        """Placeholder returned when the store is unreachable.

        The content counts as the first view of a fresh window, which keeps the
        visitor under any non-zero limit.
        """
        return cls(
            visitor_id=visitor_id,
            viewed_content_ids=MappingProxyType({content_id: 1}),
            window_started_at=datetime.now(timezone.utc),
            degraded=True,
        )
