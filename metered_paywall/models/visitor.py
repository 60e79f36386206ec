from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from metered_paywall.models.access import Reason, Tier

ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class Visitor:
    """
    The visitor behind a content view.

    `issued_token` is set when a new anonymous token was generated for this
    request and must be persisted client-side by the HTTP layer. Ephemeral
    visitors have a token that lives for this request only.
    """

    visitor_id: str
    authenticated: bool = False
    tier: Tier = Tier.FREE
    issued_token: Optional[str] = None
    ephemeral: bool = False


@dataclass(frozen=True)
class VisitorView:
    """Analytics event emitted once per evaluation."""

    content_id: str
    visitor_id: str
    blocked: bool
    reason: Reason
    occurred_at: datetime
    repeat: bool = False
    title: Optional[str] = None
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content_id": self.content_id,
            "visitor_id": self.visitor_id,
            "blocked": self.blocked,
            "reason": self.reason.value,
            "repeat": self.repeat,
            "title": self.title,
            "url": self.url,
            "timestamp": self.occurred_at.isoformat(),
        }
