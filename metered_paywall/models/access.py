"""Content descriptors, membership tiers and access decisions."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Optional

import dacite


class Tier(IntEnum):
    """
    Membership tier of a visitor or tier requirement of a piece of content.

    Tiers are ordered: a higher tier satisfies every lower requirement.
    """

    FREE = 0
    TIER_1 = 1
    TIER_2 = 2
    TIER_3 = 3

    @classmethod
    def _lookup(cls, value: Any) -> Optional["Tier"]:
        if isinstance(value, Tier):
            return value
        if isinstance(value, bool) or value is None:
            return None
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                return None
        if isinstance(value, str):
            text = value.strip()
            if text.isdigit():
                return cls._lookup(int(text))
            return cls.__members__.get(text.upper())
        return None

    @classmethod
    def parse(cls, value: Any) -> "Tier":
        """
        Parse a visitor tier from a token claim.

        Accepts tier names in any case ("tier_2", "TIER_2"), their numeric
        value as int or string, or an existing Tier. Anything else is FREE.
        """
        tier = cls._lookup(value)
        return cls.FREE if tier is None else tier

    @classmethod
    def parse_requirement(cls, value: Any) -> "Tier":
        """
        Parse the tier requirement of a piece of content.

        Same forms as `parse`, and None means FREE.

        Raises:
            ValueError: if the value names no known tier
        """
        if value is None:
            return cls.FREE
        tier = cls._lookup(value)
        if tier is None:
            raise ValueError(f"Unknown tier requirement: {value!r}")
        return tier


def string_set(value: Any) -> frozenset[str]:
    """Type hook for set fields: only JSON arrays are accepted, never a bare string."""
    if isinstance(value, (list, tuple, set, frozenset)):
        return frozenset(value)
    raise TypeError(f"Expected a list of strings, got {type(value).__name__}")


class Outcome(str, Enum):
    ALLOWED = "ALLOWED"
    DENIED = "DENIED"


class Reason(str, Enum):
    GLOBALLY_DISABLED = "GLOBALLY_DISABLED"
    BYPASSED = "BYPASSED"
    TIER_SATISFIED = "TIER_SATISFIED"
    WITHIN_QUOTA = "WITHIN_QUOTA"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    TIER_INSUFFICIENT = "TIER_INSUFFICIENT"


@dataclass(frozen=True)
class ContentDescriptor:
    """
    Read-only description of the content unit being viewed.

    Supplied by the caller for every evaluation. `title` and `url` are only
    carried into analytics events.
    """

    content_id: str
    category_slugs: frozenset[str] = field(default_factory=frozenset)
    tier_requirement: Tier = Tier.FREE
    title: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentDescriptor":
        """
        Build a descriptor from a request body.

        Raises:
            ValueError: if the body does not describe a content unit
        """
        try:
            descriptor = dacite.from_dict(
                data_class=cls,
                data=data,
                config=dacite.Config(
                    type_hooks={Tier: Tier.parse_requirement, frozenset[str]: string_set},
                    cast=[frozenset],
                ),
            )
        except (dacite.DaciteError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid content descriptor: {e}") from e
        if not descriptor.content_id:
            raise ValueError("Invalid content descriptor: empty content_id")
        return descriptor


@dataclass(frozen=True)
class AccessDecision:
    """Result of a paywall evaluation."""

    outcome: Outcome
    reason: Reason
    remaining_free_views: Optional[int] = None
    viewed_count: Optional[int] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.ALLOWED

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "reason": self.reason.value,
            "remaining_free_views": self.remaining_free_views,
            "viewed_count": self.viewed_count,
        }
