"""Immutable paywall configuration snapshot."""

from dataclasses import asdict, dataclass, field, fields
from datetime import timedelta
from typing import Any, Dict

import dacite

from metered_paywall.errors import InvalidConfigError
from metered_paywall.models.access import string_set

DEFAULT_POPUP_TITLE = "You've reached your free article limit"
DEFAULT_POPUP_MESSAGE = (
    "Subscribe to SUCCESS+ to get unlimited access to our premium content, "
    "exclusive interviews, and member-only benefits."
)
DEFAULT_CTA_BUTTON_TEXT = "Subscribe Now"


@dataclass(frozen=True)
class PaywallConfig:
    """
    Process-wide paywall settings as edited in the admin console.

    Instances are never mutated; a refresh replaces the whole snapshot.
    """

    enabled: bool = True
    free_article_limit: int = 3
    reset_period_days: int = 30
    bypassed_categories: frozenset[str] = field(default_factory=frozenset)
    bypassed_articles: frozenset[str] = field(default_factory=frozenset)
    popup_title: str = DEFAULT_POPUP_TITLE
    popup_message: str = DEFAULT_POPUP_MESSAGE
    cta_button_text: str = DEFAULT_CTA_BUTTON_TEXT

    def __post_init__(self) -> None:
        if isinstance(self.free_article_limit, bool) or self.free_article_limit < 0:
            raise ValueError(
                f"free_article_limit must be a non-negative integer, got {self.free_article_limit!r}"
            )
        if isinstance(self.reset_period_days, bool) or self.reset_period_days < 1:
            raise ValueError(
                f"reset_period_days must be at least 1, got {self.reset_period_days!r}"
            )

    @property
    def reset_period(self) -> timedelta:
        return timedelta(days=self.reset_period_days)

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaywallConfig":
        """
        Build a snapshot from a stored or submitted document.

        Missing fields take their defaults, unknown fields are rejected.

        Raises:
            InvalidConfigError: if the document does not describe a valid config
        """
        try:
            return dacite.from_dict(
                data_class=cls,
                data=data,
                config=dacite.Config(
                    type_hooks={frozenset[str]: string_set},
                    cast=[frozenset],
                    strict=True,
                ),
            )
        except (dacite.DaciteError, ValueError, TypeError) as e:
            raise InvalidConfigError(f"Invalid paywall config: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["bypassed_categories"] = sorted(self.bypassed_categories)
        data["bypassed_articles"] = sorted(self.bypassed_articles)
        return data
