import logging

from metered_paywall.models.access import Tier
from metered_paywall.strategy.matcher.base import TokenMatcherStrategy

logger = logging.getLogger(__name__)


class TierMatcherStrategy(TokenMatcherStrategy[Tier]):
    """
    A matcher that checks a visitor tier against a content tier requirement.

    Tiers are ordered, so a visitor satisfies a requirement when their tier
    is at least the required one. FREE requirements are satisfied by everyone.
    """

    def __call__(self, presented: Tier, required: Tier) -> bool:
        if required is Tier.FREE:
            return True
        satisfied = presented >= required
        logger.debug(
            "Tier match %s: %s >= %s",
            "succeeded" if satisfied else "failed",
            presented.name,
            required.name,
        )
        return satisfied

    def __str__(self) -> str:
        return "TierMatcherStrategy()"


tier_satisfies = TierMatcherStrategy()
