"""
Access policy: decides whether a visitor may see a piece of content.

Pure functions, no I/O. Rules are applied in order and the first match wins:

1. paywall disabled            -> ALLOWED  (GLOBALLY_DISABLED)
2. article or category bypass  -> ALLOWED  (BYPASSED)
3. visitor tier satisfies it   -> ALLOWED  (TIER_SATISFIED)
4. tier-gated content          -> DENIED   (TIER_INSUFFICIENT)
5. free content, metered       -> ALLOWED  (WITHIN_QUOTA) or DENIED (QUOTA_EXCEEDED)

Rules 1 and 2 run before anything else so that content which is never gated
does not use up a free view.
"""

from typing import Optional

from metered_paywall.models.access import (
    AccessDecision,
    ContentDescriptor,
    Outcome,
    Reason,
    Tier,
)
from metered_paywall.models.paywall_config import PaywallConfig
from metered_paywall.strategy.matcher.tier import tier_satisfies


def is_bypassed(content: ContentDescriptor, config: PaywallConfig) -> bool:
    """Check the admin bypass lists for this content."""
    if content.content_id in config.bypassed_articles:
        return True
    return not content.category_slugs.isdisjoint(config.bypassed_categories)


def ungated_decision(
    content: ContentDescriptor, visitor_tier: Tier, config: PaywallConfig
) -> Optional[AccessDecision]:
    """
    Apply the rules that do not depend on the visitor's quota.

    Returns:
        The decision if one of rules 1-4 applies, None if the view is metered.
    """
    if not config.enabled:
        return AccessDecision(Outcome.ALLOWED, Reason.GLOBALLY_DISABLED)

    if is_bypassed(content, config):
        return AccessDecision(Outcome.ALLOWED, Reason.BYPASSED)

    if content.tier_requirement is not Tier.FREE:
        if tier_satisfies(visitor_tier, content.tier_requirement):
            return AccessDecision(Outcome.ALLOWED, Reason.TIER_SATISFIED)
        return AccessDecision(Outcome.DENIED, Reason.TIER_INSUFFICIENT)

    # Any paid tier satisfies free content outright
    if visitor_tier > Tier.FREE:
        return AccessDecision(Outcome.ALLOWED, Reason.TIER_SATISFIED)

    return None


def quota_decision(quota_count: int, config: PaywallConfig) -> AccessDecision:
    """
    Meter a free-content view.

    Args:
        quota_count: Distinct free views already counted before this one
        config: Current paywall configuration
    """
    if quota_count < config.free_article_limit:
        return AccessDecision(
            Outcome.ALLOWED,
            Reason.WITHIN_QUOTA,
            remaining_free_views=config.free_article_limit - quota_count - 1,
            viewed_count=quota_count + 1,
        )
    return AccessDecision(
        Outcome.DENIED,
        Reason.QUOTA_EXCEEDED,
        remaining_free_views=0,
        viewed_count=quota_count,
    )


def evaluate(
    content: ContentDescriptor,
    visitor_tier: Tier,
    config: PaywallConfig,
    quota_count: int,
) -> AccessDecision:
    """
    Decide access for a visitor and a piece of content.

    Args:
        content: The content being viewed
        visitor_tier: The visitor's membership tier (FREE for anonymous visitors)
        config: Current paywall configuration
        quota_count: Distinct free views already counted in the current window

    Returns:
        The access decision
    """
    decision = ungated_decision(content, visitor_tier, config)
    if decision is not None:
        return decision
    return quota_decision(quota_count, config)
