import pytest

from metered_paywall.models.access import Tier
from metered_paywall.strategy.matcher.base import NullMatcherStrategy
from metered_paywall.strategy.matcher.equality import EqualityMatcher
from metered_paywall.strategy.matcher.tier import TierMatcherStrategy


@pytest.mark.parametrize(
    "presented, required, expected",
    [
        (Tier.FREE, Tier.FREE, True),
        (Tier.TIER_1, Tier.FREE, True),
        (Tier.TIER_1, Tier.TIER_1, True),
        (Tier.TIER_3, Tier.TIER_2, True),
        (Tier.TIER_1, Tier.TIER_2, False),
        (Tier.FREE, Tier.TIER_1, False),
    ],
)
def test_tier_matcher(presented: Tier, required: Tier, expected: bool) -> None:
    assert TierMatcherStrategy()(presented, required) is expected


def test_equality_matcher() -> None:
    matcher = EqualityMatcher()

    assert matcher("s3cret", "s3cret")
    assert not matcher("s3cret", "other")
    assert not matcher(None, "s3cret")
    assert not matcher("", "")


def test_null_matcher_never_matches() -> None:
    assert not NullMatcherStrategy()("s3cret", "s3cret")
