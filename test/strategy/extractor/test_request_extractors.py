"""
Tests for the anonymous token, content header and admin token extractors.
"""

from typing import Callable

import pytest
from starlette.requests import Request

from metered_paywall.models.access import ContentDescriptor, Tier
from metered_paywall.strategy.extractor.anonymous_token import (
    AnonymousTokenExtractor,
    is_anonymous_token,
    new_anonymous_token,
)
from metered_paywall.strategy.extractor.bearer_token import BearerTokenExtractor
from metered_paywall.strategy.extractor.content_headers import (
    ContentHeadersExtractor,
    extract_slug_from_x_original_uri,
)
from metered_paywall.strategy.extractor.static_secret import StaticSecretExtractor


def test_new_anonymous_tokens_are_unique_uuid4() -> None:
    tokens = {new_anonymous_token() for _ in range(100)}

    assert len(tokens) == 100
    assert all(is_anonymous_token(t) for t in tokens)


async def test_anonymous_token_from_cookie(make_request: Callable[..., Request]) -> None:
    token = new_anonymous_token()
    request = make_request(cookies={"paywall_session": token})

    assert await AnonymousTokenExtractor()(request) == token


async def test_malformed_anonymous_token_is_ignored(make_request: Callable[..., Request]) -> None:
    request = make_request(cookies={"paywall_session": "user:admin"})

    assert await AnonymousTokenExtractor()(request) is None


async def test_content_from_headers(make_request: Callable[..., Request]) -> None:
    # Arrange
    request = make_request(
        headers={
            "x-content-id": "post-1001",
            "x-content-categories": "business, money,",
            "x-content-tier": "tier_1",
        }
    )

    # Act
    content = await ContentHeadersExtractor()(request)

    # Assert
    assert content == ContentDescriptor(
        content_id="post-1001",
        category_slugs=frozenset({"business", "money"}),
        tier_requirement=Tier.TIER_1,
    )


async def test_unknown_content_tier_header_is_rejected(
    make_request: Callable[..., Request],
) -> None:
    request = make_request(headers={"x-content-id": "vip", "x-content-tier": "platinum"})

    with pytest.raises(ValueError):
        await ContentHeadersExtractor()(request)


async def test_empty_content_tier_header_is_free(make_request: Callable[..., Request]) -> None:
    request = make_request(headers={"x-content-id": "post-1", "x-content-tier": ""})

    content = await ContentHeadersExtractor()(request)

    assert content is not None
    assert content.tier_requirement is Tier.FREE


async def test_content_id_falls_back_to_original_uri(make_request: Callable[..., Request]) -> None:
    request = make_request(headers={"x-original-uri": "/articles/how-to-lead/?utm_source=mail"})

    content = await ContentHeadersExtractor()(request)

    assert content is not None
    assert content.content_id == "how-to-lead"
    assert content.tier_requirement is Tier.FREE
    assert content.url == "/articles/how-to-lead/?utm_source=mail"


async def test_no_content_id(make_request: Callable[..., Request]) -> None:
    assert await ContentHeadersExtractor()(make_request(path="/paywall/auth")) is None


def test_slug_of_root_uri(make_request: Callable[..., Request]) -> None:
    assert extract_slug_from_x_original_uri(make_request(headers={"x-original-uri": "/"})) is None


async def test_bearer_token(make_request: Callable[..., Request]) -> None:
    extractor = BearerTokenExtractor()

    assert await extractor(make_request(headers={"authorization": "Bearer abc"})) == "abc"
    assert await extractor(make_request(headers={"authorization": "Basic abc"})) is None
    assert await extractor(make_request()) is None


async def test_static_secret(make_request: Callable[..., Request]) -> None:
    extractor = StaticSecretExtractor(secret="admin-token")

    assert await extractor(make_request()) == "admin-token"
    assert "admin-token" not in str(extractor)
