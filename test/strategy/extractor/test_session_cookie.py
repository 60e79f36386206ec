"""
Tests for the cookie session extractor.
"""

import time
from typing import Any, Callable, Dict

import jwt
from starlette.requests import Request

from metered_paywall.models.access import Tier
from metered_paywall.strategy.extractor.session_cookie import (
    CookieSessionExtractor,
    SessionClaims,
)

SECRET = "test-secret"


def make_token(claims: Dict[str, Any], secret: str = SECRET) -> str:
    return jwt.encode({"exp": int(time.time()) + 600, **claims}, secret, algorithm="HS256")


def make_extractor() -> CookieSessionExtractor:
    return CookieSessionExtractor(
        cookie_name="session_token", jwt_secret=SECRET, verify_audience=False
    )


async def test_extracts_user_and_tier(make_request: Callable[..., Request]) -> None:
    # Arrange
    token = make_token({"sub": "user-42", "tier": "tier_2"})
    request = make_request(cookies={"session_token": token})

    # Act
    result = await make_extractor()(request)

    # Assert
    assert result == SessionClaims(user_id="user-42", tier=Tier.TIER_2)


async def test_missing_tier_claim_is_free(make_request: Callable[..., Request]) -> None:
    token = make_token({"sub": "user-42"})

    result = await make_extractor()(make_request(cookies={"session_token": token}))

    assert result is not None
    assert result.tier is Tier.FREE


async def test_no_cookie(make_request: Callable[..., Request]) -> None:
    assert await make_extractor()(make_request()) is None


async def test_wrong_signature(make_request: Callable[..., Request]) -> None:
    token = make_token({"sub": "user-42", "tier": 2}, secret="another-secret")

    assert await make_extractor()(make_request(cookies={"session_token": token})) is None


async def test_expired_token(make_request: Callable[..., Request]) -> None:
    token = make_token({"sub": "user-42", "exp": int(time.time()) - 10})

    assert await make_extractor()(make_request(cookies={"session_token": token})) is None


async def test_token_without_subject(make_request: Callable[..., Request]) -> None:
    token = make_token({"tier": "tier_1"})

    assert await make_extractor()(make_request(cookies={"session_token": token})) is None


async def test_audience_from_forwarded_headers(make_request: Callable[..., Request]) -> None:
    extractor = CookieSessionExtractor(cookie_name="session_token", jwt_secret=SECRET)
    token = make_token({"sub": "user-42", "tier": "TIER_1", "aud": "https://example.com"})
    request = make_request(
        headers={"x-forwarded-host": "example.com", "x-forwarded-proto": "https"},
        cookies={"session_token": token},
    )

    result = await extractor(request)

    assert result == SessionClaims(user_id="user-42", tier=Tier.TIER_1)
