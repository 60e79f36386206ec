"""
Tests for visitor resolution.
"""

import time
from typing import Callable, Optional

import jwt
from starlette.requests import Request

from metered_paywall.models.access import Tier
from metered_paywall.service.visitor_identity import VisitorIdentityResolver
from metered_paywall.strategy.extractor.anonymous_token import (
    AnonymousTokenExtractor,
    is_anonymous_token,
)
from metered_paywall.strategy.extractor.session_cookie import (
    CookieSessionExtractor,
    SessionClaims,
)

SECRET = "identity-secret"
ANON_TOKEN = "0b8e7c52-3c1f-4f0e-a6a4-7d2c9b1e5f30"


class BrokenSessionExtractor:
    async def __call__(self, request: Request) -> Optional[SessionClaims]:
        raise RuntimeError("session backend exploded")


def make_resolver() -> VisitorIdentityResolver:
    return VisitorIdentityResolver(
        session_extractor=CookieSessionExtractor(
            cookie_name="session_token", jwt_secret=SECRET, verify_audience=False
        ),
        anonymous_token_extractor=AnonymousTokenExtractor(cookie_name="paywall_session"),
    )


async def test_authenticated_visitor(make_request: Callable[..., Request]) -> None:
    token = jwt.encode(
        {"sub": "user-42", "tier": "tier_2", "exp": int(time.time()) + 60}, SECRET, algorithm="HS256"
    )
    request = make_request(cookies={"session_token": token, "paywall_session": ANON_TOKEN})

    visitor = await make_resolver().resolve(request)

    assert visitor.visitor_id == "user-42"
    assert visitor.authenticated
    assert visitor.tier is Tier.TIER_2
    assert visitor.issued_token is None


async def test_returning_anonymous_visitor(make_request: Callable[..., Request]) -> None:
    visitor = await make_resolver().resolve(make_request(cookies={"paywall_session": ANON_TOKEN}))

    assert visitor.visitor_id == ANON_TOKEN
    assert not visitor.authenticated
    assert visitor.tier is Tier.FREE
    assert visitor.issued_token is None
    assert not visitor.ephemeral


async def test_new_anonymous_visitor_gets_token(make_request: Callable[..., Request]) -> None:
    visitor = await make_resolver().resolve(make_request())

    assert visitor.issued_token == visitor.visitor_id
    assert is_anonymous_token(visitor.visitor_id)
    assert not visitor.ephemeral


async def test_visitor_without_client_storage_is_ephemeral(
    make_request: Callable[..., Request],
) -> None:
    request = make_request(headers={"x-client-storage": "unavailable"})

    first = await make_resolver().resolve(request)
    second = await make_resolver().resolve(request)

    assert first.ephemeral
    assert first.issued_token is None
    assert first.visitor_id != second.visitor_id


async def test_session_errors_degrade_to_anonymous(make_request: Callable[..., Request]) -> None:
    resolver = VisitorIdentityResolver(
        session_extractor=BrokenSessionExtractor(),
        anonymous_token_extractor=AnonymousTokenExtractor(),
    )

    visitor = await resolver.resolve(make_request(cookies={"paywall_session": ANON_TOKEN}))

    assert visitor.visitor_id == ANON_TOKEN
    assert not visitor.authenticated
