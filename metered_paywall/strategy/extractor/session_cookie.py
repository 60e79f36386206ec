"""Cookie-based session extractor reading the user id and membership tier from a JWT."""

import logging
from dataclasses import dataclass
from typing import Optional

from starlette.requests import Request

from metered_paywall.models.access import Tier
from metered_paywall.strategy.extractor.base import TokenExtractorStrategy
from metered_paywall.utils.jwt_utils import (
    audience_from_forwarded_headers,
    get_tier,
    validate_jwt,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionClaims:
    user_id: str
    tier: Tier


class CookieSessionExtractor(TokenExtractorStrategy[SessionClaims]):
    """
    A strategy to extract the authenticated session from a JWT stored in a cookie.

    This extractor:
    1. Retrieves the cookie value from the request
    2. Validates the JWT token
    3. Returns the user ID from the `sub` claim and the membership tier claim
    """

    def __init__(
        self,
        cookie_name: str,
        jwt_secret: str,
        jwt_algorithms: Optional[list[str]] = None,
        verify_audience: bool = True,
        tier_claim: str = "tier",
    ):
        """
        Initialize the cookie session extractor.

        Args:
            cookie_name: The name of the cookie containing the JWT token
            jwt_secret: The secret key used to validate the JWT token
            jwt_algorithms: List of allowed algorithms for decoding, defaults to ['HS256']
            verify_audience: Whether to verify the JWT audience claim
            tier_claim: The claim holding the membership tier
        """
        self.cookie_name = cookie_name
        self.jwt_secret = jwt_secret
        self.jwt_algorithms = jwt_algorithms
        self.verify_audience = verify_audience
        self.tier_claim = tier_claim

    async def __call__(self, request: Request) -> Optional[SessionClaims]:
        """
        Extract the session from the JWT token in the cookie.

        Args:
            request: The incoming HTTP request

        Returns:
            The session claims if a valid token with a `sub` claim is present,
            None otherwise
        """
        cookie_value = request.cookies.get(self.cookie_name)
        if not cookie_value:
            logger.debug("Cookie '%s' not found in request", self.cookie_name)
            return None

        token_content = validate_jwt(
            token=cookie_value,
            secret=self.jwt_secret,
            audience=audience_from_forwarded_headers(request.headers),
            algorithms=self.jwt_algorithms,
            verify_audience=self.verify_audience,
        )
        if not token_content:
            logger.warning(
                "Failed to validate JWT token from cookie '%s'", self.cookie_name
            )
            return None

        user_id = token_content.get("sub")
        if not user_id:
            logger.warning("User ID ('sub' claim) not found in validated token")
            return None

        tier = get_tier(token_content, key=self.tier_claim)
        logger.debug(
            "Extracted session for user %s with tier %s from cookie '%s'",
            user_id,
            tier.name,
            self.cookie_name,
        )
        return SessionClaims(user_id=str(user_id), tier=tier)

    def __str__(self) -> str:
        return (
            f"CookieSessionExtractor(cookie_name='{self.cookie_name}', "
            f"verify_audience={self.verify_audience}, tier_claim='{self.tier_claim}')"
        )
