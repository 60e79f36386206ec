import logging
import uuid
from typing import Optional

from starlette.requests import Request

from metered_paywall.strategy.extractor.base import TokenExtractorStrategy

logger = logging.getLogger(__name__)


def new_anonymous_token() -> str:
    """Issue a random anonymous visitor token (UUID4, 122 random bits)."""
    return str(uuid.uuid4())


def is_anonymous_token(value: str) -> bool:
    try:
        parsed = uuid.UUID(value)
    except ValueError:
        return False
    return parsed.version == 4 and str(parsed) == value.lower()


class AnonymousTokenExtractor(TokenExtractorStrategy[str]):
    """
    Extract the anonymous visitor token previously issued in a cookie.

    Tokens that are not well-formed UUID4 values are ignored, so a tampered
    cookie gets a fresh token instead of an arbitrary quota key.
    """

    def __init__(self, cookie_name: str = "paywall_session"):
        self.cookie_name = cookie_name

    async def __call__(self, request: Request) -> Optional[str]:
        token = request.cookies.get(self.cookie_name)
        if not token:
            return None
        if not is_anonymous_token(token):
            logger.warning("Ignoring malformed anonymous token in cookie '%s'", self.cookie_name)
            return None
        return token.lower()

    def __str__(self) -> str:
        return f"AnonymousTokenExtractor(cookie_name='{self.cookie_name}')"
