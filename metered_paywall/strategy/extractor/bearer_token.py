from typing import Optional

from starlette.requests import Request

from metered_paywall.strategy.extractor.base import (
    TokenExtractorStrategy,
)


class BearerTokenExtractor(TokenExtractorStrategy[str]):
    """
    Extract the admin bearer token from the Authorization header.

    Returns None when the header is missing or does not use the
    'Bearer' scheme.
    """

    async def __call__(self, request: Request) -> Optional[str]:
        """Extract bearer token from the request's Authorization header.

        Args:
            request: The incoming HTTP request.

        Returns:
            The bearer token, or None if there is no valid bearer token.
        """
        auth_header = request.headers.get("Authorization")

        if not auth_header:
            return None

        parts = auth_header.split()

        if len(parts) != 2 or parts[0].lower() != "bearer":
            return None

        return parts[1]

    def __str__(self) -> str:
        return "BearerTokenExtractor()"
