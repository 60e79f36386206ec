from starlette.requests import Request

from metered_paywall.strategy.extractor.base import (
    TokenExtractorStrategy,
)


class StaticSecretExtractor(TokenExtractorStrategy[str]):
    """
    Provide the configured admin token as the value a request must present.

    The value does not depend on the request.
    """

    def __init__(self, secret: str):
        """
        Args:
            secret: The admin token configured for this deployment.
        """
        self.secret = secret

    async def __call__(self, request: Request) -> str:
        return self.secret

    def __str__(self) -> str:
        return "StaticSecretExtractor(secret=[REDACTED])"
