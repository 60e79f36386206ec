"""Content descriptor extractor for forward-auth requests from a reverse proxy."""

import logging
from typing import Optional
from urllib.parse import unquote, urlparse

from starlette.requests import Request

from metered_paywall.models.access import ContentDescriptor, Tier
from metered_paywall.strategy.extractor.base import TokenExtractorStrategy

logger = logging.getLogger(__name__)


def extract_slug_from_x_original_uri(request: Request) -> Optional[str]:
    """
    Use the last path segment of the x-original-uri header as content id.

    "/articles/how-to-lead/?utm=x" gives "how-to-lead".
    """
    original_uri = request.headers.get("x-original-uri")
    if not original_uri:
        return None
    segments = [s for s in urlparse(original_uri).path.split("/") if s]
    return unquote(segments[-1]) if segments else None


class ContentHeadersExtractor(TokenExtractorStrategy[ContentDescriptor]):
    """
    Build a content descriptor from request headers.

    Headers:
        X-Content-Id: content id (falls back to the x-original-uri slug)
        X-Content-Categories: comma separated category slugs
        X-Content-Tier: tier requirement, FREE when absent

    Raises:
        ValueError: if X-Content-Tier names no known tier
    """

    async def __call__(self, request: Request) -> Optional[ContentDescriptor]:
        content_id = request.headers.get("x-content-id") or extract_slug_from_x_original_uri(
            request
        )
        if not content_id:
            logger.warning("No content id in forward-auth request for %s", request.url.path)
            return None

        categories = request.headers.get("x-content-categories", "")
        return ContentDescriptor(
            content_id=content_id,
            category_slugs=frozenset(c.strip() for c in categories.split(",") if c.strip()),
            tier_requirement=Tier.parse_requirement(
                request.headers.get("x-content-tier") or None
            ),
            url=request.headers.get("x-original-uri"),
        )

    def __str__(self) -> str:
        return "ContentHeadersExtractor()"
