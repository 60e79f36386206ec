"""Resolves a stable identifier for the visitor behind a request."""

import logging
from typing import Optional

from starlette.requests import Request

from metered_paywall.models.access import Tier
from metered_paywall.models.visitor import Visitor
from metered_paywall.strategy.extractor.anonymous_token import new_anonymous_token
from metered_paywall.strategy.extractor.base import TokenExtractorStrategy
from metered_paywall.strategy.extractor.session_cookie import SessionClaims

logger = logging.getLogger(__name__)

CLIENT_STORAGE_HEADER = "x-client-storage"


class VisitorIdentityResolver:
    """
    Resolve the visitor for a request.

    Authenticated sessions give the user id and membership tier. Anonymous
    visitors are identified by a token persisted client-side; when none is
    presented a new one is issued. If the client reports that it cannot store
    the token, the issued token is ephemeral and only lives for the request.

    Resolution never fails: any extraction problem degrades to the anonymous path.
    """

    def __init__(
        self,
        session_extractor: TokenExtractorStrategy[SessionClaims],
        anonymous_token_extractor: TokenExtractorStrategy[str],
    ):
        self.session_extractor = session_extractor
        self.anonymous_token_extractor = anonymous_token_extractor

    async def _session(self, request: Request) -> Optional[SessionClaims]:
        try:
            return await self.session_extractor(request)
        except Exception as e:
            logger.error("Session extraction failed, treating visitor as anonymous: %s", str(e))
            return None

    async def _anonymous_token(self, request: Request) -> Optional[str]:
        try:
            return await self.anonymous_token_extractor(request)
        except Exception as e:
            logger.error("Anonymous token extraction failed: %s", str(e))
            return None

    async def resolve(self, request: Request) -> Visitor:
        session = await self._session(request)
        if session is not None:
            return Visitor(visitor_id=session.user_id, authenticated=True, tier=session.tier)

        token = await self._anonymous_token(request)
        if token is not None:
            return Visitor(visitor_id=token, tier=Tier.FREE)

        if request.headers.get(CLIENT_STORAGE_HEADER, "").lower() == "unavailable":
            logger.debug("Client storage unavailable, using a per-request token")
            return Visitor(visitor_id=new_anonymous_token(), ephemeral=True)

        token = new_anonymous_token()
        logger.debug("Issued new anonymous token %s", token)
        return Visitor(visitor_id=token, issued_token=token)

    def __str__(self) -> str:
        return (
            f"VisitorIdentityResolver(session_extractor={self.session_extractor}, "
            f"anonymous_token_extractor={self.anonymous_token_extractor})"
        )
