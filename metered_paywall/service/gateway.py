"""Paywall gateway: the single entry point invoked once per content view."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Set, Tuple

from starlette.requests import Request

from metered_paywall.errors import TelemetryDeliveryError
from metered_paywall.models.access import AccessDecision, ContentDescriptor, Outcome, Reason
from metered_paywall.models.paywall_config import PaywallConfig
from metered_paywall.models.visitor import ANONYMOUS, Visitor, VisitorView
from metered_paywall.service.paywall_config import PaywallConfigProvider
from metered_paywall.service.quota_store.base import QuotaStore
from metered_paywall.service.telemetry import TelemetrySink
from metered_paywall.service.visitor_identity import VisitorIdentityResolver
from metered_paywall.strategy.access_policy import quota_decision, ungated_decision

logger = logging.getLogger(__name__)

FAIL_OPEN_DECISION = AccessDecision(Outcome.ALLOWED, Reason.WITHIN_QUOTA)


class PaywallGateway:
    """
    Decide whether a visitor sees a piece of content or the paywall.

    The quota store is only consulted for metered views: free content that is
    not bypassed, seen by a visitor without a paid tier while the paywall is
    enabled. Paying members never use up a free view.

    Every infrastructure failure degrades to ALLOWED. Each evaluation emits one
    analytics event in the background; its delivery never affects the decision.
    """

    def __init__(
        self,
        identity: VisitorIdentityResolver,
        config_provider: PaywallConfigProvider,
        quota_store: QuotaStore,
        telemetry: TelemetrySink,
    ):
        self.identity = identity
        self.config_provider = config_provider
        self.quota_store = quota_store
        self.telemetry = telemetry
        self._pending_events: Set[asyncio.Task] = set()

    async def evaluate(self, request: Request, content: ContentDescriptor) -> AccessDecision:
        """
        Evaluate a content view for the visitor behind the request.

        Args:
            request: The incoming HTTP request
            content: The content being viewed

        Returns:
            The access decision
        """
        visitor = await self.identity.resolve(request)
        return await self.evaluate_visitor(visitor, content)

    async def evaluate_visitor(
        self, visitor: Visitor, content: ContentDescriptor
    ) -> AccessDecision:
        """Evaluate a content view for an already resolved visitor."""
        config = self.config_provider.current()
        repeat = False

        decision = ungated_decision(content, visitor.tier, config)
        if decision is None:
            try:
                decision, repeat = await self._metered_decision(visitor, content, config)
            except Exception as e:
                logger.error(
                    "Metered evaluation failed for visitor %s, content %s: %s",
                    visitor.visitor_id,
                    content.content_id,
                    str(e),
                )
                # Fail open: never block a reader because of our own failure
                decision = FAIL_OPEN_DECISION

        logger.debug(
            "Paywall decision for visitor %s, content %s: %s (%s)",
            visitor.visitor_id,
            content.content_id,
            decision.outcome.value,
            decision.reason.value,
        )
        self._emit(visitor, content, decision, repeat)
        return decision

    async def _metered_decision(
        self, visitor: Visitor, content: ContentDescriptor, config: PaywallConfig
    ) -> Tuple[AccessDecision, bool]:
        """
        Meter a free-content view against the visitor's quota.

        Returns:
            The decision and whether the view was a re-read within the window
        """
        if visitor.ephemeral:
            # No quota memory for visitors that cannot keep a token
            return quota_decision(0, config), False

        visitor_id, content_id = visitor.visitor_id, content.content_id

        existing = await self.quota_store.get_record(visitor_id)
        position = existing.position_of(content_id) if existing else None
        if position is not None:
            # Re-read: reproduce the decision made when it was first recorded
            decision = quota_decision(position - 1, config)
            await self._count_blocked(visitor_id, decision)
            return decision, True

        record = await self.quota_store.record_view(visitor_id, content_id)
        position = record.position_of(content_id)
        if record.degraded or position is None:
            return FAIL_OPEN_DECISION, False

        decision = quota_decision(position - 1, config)
        await self._count_blocked(visitor_id, decision)
        return decision, False

    async def _count_blocked(self, visitor_id: str, decision: AccessDecision) -> None:
        if decision.allowed:
            return
        try:
            await self.quota_store.record_blocked(visitor_id)
        except Exception as e:
            logger.warning("Could not count blocked view for visitor %s: %s", visitor_id, str(e))

    def _emit(
        self,
        visitor: Visitor,
        content: ContentDescriptor,
        decision: AccessDecision,
        repeat: bool,
    ) -> None:
        event = VisitorView(
            content_id=content.content_id,
            visitor_id=visitor.visitor_id if visitor.authenticated else ANONYMOUS,
            blocked=not decision.allowed,
            reason=decision.reason,
            occurred_at=datetime.now(timezone.utc),
            repeat=repeat,
            title=content.title,
            url=content.url,
        )
        task = asyncio.create_task(self._deliver(event))
        self._pending_events.add(task)
        task.add_done_callback(self._pending_events.discard)

    async def _deliver(self, event: VisitorView) -> None:
        try:
            await self.telemetry.send(event)
        except TelemetryDeliveryError as e:
            logger.warning("Dropped paywall analytics event: %s", str(e))
        except Exception as e:
            logger.error("Analytics sink %s failed: %s", self.telemetry, str(e))

    async def flush_events(self) -> None:
        """Wait until all scheduled analytics events have been handled."""
        if self._pending_events:
            await asyncio.gather(*self._pending_events, return_exceptions=True)

    def __str__(self) -> str:
        return (
            f"PaywallGateway(quota_store={self.quota_store}, telemetry={self.telemetry})"
        )
