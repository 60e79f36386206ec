import asyncio
import contextlib
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route
from starlette.status import (
    HTTP_200_OK,
    HTTP_400_BAD_REQUEST,
    HTTP_403_FORBIDDEN,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from metered_paywall.di import Container
from metered_paywall.errors import ConfigLoadError, InvalidConfigError
from metered_paywall.models.access import AccessDecision, ContentDescriptor
from metered_paywall.models.paywall_config import PaywallConfig
from metered_paywall.models.visitor import Visitor
from metered_paywall.service.gateway import PaywallGateway
from metered_paywall.service.paywall_config import PaywallConfigProvider
from metered_paywall.service.telemetry import HttpTelemetrySink

logger = logging.getLogger(__name__)


async def health(_request: Request) -> JSONResponse:
    """Health check endpoint.
    Args:
        _request: The incoming request (unused).
    Returns:
        A JSON response with status "ok".
    """
    return JSONResponse({"status": "ok"})


def create_app(container: Optional[Container] = None) -> Starlette:
    """
    Build the application.

    Args:
        container: A preconfigured container. When omitted, one is created at
            startup from the packaged config.yml and the environment.
    """

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):  # type: ignore
        """Initialize the application and its components."""

        uvicorn_logger = logging.getLogger("uvicorn")
        root_logger = logging.getLogger()
        for handler in uvicorn_logger.handlers:
            root_logger.addHandler(handler)

        if container is None:
            load_dotenv()
            app.state.container = Container()
            app.state.container.config.from_yaml(Path(__file__).parent / "config.yml")
        else:
            app.state.container = container

        log_level = str(app.state.container.config.log_level() or "INFO").upper()
        root_logger.setLevel(log_level)
        logger.info("Starting metered paywall server with log level %s...", log_level)

        for name, extractor_provider in app.state.container.extractors.providers.items():
            logger.info("Configured extractor: %s: %s", name, extractor_provider())
        for name, matcher_provider in app.state.container.matchers.providers.items():
            logger.info("Configured matcher: %s: %s", name, matcher_provider())
        logger.info("Configured quota store: %s", app.state.container.quota_store())
        logger.info("Configured telemetry sink: %s", app.state.container.telemetry())

        paywall_config: PaywallConfigProvider = app.state.container.paywall_config()
        await paywall_config.refresh()
        refresh_task = asyncio.create_task(paywall_config.run_periodic_refresh())

        yield

        logger.info("Shutting down metered paywall server...")
        refresh_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await refresh_task

        gateway: PaywallGateway = app.state.container.gateway()
        await gateway.flush_events()
        telemetry = app.state.container.telemetry()
        if isinstance(telemetry, HttpTelemetrySink):
            await telemetry.aclose()

    return Starlette(debug=False, routes=routes, lifespan=lifespan)


async def is_admin(request: Request) -> bool:
    """Check the request's bearer token against the configured admin token."""
    container: Container = request.app.state.container
    presented, required = await asyncio.gather(
        container.bearer_token_extractor()(request),
        container.admin_token_extractor()(request),
    )
    return container.admin_matcher()(presented, required)


async def get_config(request: Request) -> JSONResponse:
    """Return the stored paywall config, creating the defaults on first use."""
    container: Container = request.app.state.container
    paywall_config: PaywallConfigProvider = container.paywall_config()
    try:
        config = await paywall_config.load_or_create()
    except ConfigLoadError as e:
        logger.error("Serving cached paywall config, store read failed: %s", str(e))
        config = paywall_config.current()
    return JSONResponse(config.to_dict())


async def update_config(request: Request) -> JSONResponse:
    """Apply a partial update to the paywall config. Admin only."""
    if not await is_admin(request):
        logger.warning("Rejected paywall config update without a valid admin token")
        return JSONResponse({"error": "Forbidden"}, status_code=HTTP_403_FORBIDDEN)

    try:
        changes = await request.json()
    except ValueError:
        return JSONResponse({"error": "Body must be JSON"}, status_code=HTTP_400_BAD_REQUEST)
    if not isinstance(changes, dict):
        return JSONResponse(
            {"error": "Body must be a JSON object"}, status_code=HTTP_400_BAD_REQUEST
        )

    container: Container = request.app.state.container
    paywall_config: PaywallConfigProvider = container.paywall_config()
    try:
        config = await paywall_config.update(changes)
    except InvalidConfigError as e:
        return JSONResponse({"error": str(e)}, status_code=HTTP_400_BAD_REQUEST)
    except ConfigLoadError as e:
        logger.error("Paywall config update failed: %s", str(e))
        return JSONResponse(
            {"error": "Config store unavailable"}, status_code=HTTP_503_SERVICE_UNAVAILABLE
        )
    return JSONResponse(config.to_dict())


def decision_payload(decision: AccessDecision, config: PaywallConfig) -> Dict[str, Any]:
    payload = decision.to_dict()
    payload["free_article_limit"] = config.free_article_limit
    payload["show_paywall"] = not decision.allowed
    payload["paywall"] = (
        None
        if decision.allowed
        else {
            "title": config.popup_title,
            "message": config.popup_message,
            "cta_button_text": config.cta_button_text,
        }
    )
    return payload


def persist_anonymous_token(
    response: Response, visitor: Visitor, container: Container
) -> None:
    if not visitor.issued_token:
        return
    anonymous = container.config.anonymous
    response.set_cookie(
        anonymous.cookie_name(),
        visitor.issued_token,
        max_age=int(anonymous.cookie_max_age_seconds()),
        path="/",
        samesite="lax",
        secure=bool(anonymous.cookie_secure()),
    )


async def evaluate(request: Request) -> JSONResponse:
    """Evaluate a content view and tell the renderer whether to show the paywall."""
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse({"error": "Body must be JSON"}, status_code=HTTP_400_BAD_REQUEST)
    if not isinstance(body, dict):
        return JSONResponse(
            {"error": "Body must be a JSON object"}, status_code=HTTP_400_BAD_REQUEST
        )
    try:
        content = ContentDescriptor.from_dict(body)
    except ValueError as e:
        return JSONResponse({"error": str(e)}, status_code=HTTP_400_BAD_REQUEST)

    container: Container = request.app.state.container
    gateway: PaywallGateway = container.gateway()
    visitor = await container.identity().resolve(request)
    decision = await gateway.evaluate_visitor(visitor, content)

    response = JSONResponse(decision_payload(decision, container.paywall_config().current()))
    persist_anonymous_token(response, visitor, container)
    return response


async def auth_check(request: Request) -> Response:
    """Forward-auth check for reverse proxies."""
    if logger.level <= logging.DEBUG:
        logger.debug(
            "Paywall check for %s %s (%s)",
            request.method,
            request.url.path,
            request.headers,
        )

    container: Container = request.app.state.container
    try:
        content = await container.content_extractor()(request)
    except ValueError as e:
        # Unknown requirement: gated content must not fall back to metered access
        logger.warning("Denying %s: %s", request.url.path, str(e))
        return Response(
            status_code=HTTP_403_FORBIDDEN,
            headers={"X-Redirect-Url": container.config.subscribe_url() or "/subscribe"},
        )
    if content is None:
        # Fail open: nothing to meter
        return Response(status_code=HTTP_200_OK)

    visitor = await container.identity().resolve(request)
    decision = await container.gateway().evaluate_visitor(visitor, content)

    if decision.allowed:
        response = Response(status_code=HTTP_200_OK)
    else:
        logger.info(
            "Paywall denied %s for content %s (%s)",
            visitor.visitor_id,
            content.content_id,
            decision.reason.value,
        )
        response = Response(
            status_code=HTTP_403_FORBIDDEN,
            headers={"X-Redirect-Url": container.config.subscribe_url() or "/subscribe"},
        )
    persist_anonymous_token(response, visitor, container)
    return response


routes: List[Route] = [
    Route("/health", endpoint=health),
    Route("/paywall/config", endpoint=get_config, methods=["GET"]),
    Route("/paywall/config", endpoint=update_config, methods=["PUT"]),
    Route("/paywall/evaluate", endpoint=evaluate, methods=["POST"]),
    Route("/paywall/auth", endpoint=auth_check, methods=["GET"]),
]

app: Starlette = create_app()

if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port, access_log=False)
