from typing import Literal

import redis.asyncio as redis
from dependency_injector import containers, providers

from metered_paywall.service.config_store.memory_config_store import InMemoryConfigStore
from metered_paywall.service.config_store.redis_config_store import RedisConfigStore
from metered_paywall.service.gateway import PaywallGateway
from metered_paywall.service.paywall_config import PaywallConfigProvider
from metered_paywall.service.quota_store.memory_quota_store import InMemoryQuotaStore
from metered_paywall.service.quota_store.redis_quota_store import RedisQuotaStore
from metered_paywall.service.telemetry import HttpTelemetrySink, LoggingTelemetrySink
from metered_paywall.service.visitor_identity import VisitorIdentityResolver
from metered_paywall.strategy.extractor.anonymous_token import AnonymousTokenExtractor
from metered_paywall.strategy.extractor.base import NullExtractorStrategy
from metered_paywall.strategy.extractor.bearer_token import BearerTokenExtractor
from metered_paywall.strategy.extractor.content_headers import ContentHeadersExtractor
from metered_paywall.strategy.extractor.session_cookie import CookieSessionExtractor
from metered_paywall.strategy.extractor.static_secret import StaticSecretExtractor
from metered_paywall.strategy.matcher.base import NullMatcherStrategy
from metered_paywall.strategy.matcher.equality import EqualityMatcher


def _as_bool(value: object) -> bool:
    return value.lower() == "true" if isinstance(value, str) else bool(value)


class AppConfiguration(providers.Configuration):
    def storage_backend(self) -> Literal["redis", "memory"]:
        """Use Redis for quota and config storage when a URL is configured."""
        return "redis" if self.redis.url() else "memory"

    def telemetry_backend(self) -> Literal["http", "log"]:
        """Post analytics events when a collector URL is configured."""
        return "http" if self.analytics.url() else "log"

    def is_session_enabled(self) -> Literal["true", "false"]:
        """Authenticated sessions are recognised only with a JWT secret."""
        return "true" if self.session.jwt_secret() else "false"

    def is_admin_enabled(self) -> Literal["true", "false"]:
        """Config updates are accepted only with an admin token."""
        return "true" if self.admin_token() else "false"


class Container(containers.DeclarativeContainer):
    """Dependency Injection Container for the metered paywall."""

    config = AppConfiguration()

    null_extractor: providers.Singleton = providers.Singleton(NullExtractorStrategy)
    null_matcher: providers.Singleton = providers.Singleton(NullMatcherStrategy)

    redis_client: providers.Singleton = providers.Singleton(
        redis.from_url,
        config.redis.url,
    )

    config_store: providers.Selector = providers.Selector(
        config.storage_backend,
        redis=providers.Singleton(
            RedisConfigStore,
            redis_client=redis_client,
            key=config.redis.config_key,
            timeout_seconds=config.redis.timeout_seconds.as_float(),
        ),
        memory=providers.Singleton(InMemoryConfigStore),
    )

    paywall_config: providers.Singleton = providers.Singleton(
        PaywallConfigProvider,
        store=config_store,
        refresh_interval_seconds=config.config_refresh_seconds.as_float(),
    )

    quota_store: providers.Selector = providers.Selector(
        config.storage_backend,
        redis=providers.Singleton(
            RedisQuotaStore,
            redis_client=redis_client,
            reset_period=paywall_config.provided.reset_period,
            key_prefix=config.redis.key_prefix,
            timeout_seconds=config.quota_store.timeout_seconds.as_float(),
        ),
        memory=providers.Singleton(
            InMemoryQuotaStore,
            reset_period=paywall_config.provided.reset_period,
        ),
    )

    telemetry: providers.Selector = providers.Selector(
        config.telemetry_backend,
        http=providers.Singleton(
            HttpTelemetrySink,
            url=config.analytics.url,
            timeout=config.analytics.timeout_seconds.as_float(),
        ),
        log=providers.Singleton(LoggingTelemetrySink),
    )

    session_extractor: providers.Selector = providers.Selector(
        config.is_session_enabled,
        true=providers.Singleton(
            CookieSessionExtractor,
            cookie_name=config.session.cookie_name,
            jwt_secret=config.session.jwt_secret,
            verify_audience=config.session.verify_audience.as_(_as_bool),
            tier_claim=config.session.tier_claim,
        ),
        false=null_extractor,
    )
    anonymous_token_extractor: providers.Singleton = providers.Singleton(
        AnonymousTokenExtractor,
        cookie_name=config.anonymous.cookie_name,
    )
    content_extractor: providers.Singleton = providers.Singleton(ContentHeadersExtractor)
    bearer_token_extractor: providers.Singleton = providers.Singleton(BearerTokenExtractor)
    admin_token_extractor: providers.Selector = providers.Selector(
        config.is_admin_enabled,
        true=providers.Singleton(
            StaticSecretExtractor,
            secret=config.admin_token,
        ),
        false=null_extractor,
    )
    admin_matcher: providers.Selector = providers.Selector(
        config.is_admin_enabled,
        true=providers.Singleton(EqualityMatcher),
        false=null_matcher,
    )

    extractors: providers.Aggregate = providers.Aggregate(
        {
            "session": session_extractor,
            "anonymous-token": anonymous_token_extractor,
            "content-headers": content_extractor,
            "bearer-token": bearer_token_extractor,
            "admin-token": admin_token_extractor,
        }
    )

    matchers: providers.Aggregate = providers.Aggregate(
        {
            "admin": admin_matcher,
        }
    )

    identity: providers.Singleton = providers.Singleton(
        VisitorIdentityResolver,
        session_extractor=session_extractor,
        anonymous_token_extractor=anonymous_token_extractor,
    )

    gateway: providers.Singleton = providers.Singleton(
        PaywallGateway,
        identity=identity,
        config_provider=paywall_config,
        quota_store=quota_store,
        telemetry=telemetry,
    )
