"""Hot-reloadable paywall configuration."""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from metered_paywall.errors import ConfigLoadError, InvalidConfigError
from metered_paywall.models.paywall_config import PaywallConfig
from metered_paywall.service.config_store.base import ConfigStore

logger = logging.getLogger(__name__)


class PaywallConfigProvider:
    """
    Serves the current paywall config snapshot and refreshes it out of band.

    Readers get an immutable snapshot. A refresh builds a complete new
    snapshot and replaces the single reference to it, so no reader ever sees
    a partially applied update. Until the first successful load the documented
    defaults are served.
    """

    def __init__(self, store: ConfigStore, refresh_interval_seconds: float = 60.0):
        """
        Args:
            store: External store holding the admin-edited config document
            refresh_interval_seconds: Poll interval of the background refresh
        """
        self.store = store
        self.refresh_interval_seconds = refresh_interval_seconds
        self._snapshot = PaywallConfig()

    def current(self) -> PaywallConfig:
        """Return the last successfully loaded snapshot."""
        return self._snapshot

    def reset_period(self) -> timedelta:
        return self._snapshot.reset_period

    async def _load(self) -> PaywallConfig:
        document = await self.store.load()
        if document is None:
            config = PaywallConfig()
            logger.info("No paywall config stored yet, storing defaults")
            await self.store.save(config.to_dict())
            return config
        return PaywallConfig.from_dict(document)

    async def refresh(self) -> Optional[ConfigLoadError]:
        """
        Reload the config from the store.

        Returns:
            None on success, otherwise the error that left the previous
            snapshot in place
        """
        try:
            config = await self._load()
        except ConfigLoadError as e:
            logger.error("Paywall config refresh failed, keeping previous snapshot: %s", str(e))
            return e

        if config != self._snapshot:
            logger.info(
                "Paywall config updated: enabled=%s, free_article_limit=%s, reset_period_days=%s",
                config.enabled,
                config.free_article_limit,
                config.reset_period_days,
            )
        self._snapshot = config
        return None

    async def load_or_create(self) -> PaywallConfig:
        """
        Read the stored config, storing the defaults on first use.

        Raises:
            ConfigLoadError: if the store cannot be read or holds an invalid document
        """
        return await self._load()

    async def update(self, changes: Dict[str, Any]) -> PaywallConfig:
        """
        Apply a partial update to the stored config and refresh.

        Args:
            changes: Field names and new values; other fields keep their values

        Raises:
            InvalidConfigError: if a field is unknown or a value is invalid
            ConfigLoadError: if the store cannot be read or written
        """
        unknown = set(changes) - PaywallConfig.field_names()
        if unknown:
            raise InvalidConfigError(f"Unknown paywall config fields: {', '.join(sorted(unknown))}")

        base = await self._load()
        updated = PaywallConfig.from_dict({**base.to_dict(), **changes})
        await self.store.save(updated.to_dict())
        logger.info("Paywall config changed: %s", ", ".join(sorted(changes)))

        await self.refresh()
        return updated

    async def run_periodic_refresh(self) -> None:
        """Refresh forever at the configured interval. Cancel to stop."""
        while True:
            await asyncio.sleep(self.refresh_interval_seconds)
            try:
                await self.refresh()
            except Exception as e:
                logger.error("Unexpected error refreshing paywall config: %s", str(e))

    def __str__(self) -> str:
        return (
            f"PaywallConfigProvider(store={self.store}, "
            f"refresh_interval_seconds={self.refresh_interval_seconds})"
        )
