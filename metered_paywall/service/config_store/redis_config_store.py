"""Redis-backed store for the paywall config document."""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import redis.asyncio as redis

from metered_paywall.errors import ConfigLoadError
from metered_paywall.service.config_store.base import ConfigStore

logger = logging.getLogger(__name__)


class RedisConfigStore(ConfigStore):
    """
    Stores the config as one JSON document under a single key.

    Writes replace the whole document with one SET, so a reader never sees a
    partially updated config.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        key: str = "paywall:config",
        timeout_seconds: float = 1.0,
    ):
        """
        Args:
            redis_client: Async Redis client instance
            key: Key holding the JSON document
            timeout_seconds: Upper bound for a single store call
        """
        self.redis_client: redis.Redis = redis_client
        self.key = key
        self.timeout_seconds = timeout_seconds

    async def load(self) -> Optional[Dict[str, Any]]:
        try:
            raw = await asyncio.wait_for(
                self.redis_client.get(self.key), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError as e:
            raise ConfigLoadError(f"Reading {self.key} timed out") from e
        except redis.RedisError as e:
            raise ConfigLoadError(f"Reading {self.key} failed: {e}") from e

        if raw is None:
            return None

        try:
            document = json.loads(raw)
        except ValueError as e:
            raise ConfigLoadError(f"Stored config under {self.key} is not JSON: {e}") from e
        if not isinstance(document, dict):
            raise ConfigLoadError(f"Stored config under {self.key} is not an object")
        return document

    async def save(self, document: Dict[str, Any]) -> None:
        try:
            await asyncio.wait_for(
                self.redis_client.set(self.key, json.dumps(document)),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise ConfigLoadError(f"Writing {self.key} timed out") from e
        except redis.RedisError as e:
            raise ConfigLoadError(f"Writing {self.key} failed: {e}") from e
        logger.info("Stored paywall config under %s", self.key)

    def __str__(self) -> str:
        return f"RedisConfigStore(key='{self.key}')"
