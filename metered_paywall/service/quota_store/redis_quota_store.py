"""Redis-based quota store using atomic Lua scripts."""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Optional

import redis.asyncio as redis

from metered_paywall.errors import QuotaStoreUnavailable
from metered_paywall.models.quota import QuotaRecord
from metered_paywall.service.quota_store.base import QuotaStore, ResetPeriodProvider

logger = logging.getLogger(__name__)


def _text(value: Any) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RedisQuotaStore(QuotaStore):
    """
    Quota store backed by Redis.

    Each visitor has three keys: a hash of viewed content ids (value is the
    position at which the id was recorded), the window start timestamp and a
    blocked counter. Every operation is a single Lua script, so the
    read-modify-write of a record happens atomically inside Redis and
    concurrent requests from any number of server instances cannot lose
    updates.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        reset_period: ResetPeriodProvider,
        key_prefix: str = "paywall",
        timeout_seconds: float = 0.25,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the quota store.

        Args:
            redis_client: Async Redis client instance
            reset_period: Returns the current window length
            key_prefix: Prefix for all Redis keys
            timeout_seconds: Upper bound for a single store call
            clock: Returns the current time (UTC)
        """
        super().__init__(reset_period)
        self.redis_client: redis.Redis = redis_client
        self.key_prefix = key_prefix
        self.timeout_seconds = timeout_seconds
        self.clock = clock
        self._lua_scripts: Dict[str, str] = {}

    def _load_lua_script(self, name: str) -> str:
        """Load a Lua script from the package resources."""
        if name not in self._lua_scripts:
            script_path = Path(__file__).parent / "resources" / f"{name}.lua"
            with open(script_path, "r") as f:
                self._lua_scripts[name] = f.read()
        return self._lua_scripts[name]

    def _keys(self, visitor_id: str) -> Dict[str, str]:
        base = f"{self.key_prefix}:visitor:{visitor_id}"
        return {
            "views": f"{base}:views",
            "window_start": f"{base}:window_start",
            "blocked": f"{base}:blocked",
        }

    def _timing_args(self) -> List[str]:
        now_ms = int(self.clock().timestamp() * 1000)
        window_ms = int(self.reset_period().total_seconds() * 1000)
        return [str(now_ms), str(window_ms)]

    async def _run_script(self, name: str, keys: List[str], args: List[str]) -> Any:
        """
        Execute a script with a bounded wait.

        Raises:
            QuotaStoreUnavailable: on any Redis error or timeout
        """
        script_content = self._load_lua_script(name)
        try:
            return await asyncio.wait_for(
                self.redis_client.eval(script_content, len(keys), *keys, *args),  # type: ignore
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise QuotaStoreUnavailable(
                f"Redis script {name} timed out after {self.timeout_seconds}s"
            ) from e
        except redis.RedisError as e:
            raise QuotaStoreUnavailable(f"Redis script {name} failed: {e}") from e

    def _parse_record(self, visitor_id: str, result: List[Any]) -> Optional[QuotaRecord]:
        if not result:
            return None
        started_ms, blocked, *flat_views = result
        views = {
            _text(flat_views[i]): int(flat_views[i + 1])
            for i in range(0, len(flat_views) - 1, 2)
        }
        return QuotaRecord(
            visitor_id=visitor_id,
            viewed_content_ids=MappingProxyType(views),
            window_started_at=datetime.fromtimestamp(int(started_ms) / 1000, tz=timezone.utc),
            blocked_count=int(blocked),
        )

    async def _read(self, visitor_id: str) -> Optional[QuotaRecord]:
        keys = self._keys(visitor_id)
        result = await self._run_script(
            "read_record",
            [keys["views"], keys["window_start"], keys["blocked"]],
            self._timing_args(),
        )
        return self._parse_record(visitor_id, result)

    async def has_viewed(self, visitor_id: str, content_id: str) -> bool:
        try:
            record = await self._read(visitor_id)
        except QuotaStoreUnavailable as e:
            logger.error("Quota lookup failed for visitor %s: %s", visitor_id, str(e))
            # Fail open: treat as a first view, the write path fails open too
            return False
        return record is not None and record.has_viewed(content_id)

    async def record_view(self, visitor_id: str, content_id: str) -> QuotaRecord:
        keys = self._keys(visitor_id)
        try:
            result = await self._run_script(
                "record_view",
                [keys["views"], keys["window_start"], keys["blocked"]],
                [content_id, *self._timing_args()],
            )
        except QuotaStoreUnavailable as e:
            logger.error(
                "Recording view failed for visitor %s, content %s: %s",
                visitor_id,
                content_id,
                str(e),
            )
            # Fail open: allow access if Redis fails
            return QuotaRecord.fail_open(visitor_id, content_id)

        record = self._parse_record(visitor_id, result)
        if record is None or not record.has_viewed(content_id):
            logger.error(
                "Unexpected record_view reply for visitor %s: %s", visitor_id, result
            )
            return QuotaRecord.fail_open(visitor_id, content_id)
        return record

    async def current_count(self, visitor_id: str) -> int:
        try:
            record = await self._read(visitor_id)
        except QuotaStoreUnavailable as e:
            logger.error("Quota count failed for visitor %s: %s", visitor_id, str(e))
            # Fail open: report an empty window
            return 0
        return record.count if record else 0

    async def get_record(self, visitor_id: str) -> Optional[QuotaRecord]:
        try:
            return await self._read(visitor_id)
        except QuotaStoreUnavailable as e:
            logger.error("Quota read failed for visitor %s: %s", visitor_id, str(e))
            return None

    async def record_blocked(self, visitor_id: str) -> None:
        keys = self._keys(visitor_id)
        try:
            await self._run_script(
                "record_blocked",
                [keys["window_start"], keys["blocked"]],
                self._timing_args(),
            )
        except QuotaStoreUnavailable as e:
            logger.warning("Blocked counter not updated for visitor %s: %s", visitor_id, str(e))

    def __str__(self) -> str:
        return (
            f"RedisQuotaStore(key_prefix='{self.key_prefix}', "
            f"timeout_seconds={self.timeout_seconds})"
        )
