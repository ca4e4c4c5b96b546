import json
import logging
import time
from typing import Any, Callable, Optional

from cachetools import TLRUCache
from fastapi import Request
from redis.asyncio import Redis, RedisError

from app.core.config import Settings, get_settings
from app.core.errors import CacheError

logger = logging.getLogger(__name__)


class RedisBackend:
    """Shared cache in Redis. Entries expire server-side via SET ... EX."""

    def __init__(self, redis: Redis):
        self.redis = redis

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisBackend":
        return cls(
            Redis.from_url(
                settings.redis_dsn,
                encoding="utf-8",
                decode_responses=True,
                max_connections=settings.redis_pool_size,
                socket_connect_timeout=5,
                socket_keepalive=True,
                health_check_interval=30,
            )
        )

    async def get(self, key: str) -> Optional[str]:
        return await self.redis.get(key)

    async def set(self, key: str, data: str, ttl: int):
        await self.redis.set(key, data, ex=ttl)

    async def delete(self, key: str):
        await self.redis.delete(key)

    async def ping(self):
        await self.redis.ping()

    async def close(self):
        await self.redis.aclose()


def _entry_expiry(key, value, now):
    _, ttl = value
    return now + ttl


class MemoryBackend:
    """
    Process-local cache with per-entry expiry.

    Only coherent within a single worker; meant for development and tests.
    """

    def __init__(self, maxsize: int = 1024, timer: Callable[[], float] = time.monotonic):
        self._data = TLRUCache(maxsize=maxsize, ttu=_entry_expiry, timer=timer)

    async def get(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        return entry[0] if entry is not None else None

    async def set(self, key: str, data: str, ttl: int):
        self._data[key] = (data, ttl)

    async def delete(self, key: str):
        self._data.pop(key, None)

    async def ping(self):
        return None

    async def close(self):
        self._data.clear()


class CacheLayer:
    """
    Key/value cache with expiry in front of the task store.

    Values are stored as JSON so every reader, in any worker, gets the
    same snapshot. Backend failures are either degraded to misses
    (``cache_fail_open``) or raised as CacheError. Deletes never raise.
    """

    def __init__(self, settings: Settings | None = None, backend=None):
        self._settings = settings
        self._backend = backend
        self._initialized = False

        # Stats tracking
        self.stats = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "deletes": 0,
            "errors": 0,
        }

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def available(self) -> bool:
        return self._initialized

    async def init_cache(self):
        """
        Create the backend from settings and verify the connection.

        A failed ping leaves the layer uninitialized, so the next call
        tries to connect again.
        """
        if self._initialized:
            return

        if self._backend is None:
            if self.settings.cache_backend == "memory":
                self._backend = MemoryBackend()
            else:
                self._backend = RedisBackend.from_settings(self.settings)

        try:
            await self._backend.ping()
        except RedisError as e:
            logger.error(f"Redis initialization failed: {e}")
            return

        self._initialized = True
        logger.info(f"Cache layer initialized ({type(self._backend).__name__})")

    def _key(self, key: str) -> str:
        """Build namespaced cache key."""
        return f"{self.settings.cache_namespace}{key}"

    def _serialize(self, value: Any) -> str:
        """Serialize value for storage."""
        try:
            return json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"Serialization failed: {e}")
            raise

    def _deserialize(self, raw: str) -> Any:
        """Deserialize value from storage."""
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable cache entry")
            return None

    def _backend_failed(self, op: str, key: str, error: Exception):
        self.stats["errors"] += 1
        logger.error(f"Cache {op} error for {key}: {error}")
        if not self.settings.cache_fail_open:
            raise CacheError(f"cache {op} failed: {error}") from error

    async def get(self, key: str) -> Any:
        """
        Return the decoded value for key, or None on a miss.

        An expired entry is a miss. With fail-open, a backend error is
        also reported as a miss.
        """
        await self.init_cache()

        if not self._initialized:
            if not self.settings.cache_fail_open:
                raise CacheError("cache unavailable")
            self.stats["misses"] += 1
            return None

        try:
            raw = await self._backend.get(self._key(key))
        except RedisError as e:
            self._backend_failed("GET", key, e)
            self.stats["misses"] += 1
            return None

        value = self._deserialize(raw) if raw is not None else None
        if value is None:
            self.stats["misses"] += 1
            logger.debug(f"Cache miss: {key}")
            return None

        self.stats["hits"] += 1
        logger.debug(f"Cache hit: {key}")
        return value

    async def set_with_expiry(self, key: str, value: Any, ttl_seconds: int):
        """
        Store value under key for ttl_seconds.

        Args:
            key: Cache key (namespaced automatically)
            value: JSON-serializable value
            ttl_seconds: Expiry in seconds, must be positive
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        await self.init_cache()

        if not self._initialized:
            if not self.settings.cache_fail_open:
                raise CacheError("cache unavailable")
            return

        data = self._serialize(value)
        try:
            await self._backend.set(self._key(key), data, ttl_seconds)
        except RedisError as e:
            self._backend_failed("SET", key, e)
            return

        self.stats["sets"] += 1
        logger.debug(f"Cached {key} for {ttl_seconds}s")

    async def delete(self, key: str):
        """
        Remove key. Idempotent.

        Failures are logged and counted but never raised: the entry will
        still expire on its own.
        """
        await self.init_cache()

        if not self._initialized:
            logger.warning(f"Cache unavailable, could not invalidate {key}")
            return

        try:
            await self._backend.delete(self._key(key))
        except RedisError as e:
            self.stats["errors"] += 1
            logger.error(f"Cache DELETE error for {key}, entry may be stale until expiry: {e}")
            return

        self.stats["deletes"] += 1
        logger.debug(f"Invalidated {key}")

    async def ping(self) -> bool:
        """Backend liveness; reconnects first if the layer is degraded."""
        if not self._initialized:
            await self.init_cache()
            return self._initialized
        try:
            await self._backend.ping()
        except RedisError as e:
            logger.warning(f"Cache ping failed: {e}")
            return False
        return True

    async def close(self):
        """Graceful shutdown of cache connections."""
        if self._backend is not None:
            try:
                await self._backend.close()
                logger.info("Cache connection closed")
            except RedisError as e:
                logger.error(f"Error closing cache backend: {e}")
        self._backend = None
        self._initialized = False

    def get_stats(self) -> dict:
        """Get cache statistics."""
        lookups = self.stats["hits"] + self.stats["misses"]
        return {
            **self.stats,
            "backend": type(self._backend).__name__ if self._initialized else None,
            "hit_rate": self.stats["hits"] / lookups if lookups > 0 else 0,
        }


def get_cache(request: Request) -> CacheLayer:
    """FastAPI dependency: the process-wide cache created in the lifespan."""
    return request.app.state.cache
