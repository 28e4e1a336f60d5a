"""Redis client-backed substrate implementation."""

from __future__ import annotations

from redis.exceptions import RedisError

from resources.substrates.redis.client import create_redis_client
from resources.substrates.redis.config import RedisSettings
from resources.substrates.redis.substrate import RedisHealthStatus, RedisSubstrate

_SCAN_BATCH = 500


class RedisClientSubstrate(RedisSubstrate):
    """Concrete Redis substrate namespacing every key with ``key_prefix``."""

    def __init__(self, *, settings: RedisSettings) -> None:
        self._prefix = settings.key_prefix
        self._client = create_redis_client(settings)
        self._health_client = create_redis_client(
            settings,
            connect_timeout_seconds=settings.health_timeout_seconds,
            socket_timeout_seconds=settings.health_timeout_seconds,
        )

    def set_value(self, *, key: str, value: str, ttl_seconds: int | None) -> None:
        """Set one value with optional TTL in seconds."""
        if ttl_seconds is None:
            self._client.set(name=self._key(key), value=value)
            return
        self._client.set(name=self._key(key), value=value, ex=ttl_seconds)

    def get_value(self, *, key: str) -> str | None:
        """Read one value by key."""
        value = self._client.get(name=self._key(key))
        return None if value is None else str(value)

    def delete_value(self, *, key: str) -> bool:
        """Delete one key and return whether a value existed."""
        return bool(self._client.delete(self._key(key)))

    def delete_prefix(self, *, prefix: str) -> int:
        """Delete all keys under one namespaced prefix."""
        pattern = f"{self._key(prefix)}*"
        deleted = 0
        batch: list[str] = []
        for name in self._client.scan_iter(match=pattern, count=_SCAN_BATCH):
            batch.append(name)
            if len(batch) >= _SCAN_BATCH:
                deleted += int(self._client.delete(*batch))
                batch = []
        if batch:
            deleted += int(self._client.delete(*batch))
        return deleted

    def ping(self) -> bool:
        """Return Redis ping status."""
        return bool(self._health_client.ping())

    def health(self) -> RedisHealthStatus:
        """Return Redis substrate readiness and concise detail."""
        try:
            ready = self.ping()
        except RedisError as exc:
            return RedisHealthStatus(
                ready=False,
                detail=f"redis ping failed: {type(exc).__name__}",
            )
        return RedisHealthStatus(
            ready=ready,
            detail="ok" if ready else "redis ping returned false",
        )

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"
