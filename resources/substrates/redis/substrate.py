"""Transport-agnostic substrate contract for Redis-backed operations."""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel, ConfigDict


class RedisHealthStatus(BaseModel):
    """Redis substrate readiness payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ready: bool
    detail: str


class RedisSubstrate(Protocol):
    """Protocol for namespaced Redis key/value operations."""

    def set_value(self, *, key: str, value: str, ttl_seconds: int | None) -> None:
        """Set one serialized value with optional TTL in seconds."""

    def get_value(self, *, key: str) -> str | None:
        """Get one serialized value by key or ``None`` when missing."""

    def delete_value(self, *, key: str) -> bool:
        """Delete one key and return whether a value was removed."""

    def delete_prefix(self, *, prefix: str) -> int:
        """Delete every key starting with ``prefix`` and return the count."""

    def ping(self) -> bool:
        """Return substrate liveness from Redis ``PING``."""

    def health(self) -> RedisHealthStatus:
        """Probe Redis substrate readiness and detail."""
