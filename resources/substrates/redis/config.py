"""Pydantic settings for the Redis substrate component."""

from __future__ import annotations

import os
from urllib.parse import quote_plus

from pydantic import BaseModel, ConfigDict, Field, model_validator

from packages.asset_shared.config import AssetSettings, resolve_component_settings
from resources.substrates.redis.component import RESOURCE_COMPONENT_ID


class RedisSettings(BaseModel):
    """Redis connectivity for the shared hash cache and grant storage."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str | None = "redis://localhost:6379/0"
    host: str = "localhost"
    port: int = Field(default=6379, gt=0)
    db: int = Field(default=0, ge=0)
    username: str = ""
    password: str = ""
    password_env: str = ""
    ssl: bool = False
    key_prefix: str = "assets:"
    connect_timeout_seconds: float = Field(default=5.0, gt=0)
    socket_timeout_seconds: float = Field(default=5.0, gt=0)
    health_timeout_seconds: float = Field(default=1.0, gt=0)
    max_connections: int = Field(default=20, gt=0)

    @model_validator(mode="after")
    def _resolve_url(self) -> "RedisSettings":
        """Use an explicit URL as-is, otherwise build one from split fields."""
        if self.url is not None and self.url.strip() != "":
            object.__setattr__(self, "url", self.url.strip())
            return self

        object.__setattr__(self, "password", _resolve_password(self))
        object.__setattr__(self, "url", _url_from_parts(self))
        return self


def _resolve_password(redis: RedisSettings) -> str:
    """Resolve password from inline value or environment variable reference."""
    inline = redis.password.strip()
    env_name = redis.password_env.strip()
    if inline and env_name:
        raise ValueError(
            "substrate.redis.password and password_env are mutually exclusive"
        )
    if not env_name:
        return inline

    resolved = os.environ.get(env_name, "").strip()
    if resolved == "":
        raise ValueError(
            f"substrate.redis.password_env references missing env var '{env_name}'"
        )
    return resolved


def _url_from_parts(redis: RedisSettings) -> str:
    """Construct a Redis URL from split fields."""
    host = redis.host.strip()
    if host == "":
        raise ValueError("substrate.redis.host is required when url is unset")

    username = quote_plus(redis.username.strip())
    password = quote_plus(redis.password.strip())
    if username and password:
        auth = f"{username}:{password}@"
    elif username:
        auth = f"{username}@"
    elif password:
        auth = f":{password}@"
    else:
        auth = ""

    scheme = "rediss" if redis.ssl else "redis"
    return f"{scheme}://{auth}{host}:{redis.port}/{redis.db}"


def resolve_redis_settings(settings: AssetSettings) -> RedisSettings:
    """Resolve Redis substrate settings from ``substrate.redis``."""
    return resolve_component_settings(
        settings=settings,
        component_id=RESOURCE_COMPONENT_ID,
        model=RedisSettings,
    )
