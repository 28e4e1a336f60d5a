"""Component declaration for the Redis substrate resource."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from packages.asset_shared.config import AssetSettings
    from resources.substrates.redis.redis_substrate import RedisClientSubstrate

RESOURCE_COMPONENT_ID = "substrate_redis"


def build_component(*, settings: AssetSettings) -> RedisClientSubstrate:
    """Build the Redis substrate from typed settings."""
    from resources.substrates.redis.config import resolve_redis_settings
    from resources.substrates.redis.redis_substrate import RedisClientSubstrate

    return RedisClientSubstrate(settings=resolve_redis_settings(settings))
