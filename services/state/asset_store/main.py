"""Process entrypoint serving the asset store over HTTP."""

from __future__ import annotations

import os
from pathlib import Path

from packages.asset_shared.config import load_settings
from packages.asset_shared.logging import configure_logging_from_settings, get_logger
from services.state.asset_store.api import serve
from services.state.asset_store.service import build_asset_store

_LOGGER = get_logger(__name__)


def main() -> None:
    """Load settings, configure logging, build the store and serve it."""
    config_path = os.getenv("ASSETS_CONFIG_FILE", "").strip()
    settings = load_settings(config_path=Path(config_path) if config_path else None)
    configure_logging_from_settings(settings.logging)

    store = build_asset_store(settings=settings)
    health = store.health()
    if not health.service_ready:
        raise RuntimeError(f"asset store is not ready: {health.detail}")
    _LOGGER.info("asset store ready")

    serve(settings=settings, service=store)


if __name__ == "__main__":
    main()
