"""Component declaration for the Asset Store service."""

from __future__ import annotations

SERVICE_COMPONENT_ID = "service_asset_store"
