"""Component declaration for the asset filesystem substrate resource."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from packages.asset_shared.config import AssetSettings
    from resources.substrates.filesystem.filesystem_substrate import (
        ProtectedAssetFilesystem,
        PublicAssetFilesystem,
    )

RESOURCE_COMPONENT_ID = "substrate_filesystem"


def build_component(
    *, settings: AssetSettings
) -> tuple[PublicAssetFilesystem, ProtectedAssetFilesystem]:
    """Build the public and protected local filesystems from typed settings."""
    from resources.substrates.filesystem.config import (
        resolve_filesystem_substrate_settings,
    )
    from resources.substrates.filesystem.filesystem_substrate import (
        ProtectedAssetFilesystem,
        PublicAssetFilesystem,
    )

    fs_settings = resolve_filesystem_substrate_settings(settings)
    return (
        PublicAssetFilesystem(settings=fs_settings),
        ProtectedAssetFilesystem(settings=fs_settings),
    )
