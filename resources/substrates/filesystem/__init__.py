"""Asset filesystem substrate resource exports."""

from resources.substrates.filesystem.component import RESOURCE_COMPONENT_ID
from resources.substrates.filesystem.config import (
    FilesystemSubstrateSettings,
    resolve_filesystem_substrate_settings,
)
from resources.substrates.filesystem.filesystem_substrate import (
    LocalAssetFilesystem,
    ProtectedAssetFilesystem,
    PublicAssetFilesystem,
)
from resources.substrates.filesystem.substrate import (
    AssetFilesystem,
    FilesystemHealthStatus,
    ListedEntry,
    ProtectedUrlCapable,
    PublicUrlCapable,
)

__all__ = [
    "RESOURCE_COMPONENT_ID",
    "AssetFilesystem",
    "FilesystemHealthStatus",
    "FilesystemSubstrateSettings",
    "ListedEntry",
    "LocalAssetFilesystem",
    "ProtectedAssetFilesystem",
    "ProtectedUrlCapable",
    "PublicAssetFilesystem",
    "PublicUrlCapable",
    "resolve_filesystem_substrate_settings",
]
