"""Asset Store Service native package exports."""

from packages.asset_shared.errors import ErrorCategory, ErrorDetail
from services.state.asset_store.component import SERVICE_COMPONENT_ID
from services.state.asset_store.config import AssetStoreSettings
from services.state.asset_store.domain import (
    AssetMetadata,
    AssetResponse,
    AssetTuple,
    ConflictPolicy,
    FileRecord,
    HealthStatus,
    NormaliseResult,
    ParsedFileID,
    Stage,
    Visibility,
    WriteOptions,
    to_parsed_file_id,
)
from services.state.asset_store.errors import (
    AssetExistsError,
    AssetStoreConfigurationError,
    AssetStoreError,
    InvalidAssetInputError,
    NamingConflictExhaustedError,
)
from services.state.asset_store.grants import grant_session
from services.state.asset_store.hashing import FileHashingService
from services.state.asset_store.implementation import FilesystemAssetStore
from services.state.asset_store.migration import FileMigrationHelper, MigrationReport
from services.state.asset_store.service import AssetStore, build_asset_store

__all__ = [
    "SERVICE_COMPONENT_ID",
    "AssetStore",
    "AssetStoreSettings",
    "FilesystemAssetStore",
    "build_asset_store",
    "AssetMetadata",
    "AssetResponse",
    "AssetTuple",
    "ConflictPolicy",
    "FileRecord",
    "HealthStatus",
    "NormaliseResult",
    "ParsedFileID",
    "Stage",
    "Visibility",
    "WriteOptions",
    "to_parsed_file_id",
    "AssetStoreError",
    "AssetExistsError",
    "AssetStoreConfigurationError",
    "InvalidAssetInputError",
    "NamingConflictExhaustedError",
    "FileHashingService",
    "FileMigrationHelper",
    "MigrationReport",
    "grant_session",
    "ErrorCategory",
    "ErrorDetail",
]
