"""Asset store error codes and exception types."""

from __future__ import annotations

from collections.abc import Mapping

from packages.asset_shared.errors import (
    DomainError,
    configuration_error,
    conflict_error,
    validation_error,
)

INVALID_ASSET_INPUT = "INVALID_ASSET_INPUT"
ASSET_EXISTS = "ASSET_EXISTS"
NAMING_CONFLICT_EXHAUSTED = "NAMING_CONFLICT_EXHAUSTED"
ASSET_STORE_MISCONFIGURED = "ASSET_STORE_MISCONFIGURED"


class AssetStoreError(DomainError):
    """Base class for asset store failures."""


class InvalidAssetInputError(AssetStoreError):
    """Caller-supplied tuple, path or option cannot be used."""

    def __init__(self, message: str, *, metadata: Mapping[str, str] | None = None) -> None:
        super().__init__(
            validation_error(message, code=INVALID_ASSET_INPUT, metadata=metadata)
        )


class AssetExistsError(AssetStoreError):
    """Write target already exists under the ``exception`` conflict policy."""

    def __init__(self, file_id: str) -> None:
        super().__init__(
            conflict_error(
                f"asset already exists at {file_id}",
                code=ASSET_EXISTS,
                metadata={"file_id": file_id},
            )
        )


class NamingConflictExhaustedError(AssetStoreError):
    """No free renamed candidate was found for a write."""

    def __init__(self, file_id: str, tries: int) -> None:
        super().__init__(
            conflict_error(
                f"no free name for {file_id} after {tries} candidates",
                code=NAMING_CONFLICT_EXHAUSTED,
                metadata={"file_id": file_id},
            )
        )


class AssetStoreConfigurationError(AssetStoreError):
    """Store collaborators do not offer a required capability."""

    def __init__(self, message: str) -> None:
        super().__init__(configuration_error(message, code=ASSET_STORE_MISCONFIGURED))
