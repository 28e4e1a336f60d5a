"""Authoritative in-process Python API for the Asset Store service."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import BinaryIO

from packages.asset_shared.config import AssetSettings
from resources.substrates.filesystem.substrate import AssetFilesystem
from resources.substrates.redis.substrate import RedisSubstrate
from services.state.asset_store.domain import (
    AssetMetadata,
    AssetResponse,
    AssetTuple,
    HealthStatus,
    NormaliseResult,
    Visibility,
    WriteOptions,
)
from services.state.asset_store.interfaces import GrantStore, VersionedRecordStore


class AssetStore(ABC):
    """Public API for storing, resolving and serving versioned asset files.

    Tuples are addressed by ``filename`` and content ``hash``, plus an optional
    ``variant`` for derived files. Lookups that find nothing return ``None``
    (or ``False``) rather than raising.
    """

    @abstractmethod
    def get_capabilities(self) -> dict[str, tuple[str, ...]]:
        """Return supported visibility and conflict modes."""

    @abstractmethod
    def health(self) -> HealthStatus:
        """Return readiness of the store and its filesystems."""

    @abstractmethod
    def get_visibility(self, *, filename: str, hash: str) -> Visibility | None:
        """Return which store holds the tuple, if any."""

    @abstractmethod
    def get_as_stream(
        self, *, filename: str, hash: str, variant: str = ""
    ) -> BinaryIO | None:
        """Open stored content for streaming; the caller closes the stream."""

    @abstractmethod
    def get_as_bytes(
        self, *, filename: str, hash: str, variant: str = ""
    ) -> bytes | None:
        """Read stored content fully."""

    @abstractmethod
    def get_as_url(
        self, *, filename: str, hash: str, variant: str = "", grant: bool = True
    ) -> str:
        """Return the URL serving one tuple, granting protected access on request."""

    @abstractmethod
    def get_metadata(
        self, *, filename: str, hash: str, variant: str = ""
    ) -> AssetMetadata | None:
        """Return physical metadata for one stored tuple."""

    @abstractmethod
    def get_mime_type(
        self, *, filename: str, hash: str, variant: str = ""
    ) -> str | None:
        """Return the MIME type of one stored tuple."""

    @abstractmethod
    def exists(self, *, filename: str, hash: str, variant: str = "") -> bool:
        """Return whether the tuple is stored with matching content."""

    @abstractmethod
    def set_from_local_file(
        self,
        *,
        path: str,
        filename: str = "",
        hash: str = "",
        variant: str = "",
        options: WriteOptions | None = None,
    ) -> AssetTuple:
        """Store a local file and return the stored tuple."""

    @abstractmethod
    def set_from_bytes(
        self,
        *,
        data: bytes | str,
        filename: str,
        hash: str = "",
        variant: str = "",
        options: WriteOptions | None = None,
    ) -> AssetTuple:
        """Store in-memory content and return the stored tuple."""

    @abstractmethod
    def set_from_stream(
        self,
        *,
        stream: BinaryIO,
        filename: str,
        hash: str = "",
        variant: str = "",
        options: WriteOptions | None = None,
    ) -> AssetTuple:
        """Store streamed content and return the stored tuple."""

    @abstractmethod
    def delete(self, *, filename: str, hash: str) -> bool:
        """Delete a tuple with all its variants; return whether anything went."""

    @abstractmethod
    def rename(self, *, filename: str, hash: str, new_name: str) -> str | None:
        """Re-key a tuple and its variants; return the cleaned new filename."""

    @abstractmethod
    def copy(self, *, filename: str, hash: str, new_name: str) -> str | None:
        """Copy a tuple and its variants; return the cleaned new filename."""

    @abstractmethod
    def publish(self, *, filename: str, hash: str) -> None:
        """Move a tuple and its variants to the public store."""

    @abstractmethod
    def swap_publish(self, *, filename: str, hash: str) -> None:
        """Publish, swapping conflicting public files back into protected."""

    @abstractmethod
    def protect(self, *, filename: str, hash: str) -> None:
        """Move a tuple and its variants to the protected store."""

    @abstractmethod
    def grant(self, *, filename: str, hash: str) -> None:
        """Allow the bound session to view one protected tuple."""

    @abstractmethod
    def revoke(self, *, filename: str, hash: str) -> None:
        """Withdraw a grant from the bound session."""

    @abstractmethod
    def can_view(self, *, filename: str, hash: str) -> bool:
        """Return whether the bound session may view one tuple."""

    @abstractmethod
    def get_response_for(self, *, file_id: str) -> AssetResponse:
        """Answer an HTTP request for one raw FileID."""

    @abstractmethod
    def normalise(self, *, filename: str, hash: str) -> NormaliseResult | None:
        """Move a tuple to its canonical FileID with a clean filename."""

    @abstractmethod
    def normalise_path(self, *, file_id: str) -> NormaliseResult | None:
        """Resolve a raw FileID then normalise the tuple it names."""


def build_asset_store(
    *,
    settings: AssetSettings,
    public_filesystem: AssetFilesystem | None = None,
    protected_filesystem: AssetFilesystem | None = None,
    redis: RedisSubstrate | None = None,
    records: VersionedRecordStore | None = None,
    grants: GrantStore | None = None,
) -> AssetStore:
    """Build the default filesystem-backed asset store from typed settings."""
    from resources.substrates.filesystem.component import (
        build_component as build_filesystems,
    )
    from services.state.asset_store.config import resolve_asset_store_settings
    from services.state.asset_store.grants import InMemoryGrantStore, RedisGrantStore
    from services.state.asset_store.hashing import (
        FileHashingService,
        InMemoryHashCache,
        RedisHashCache,
    )
    from services.state.asset_store.implementation import FilesystemAssetStore

    store_settings = resolve_asset_store_settings(settings)
    if public_filesystem is None or protected_filesystem is None:
        default_public, default_protected = build_filesystems(settings=settings)
        public_filesystem = public_filesystem or default_public
        protected_filesystem = protected_filesystem or default_protected

    needs_redis = "redis" in (
        store_settings.hash_cache_backend,
        store_settings.grant_backend,
    )
    if needs_redis and redis is None:
        from resources.substrates.redis.component import (
            build_component as build_redis,
        )

        redis = build_redis(settings=settings)

    if store_settings.hash_cache_backend == "redis":
        assert redis is not None
        cache = RedisHashCache(redis=redis)
    else:
        cache = InMemoryHashCache()

    if grants is None:
        if store_settings.grant_backend == "redis":
            assert redis is not None
            grants = RedisGrantStore(
                redis=redis, ttl_seconds=store_settings.grant_ttl_seconds
            )
        else:
            grants = InMemoryGrantStore()

    return FilesystemAssetStore(
        settings=store_settings,
        public=public_filesystem,
        protected=protected_filesystem,
        hasher=FileHashingService(
            cache=cache,
            enabled=store_settings.hash_cache_enabled,
            chunk_bytes=store_settings.hash_chunk_bytes,
        ),
        grants=grants,
        records=records,
        redis=redis if needs_redis else None,
    )
