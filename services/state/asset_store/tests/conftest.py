"""Shared fixtures for Asset Store tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from resources.substrates.filesystem import (
    FilesystemSubstrateSettings,
    ProtectedAssetFilesystem,
    PublicAssetFilesystem,
)
from services.state.asset_store.config import AssetStoreSettings
from services.state.asset_store.grants import InMemoryGrantStore
from services.state.asset_store.hashing import FileHashingService
from services.state.asset_store.implementation import FilesystemAssetStore
from services.state.asset_store.interfaces import VersionedRecordStore


@pytest.fixture
def fs_settings(tmp_path: Path) -> FilesystemSubstrateSettings:
    return FilesystemSubstrateSettings(
        public_root_dir=str(tmp_path / "public"),
        protected_root_dir=str(tmp_path / "protected"),
        public_url_base="/assets",
        protected_url_base="/protected",
        fsync_writes=False,
    )


@pytest.fixture
def public_fs(fs_settings: FilesystemSubstrateSettings) -> PublicAssetFilesystem:
    return PublicAssetFilesystem(settings=fs_settings)


@pytest.fixture
def protected_fs(fs_settings: FilesystemSubstrateSettings) -> ProtectedAssetFilesystem:
    return ProtectedAssetFilesystem(settings=fs_settings)


@pytest.fixture
def make_store(
    public_fs: PublicAssetFilesystem, protected_fs: ProtectedAssetFilesystem
) -> Callable[..., FilesystemAssetStore]:
    """Return a factory building stores over the temp filesystems."""

    def _make(
        *, records: VersionedRecordStore | None = None, **overrides: Any
    ) -> FilesystemAssetStore:
        return FilesystemAssetStore(
            settings=AssetStoreSettings(**overrides),
            public=public_fs,
            protected=protected_fs,
            hasher=FileHashingService(),
            grants=InMemoryGrantStore(),
            records=records,
        )

    return _make
