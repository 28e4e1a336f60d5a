"""Pydantic settings for the asset filesystem substrate component."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from packages.asset_shared.config import AssetSettings, resolve_component_settings
from resources.substrates.filesystem.component import RESOURCE_COMPONENT_ID
from resources.substrates.filesystem.validation import normalize_url_base


class FilesystemSubstrateSettings(BaseModel):
    """Local public/protected asset roots and write behavior."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    public_root_dir: str = "./var/assets/public"
    protected_root_dir: str = "./var/assets/protected"
    public_url_base: str = "/assets"
    protected_url_base: str = "/assets"
    temp_prefix: str = "assettmp"
    fsync_writes: bool = True
    copy_chunk_bytes: int = Field(default=64 * 1024, gt=0)

    @field_validator("public_root_dir", "protected_root_dir", "temp_prefix")
    @classmethod
    def _require_text(cls, value: str, info: ValidationInfo) -> str:
        """Require non-empty path and prefix values."""
        normalized = value.strip()
        if normalized == "":
            raise ValueError(f"{info.field_name} is required")
        return normalized

    @field_validator("public_url_base", "protected_url_base")
    @classmethod
    def _validate_url_base(cls, value: str) -> str:
        """Normalize URL prefixes."""
        return normalize_url_base(value)

    def public_root(self) -> Path:
        """Return the expanded public root path."""
        return Path(self.public_root_dir).expanduser().resolve()

    def protected_root(self) -> Path:
        """Return the expanded protected root path."""
        return Path(self.protected_root_dir).expanduser().resolve()


def resolve_filesystem_substrate_settings(
    settings: AssetSettings,
) -> FilesystemSubstrateSettings:
    """Resolve filesystem substrate settings from ``substrate.filesystem``."""
    return resolve_component_settings(
        settings=settings,
        component_id=RESOURCE_COMPONENT_ID,
        model=FilesystemSubstrateSettings,
    )
