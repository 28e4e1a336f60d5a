"""Pydantic settings for Asset Store behavior."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from packages.asset_shared.config import AssetSettings, resolve_component_settings
from services.state.asset_store.component import SERVICE_COMPONENT_ID
from services.state.asset_store.domain import ConflictPolicy, Stage, Visibility

HELPER_NAMES = frozenset({"hash", "natural", "legacy"})

DEFAULT_SS3_METHODS = (
    "fit",
    "fill",
    "pad",
    "scalewidth",
    "scaleheight",
    "setratiosize",
    "setwidth",
    "setheight",
    "setsize",
    "cmsthumbnail",
    "assetlibrarypreview",
    "assetlibrarythumbnail",
    "stripthumbnail",
    "paddedimage",
    "formattedimage",
    "resizedimage",
    "croppedimage",
    "cropheight",
)


class HttpIngressSettings(BaseModel):
    """Settings for the FastAPI app serving asset requests."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    url_prefix: str = "/assets"
    session_cookie: str = "asset_session"
    host: str = "127.0.0.1"
    port: int = Field(default=8080, gt=0)

    @field_validator("url_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        stripped = value.strip().strip("/")
        return f"/{stripped}" if stripped else ""


class ResolutionSettings(BaseModel):
    """Helper choice for one backing store.

    ``default_helper`` names the scheme new FileIDs are built with;
    ``resolution_helpers`` are tried in order to understand incoming FileIDs.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_helper: str = "hash"
    resolution_helpers: tuple[str, ...] = ("hash", "natural")

    @field_validator("default_helper")
    @classmethod
    def _validate_default_helper(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in HELPER_NAMES:
            raise ValueError(f"default_helper must be one of {sorted(HELPER_NAMES)}")
        return normalized

    @field_validator("resolution_helpers")
    @classmethod
    def _validate_resolution_helpers(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        normalized = tuple(name.strip().lower() for name in value)
        if not normalized:
            raise ValueError("resolution_helpers must name at least one helper")
        unknown = sorted(set(normalized) - HELPER_NAMES)
        if unknown:
            raise ValueError(f"unknown resolution helpers: {unknown}")
        return normalized


class AssetStoreSettings(BaseModel):
    """Asset store runtime behavior settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    public_resolution: ResolutionSettings = ResolutionSettings()
    protected_resolution: ResolutionSettings = ResolutionSettings()
    versioned_stage: Stage = Stage.DRAFT
    legacy_fail_newer_variant: bool = True
    ss3_image_methods: tuple[str, ...] = DEFAULT_SS3_METHODS

    default_visibility: Visibility = Visibility.PUBLIC
    default_conflict: ConflictPolicy = ConflictPolicy.OVERWRITE
    keep_empty_dirs: bool = False
    rename_max_tries: int = Field(default=100, gt=0)

    denied_response_code: int = Field(default=404, ge=400, le=599)
    missing_response_code: int = Field(default=404, ge=400, le=599)
    redirect_response_code: int = Field(default=302, ge=300, le=399)
    permanent_redirect_response_code: int = Field(default=301, ge=300, le=399)
    file_response_headers: dict[str, str] = Field(
        default_factory=lambda: {"Cache-Control": "private"}
    )
    debug: bool = False

    hash_cache_enabled: bool = True
    hash_cache_backend: str = "memory"
    hash_chunk_bytes: int = Field(default=64 * 1024, gt=0)
    grant_backend: str = "memory"
    grant_ttl_seconds: int | None = Field(default=None, gt=0)

    http: HttpIngressSettings = HttpIngressSettings()

    @field_validator("ss3_image_methods")
    @classmethod
    def _validate_methods(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        normalized = tuple(method.strip().lower() for method in value if method.strip())
        if not normalized:
            raise ValueError("ss3_image_methods is required")
        return normalized

    @field_validator("hash_cache_backend", "grant_backend")
    @classmethod
    def _validate_backend(cls, value: str, info: ValidationInfo) -> str:
        normalized = value.strip().lower()
        if normalized not in {"memory", "redis"}:
            raise ValueError(f"{info.field_name} must be 'memory' or 'redis'")
        return normalized


def resolve_asset_store_settings(settings: AssetSettings) -> AssetStoreSettings:
    """Resolve asset store settings from ``components.service.asset_store``."""
    return resolve_component_settings(
        settings=settings,
        component_id=SERVICE_COMPONENT_ID,
        model=AssetStoreSettings,
    )
