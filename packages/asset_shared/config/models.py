"""Typed configuration models for asset store runtime settings."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "assets" / "assets.yaml"
SECRETS_FILENAME = "secrets.yaml"


@dataclass(frozen=True)
class _SourceScope:
    """Source selection for one settings construction."""

    config_path: Path
    read_process_env: bool


_SOURCE_SCOPE: ContextVar[_SourceScope | None] = ContextVar(
    "asset_settings_source_scope", default=None
)


@contextmanager
def settings_source_scope(
    *, config_path: Path, read_process_env: bool = True
) -> Iterator[None]:
    """Bind the YAML path and env policy used while building ``AssetSettings``."""
    token = _SOURCE_SCOPE.set(
        _SourceScope(config_path=config_path, read_process_env=read_process_env)
    )
    try:
        yield
    finally:
        _SOURCE_SCOPE.reset(token)


class LoggingSettings(BaseModel):
    """Structured logging configuration shared by asset components."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = True
    service: str = "assets"
    environment: str = "dev"


class TracingSettings(BaseModel):
    """OpenTelemetry naming for public API spans."""

    tracer_name: str = "assets.public_api"


class ObservabilitySettings(BaseModel):
    """Global observability configuration."""

    tracing: TracingSettings = Field(default_factory=TracingSettings)


class ComponentNamespaceSettings(BaseModel):
    """Namespace map for grouped component settings under ``components.<kind>``."""

    model_config = ConfigDict(extra="allow")


class ComponentsSettings(BaseModel):
    """Typed ``components`` subtree with support for component-local extras."""

    model_config = ConfigDict(extra="allow")

    service: ComponentNamespaceSettings = Field(
        default_factory=ComponentNamespaceSettings
    )
    substrate: ComponentNamespaceSettings = Field(
        default_factory=ComponentNamespaceSettings
    )

    @model_validator(mode="before")
    @classmethod
    def _reject_flat_component_keys(cls, value: object) -> object:
        """Reject flat ``service_x`` keys in favor of grouped namespaces."""
        if not isinstance(value, dict):
            return value
        for key in value:
            if isinstance(key, str) and key.startswith(("service_", "substrate_")):
                kind, _, name = key.partition("_")
                raise ValueError(
                    f"components.{key} is invalid; use components.{kind}.{name} instead"
                )
        return value


class AssetSettings(BaseSettings):
    """Root runtime settings resolved from init/env/yaml/defaults sources."""

    model_config = SettingsConfigDict(
        env_prefix="ASSETS_",
        env_nested_delimiter="__",
        extra="ignore",
        nested_model_default_partial_update=True,
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    components: ComponentsSettings = Field(default_factory=ComponentsSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Apply precedence: init > env > secrets.yaml > assets.yaml > defaults."""
        scope = _SOURCE_SCOPE.get()
        config_path = scope.config_path if scope is not None else DEFAULT_CONFIG_PATH
        sources: list[PydanticBaseSettingsSource] = [init_settings]
        if scope is None or scope.read_process_env:
            sources.append(env_settings)
        sources.extend(
            YamlConfigSettingsSource(
                settings_cls,
                yaml_file=path,
                yaml_file_encoding="utf-8",
            )
            for path in (config_path.with_name(SECRETS_FILENAME), config_path)
        )
        return tuple(sources)


TComponentSettings = TypeVar("TComponentSettings", bound=BaseModel)


def resolve_component_settings(
    *,
    settings: AssetSettings,
    component_id: str,
    model: type[TComponentSettings],
) -> TComponentSettings:
    """Resolve one component settings object from grouped ``components`` keys."""
    raw_components = settings.components.model_dump(mode="python")
    kind, separator, name = component_id.partition("_")
    if not separator or kind not in {"service", "substrate"}:
        raise ValueError(
            f"component_id must look like 'service_<name>' or 'substrate_<name>': "
            f"{component_id!r}"
        )

    namespace = raw_components.get(kind, {})
    if not isinstance(namespace, dict):
        raise TypeError(f"components.{kind} must resolve to an object mapping")
    resolved = namespace.get(name, {})
    if not isinstance(resolved, dict):
        raise TypeError(f"components.{kind}.{name} must resolve to an object mapping")
    return model.model_validate(resolved)
