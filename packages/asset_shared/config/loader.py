"""Configuration loading with deterministic precedence.

The cascade is always:
1) CLI params
2) Environment variables
3) ``secrets.yaml`` beside the config file
4) ~/.config/assets/assets.yaml
5) Built-in model defaults

Environment variable format:
- Prefix: ``ASSETS_``
- Nested keys: ``__`` separator
- Example: ``ASSETS_LOGGING__LEVEL=DEBUG`` -> ``logging.level = "DEBUG"``
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Mapping

from .models import DEFAULT_CONFIG_PATH, AssetSettings, settings_source_scope

ENV_PREFIX = "ASSETS_"


def load_settings(
    *,
    cli_params: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    config_path: str | Path | None = None,
) -> AssetSettings:
    """Build ``AssetSettings`` from the standard precedence cascade.

    When ``environ`` is given it replaces the process environment, which keeps
    tests and tooling hermetic.
    """
    resolved_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    init_values: dict[str, Any] = {}
    if environ is not None:
        init_values = _load_env_config(environ=environ, prefix=ENV_PREFIX)
    if cli_params is not None:
        init_values = _merge_dicts(init_values, cli_params)

    with settings_source_scope(
        config_path=resolved_path.expanduser(),
        read_process_env=environ is None,
    ):
        return AssetSettings(**init_values)


def _load_env_config(
    *, environ: Mapping[str, str], prefix: str
) -> dict[str, Any]:
    """Extract and map prefixed environment variables into nested config."""
    output: dict[str, Any] = {}
    for key, raw_value in environ.items():
        if not key.startswith(prefix):
            continue
        path = [
            segment.strip().lower()
            for segment in key[len(prefix) :].split("__")
            if segment.strip()
        ]
        if path:
            _set_nested(output, path, _coerce_scalar(raw_value))
    return output


def _set_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Set a nested mapping value by path, creating intermediate dicts."""
    cursor = target
    for segment in path[:-1]:
        child = cursor.get(segment)
        if not isinstance(child, dict):
            child = {}
            cursor[segment] = child
        cursor = child
    cursor[path[-1]] = value


def _merge_dicts(
    base: Mapping[str, Any], override: Mapping[str, Any]
) -> dict[str, Any]:
    """Recursively merge mappings, with ``override`` taking precedence."""
    result = copy.deepcopy(dict(base))
    for key, override_value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(override_value, Mapping):
            result[key] = _merge_dicts(base_value, override_value)
        else:
            result[key] = copy.deepcopy(override_value)
    return result


def _coerce_scalar(raw: str) -> Any:
    """Coerce scalar env strings into bool/None/JSON when obvious."""
    value = raw.strip()
    lowered = value.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if lowered in {"null", "none"}:
        return None
    if value.startswith(("{", "[")):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return raw
    return raw
