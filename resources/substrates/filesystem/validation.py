"""Validation helpers for filesystem substrate inputs."""

from __future__ import annotations


def normalize_relative_path(value: str, *, allow_root: bool = False) -> str:
    """Normalize one store-relative path and reject traversal attempts."""
    normalized = value.replace("\\", "/").strip("/")
    if normalized == "":
        if allow_root:
            return ""
        raise ValueError("path is required")
    segments = normalized.split("/")
    if any(segment in ("", ".", "..") for segment in segments):
        raise ValueError(f"path must not contain empty or relative segments: {value!r}")
    return normalized


def normalize_url_base(value: str) -> str:
    """Normalize one URL prefix to have no trailing slash."""
    normalized = value.strip()
    if normalized == "":
        raise ValueError("url base is required")
    return normalized.rstrip("/") or "/"
