"""Local-disk asset filesystems with atomic safe-write semantics."""

from __future__ import annotations

import mimetypes
import os
import shutil
from io import BytesIO
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import BinaryIO, Iterator
from urllib.parse import quote

from resources.substrates.filesystem.config import FilesystemSubstrateSettings
from resources.substrates.filesystem.substrate import (
    FilesystemHealthStatus,
    ListedEntry,
)
from resources.substrates.filesystem.validation import normalize_relative_path

_DEFAULT_MIME_TYPE = "application/octet-stream"


class LocalAssetFilesystem:
    """Store asset bytes under one local root directory."""

    def __init__(
        self,
        *,
        name: str,
        root: Path,
        settings: FilesystemSubstrateSettings,
    ) -> None:
        self._name = name
        self._root = root
        self._settings = settings
        self._temp_marker = f".{settings.temp_prefix}-"

    @property
    def name(self) -> str:
        """Return the identity used to key cached hashes."""
        return self._name

    @property
    def root(self) -> Path:
        """Return the absolute root directory."""
        return self._root

    def health(self) -> FilesystemHealthStatus:
        """Return readiness for root dir access."""
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            return FilesystemHealthStatus(
                ready=False,
                detail=f"filesystem probe failed: {type(exc).__name__}",
            )
        if not self._root.is_dir():
            return FilesystemHealthStatus(
                ready=False,
                detail=f"root path is not a directory: {self._root}",
            )
        return FilesystemHealthStatus(ready=True, detail="ok")

    def has(self, path: str) -> bool:
        """Return whether a file or directory exists at ``path``."""
        return self._resolve(path, allow_root=True).exists()

    def file_exists(self, path: str) -> bool:
        """Return whether a regular file exists at ``path``."""
        return self._resolve(path).is_file()

    def directory_exists(self, path: str) -> bool:
        """Return whether a directory exists at ``path``."""
        return self._resolve(path, allow_root=True).is_dir()

    def read(self, path: str) -> bytes:
        """Read one file fully."""
        return self._resolve(path).read_bytes()

    def read_stream(self, path: str) -> BinaryIO:
        """Open one file for streaming reads."""
        return self._resolve(path).open("rb")

    def write(self, path: str, content: bytes) -> None:
        """Write one file atomically."""
        self.write_stream(path, BytesIO(content))

    def write_stream(self, path: str, stream: BinaryIO) -> None:
        """Write one file atomically through a sibling temp file."""
        target = self._resolve(path)
        self._ensure_root()
        target.parent.mkdir(parents=True, exist_ok=True)

        tmp_path: Path | None = None
        try:
            with NamedTemporaryFile(
                mode="wb",
                prefix=self._temp_marker,
                suffix=".tmp",
                dir=target.parent,
                delete=False,
            ) as handle:
                tmp_path = Path(handle.name)
                shutil.copyfileobj(stream, handle, self._settings.copy_chunk_bytes)
                handle.flush()
                if self._settings.fsync_writes:
                    os.fsync(handle.fileno())
            os.replace(tmp_path, target)
        finally:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink(missing_ok=True)

    def delete(self, path: str) -> None:
        """Delete one file when present."""
        self._resolve(path).unlink(missing_ok=True)

    def delete_directory(self, path: str) -> None:
        """Delete one directory tree when present."""
        target = self._resolve(path)
        if target.is_dir():
            shutil.rmtree(target)

    def copy(self, source: str, destination: str) -> None:
        """Copy one file through an atomic write."""
        with self.read_stream(source) as handle:
            self.write_stream(destination, handle)

    def move(self, source: str, destination: str) -> None:
        """Move one file within this root."""
        origin = self._resolve(source)
        if not origin.is_file():
            raise FileNotFoundError(f"{self._name}: no file at {source}")
        target = self._resolve(destination)
        target.parent.mkdir(parents=True, exist_ok=True)
        os.replace(origin, target)

    def list_contents(self, path: str = "", recursive: bool = False) -> Iterator[ListedEntry]:
        """Yield entries under ``path`` in scandir order, skipping temp files."""
        prefix = normalize_relative_path(path, allow_root=True)
        directory = self._resolve(prefix, allow_root=True)
        if not directory.is_dir():
            return
        with os.scandir(directory) as entries:
            listed = [entry for entry in entries if not entry.name.startswith(self._temp_marker)]
        for entry in listed:
            relative = f"{prefix}/{entry.name}" if prefix else entry.name
            if entry.is_dir(follow_symlinks=False):
                yield ListedEntry(path=relative, type="dir")
                if recursive:
                    yield from self.list_contents(relative, recursive=True)
            else:
                yield ListedEntry(path=relative, type="file")

    def last_modified(self, path: str) -> int:
        """Return the file modification time in nanoseconds."""
        return self._resolve(path).stat().st_mtime_ns

    def file_size(self, path: str) -> int:
        """Return the file size in bytes."""
        return self._resolve(path).stat().st_size

    def mime_type(self, path: str) -> str:
        """Guess the MIME type from the file extension."""
        target = self._resolve(path)
        if not target.is_file():
            raise FileNotFoundError(f"{self._name}: no file at {path}")
        guessed, _ = mimetypes.guess_type(target.name)
        return guessed or _DEFAULT_MIME_TYPE

    def _resolve(self, path: str, *, allow_root: bool = False) -> Path:
        relative = normalize_relative_path(path, allow_root=allow_root)
        return self._root / relative if relative else self._root

    def _ensure_root(self) -> None:
        if not self._root.exists():
            self._root.mkdir(parents=True, exist_ok=True)
        if not self._root.is_dir():
            raise OSError(f"asset filesystem root is not a directory: {self._root}")


class PublicAssetFilesystem(LocalAssetFilesystem):
    """Local filesystem whose files are served directly under a URL prefix."""

    def __init__(
        self, *, settings: FilesystemSubstrateSettings, name: str = "public"
    ) -> None:
        super().__init__(name=name, root=settings.public_root(), settings=settings)
        self._url_base = settings.public_url_base

    def public_url(self, path: str) -> str:
        """Return the public URL of one stored file."""
        return _join_url(self._url_base, normalize_relative_path(path))


class ProtectedAssetFilesystem(LocalAssetFilesystem):
    """Local filesystem whose files are only served to granted sessions."""

    def __init__(
        self, *, settings: FilesystemSubstrateSettings, name: str = "protected"
    ) -> None:
        super().__init__(name=name, root=settings.protected_root(), settings=settings)
        self._url_base = settings.protected_url_base

    def protected_url(self, path: str) -> str:
        """Return the grant-gated URL of one stored file."""
        return _join_url(self._url_base, normalize_relative_path(path))


def _join_url(base: str, path: str) -> str:
    return f"{base.rstrip('/')}/{quote(path)}"
