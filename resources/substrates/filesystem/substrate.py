"""Transport-agnostic protocols for asset filesystem operations."""

from __future__ import annotations

from typing import BinaryIO, Iterator, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict


class FilesystemHealthStatus(BaseModel):
    """Asset filesystem readiness payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ready: bool
    detail: str


class ListedEntry(BaseModel):
    """One entry yielded by a directory listing."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str
    type: Literal["file", "dir"]


class AssetFilesystem(Protocol):
    """Protocol for path-keyed byte storage used by the asset store.

    Paths are store-relative and ``/`` separated. Read operations on missing
    paths raise ``FileNotFoundError``; deletes are idempotent.
    """

    @property
    def name(self) -> str:
        """Stable identity used to key cached hashes."""

    def health(self) -> FilesystemHealthStatus:
        """Probe filesystem readiness."""

    def has(self, path: str) -> bool:
        """Return whether a file or directory exists at ``path``."""

    def file_exists(self, path: str) -> bool:
        """Return whether a regular file exists at ``path``."""

    def directory_exists(self, path: str) -> bool:
        """Return whether a directory exists at ``path``."""

    def read(self, path: str) -> bytes:
        """Read one file fully."""

    def read_stream(self, path: str) -> BinaryIO:
        """Open one file for streaming reads; the caller closes it."""

    def write(self, path: str, content: bytes) -> None:
        """Write one file atomically, replacing existing content."""

    def write_stream(self, path: str, stream: BinaryIO) -> None:
        """Write one file atomically from a readable binary stream."""

    def delete(self, path: str) -> None:
        """Delete one file when present."""

    def delete_directory(self, path: str) -> None:
        """Delete one directory and its contents when present."""

    def copy(self, source: str, destination: str) -> None:
        """Copy one file to a new path."""

    def move(self, source: str, destination: str) -> None:
        """Move one file to a new path, preserving its modification time."""

    def list_contents(self, path: str = "", recursive: bool = False) -> Iterator[ListedEntry]:
        """Yield entries under ``path`` in listing order."""

    def last_modified(self, path: str) -> int:
        """Return the modification timestamp of one file."""

    def file_size(self, path: str) -> int:
        """Return the size in bytes of one file."""

    def mime_type(self, path: str) -> str:
        """Return the guessed MIME type of one file."""


@runtime_checkable
class PublicUrlCapable(Protocol):
    """Capability of filesystems whose content is served directly."""

    def public_url(self, path: str) -> str:
        """Return the public URL of one stored file."""


@runtime_checkable
class ProtectedUrlCapable(Protocol):
    """Capability of filesystems whose content is gated by grants."""

    def protected_url(self, path: str) -> str:
        """Return the access-controlled URL of one stored file."""
