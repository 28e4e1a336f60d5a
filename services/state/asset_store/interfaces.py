"""Protocols for collaborators the asset store consumes but does not own."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Protocol, TypeVar

from services.state.asset_store.domain import FileRecord, Stage

T = TypeVar("T")


class VersionedRecordStore(Protocol):
    """Stage-scoped view of persisted file records and their history."""

    def current_stage(self) -> Stage:
        """Return the stage lookups currently read from."""

    def with_stage(self, stage: Stage, fn: Callable[[], T]) -> T:
        """Run ``fn`` with lookups scoped to ``stage``."""

    def lookup_by_filename(self, filename: str) -> FileRecord | None:
        """Return the variantless record for ``filename`` at the current stage."""

    def has_version(
        self,
        *,
        filename: str,
        hash_prefix: str,
        exclude_hash: str,
        published_only: bool,
    ) -> bool:
        """Return whether any version of ``filename`` carried ``hash_prefix``."""


class GrantStore(Protocol):
    """Session-keyed storage of granted protected FileIDs."""

    def get(self, session_id: str) -> frozenset[str]:
        """Return granted FileIDs for one session."""

    def set(self, session_id: str, grants: frozenset[str]) -> None:
        """Replace granted FileIDs for one session."""

    def clear(self, session_id: str) -> None:
        """Drop all grants for one session."""


class HashCache(Protocol):
    """Key/value storage for cached ``(timestamp, hash)`` entries."""

    def get(self, key: str) -> tuple[int, str] | None:
        """Return one cached entry or ``None``."""

    def set(self, key: str, entry: tuple[int, str]) -> None:
        """Store one cache entry."""

    def delete(self, key: str) -> None:
        """Remove one cache entry when present."""

    def clear(self) -> None:
        """Remove every cache entry."""


class FileRecordSource(Protocol):
    """Chunked source of original file records for migration runs."""

    def iter_records(self, *, chunk_size: int) -> Iterator[FileRecord]:
        """Yield records lazily, fetching ``chunk_size`` rows at a time."""

    def record_normalised(self, record: FileRecord, *, filename: str, hash: str) -> None:
        """Persist the canonical filename and hash chosen for one record."""
