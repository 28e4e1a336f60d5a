"""In-memory versioned record store for tools, migrations and tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextvars import ContextVar
from typing import TypeVar

from services.state.asset_store.domain import FileRecord, FileVersion, Stage

T = TypeVar("T")


class InMemoryRecordStore:
    """Keep current records per stage plus an append-only version history."""

    def __init__(self, *, stage: Stage = Stage.DRAFT) -> None:
        self._stage: ContextVar[Stage] = ContextVar(
            f"record_store_stage_{id(self)}", default=stage
        )
        self._records: dict[Stage, dict[str, FileRecord]] = {s: {} for s in Stage}
        self._versions: list[FileVersion] = []

    def current_stage(self) -> Stage:
        return self._stage.get()

    def with_stage(self, stage: Stage, fn: Callable[[], T]) -> T:
        token = self._stage.set(stage)
        try:
            return fn()
        finally:
            self._stage.reset(token)

    def lookup_by_filename(self, filename: str) -> FileRecord | None:
        record = self._records[self.current_stage()].get(filename)
        if record is None or record.variant:
            return None
        return record

    def has_version(
        self,
        *,
        filename: str,
        hash_prefix: str,
        exclude_hash: str,
        published_only: bool,
    ) -> bool:
        return any(
            version.filename == filename
            and version.hash.startswith(hash_prefix)
            and version.hash != exclude_hash
            and (version.was_published or not published_only)
            for version in self._versions
        )

    def save(self, record: FileRecord, *, stage: Stage | None = None) -> None:
        """Store ``record`` at ``stage`` and append it to the version history."""
        target = stage or self.current_stage()
        self._records[target][record.filename] = record
        self._versions.append(
            FileVersion(
                filename=record.filename,
                hash=record.hash,
                stage=target,
                was_published=record.was_published or target is Stage.LIVE,
            )
        )

    def publish(self, filename: str) -> None:
        """Copy the draft record of ``filename`` to the live stage."""
        draft = self._records[Stage.DRAFT].get(filename)
        if draft is None:
            raise KeyError(filename)
        self.save(draft.model_copy(update={"was_published": True}), stage=Stage.LIVE)

    def iter_records(self, *, chunk_size: int) -> Iterator[FileRecord]:
        """Yield draft originals in insertion order, ``chunk_size`` at a time."""
        originals = [r for r in self._records[Stage.DRAFT].values() if not r.variant]
        for start in range(0, len(originals), chunk_size):
            yield from originals[start : start + chunk_size]

    def record_normalised(self, record: FileRecord, *, filename: str, hash: str) -> None:
        for records in self._records.values():
            current = records.pop(record.filename, None)
            if current is not None:
                records[filename] = current.model_copy(
                    update={"filename": filename, "hash": hash}
                )
        self._versions.append(
            FileVersion(
                filename=filename,
                hash=hash,
                stage=Stage.DRAFT,
                was_published=record.was_published,
            )
        )
