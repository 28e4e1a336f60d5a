"""Bring stored files in line with the canonical naming scheme and visibility."""

from __future__ import annotations

from dataclasses import dataclass

from packages.asset_shared.errors import exception_to_error
from packages.asset_shared.logging import fields, get_logger, log_context
from services.state.asset_store.domain import FileRecord
from services.state.asset_store.interfaces import FileRecordSource
from services.state.asset_store.service import AssetStore

_LOGGER = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 100


@dataclass
class MigrationReport:
    """Counters accumulated over one migration run."""

    processed: int = 0
    normalised: int = 0
    missing: int = 0
    failed: int = 0


class FileMigrationHelper:
    """Walk file records in chunks and normalise each stored original.

    Each record is moved to the default FileID of its store, then published
    or protected to match whether the record was ever published. A record
    that fails is logged and counted so the run carries on.
    """

    def __init__(
        self,
        *,
        store: AssetStore,
        records: FileRecordSource,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._store = store
        self._records = records
        self._chunk_size = chunk_size

    def run(self) -> MigrationReport:
        report = MigrationReport()
        for record in self._records.iter_records(chunk_size=self._chunk_size):
            report.processed += 1
            with log_context({fields.FILENAME: record.filename, fields.HASH: record.hash}):
                try:
                    self._migrate(record, report)
                except Exception as exc:
                    report.failed += 1
                    error = exception_to_error(exc)
                    _LOGGER.warning(
                        "File migration failed: %s: %s", error.code, error.message
                    )
        _LOGGER.info(
            "File migration finished: processed=%d normalised=%d missing=%d failed=%d",
            report.processed,
            report.normalised,
            report.missing,
            report.failed,
        )
        return report

    def _migrate(self, record: FileRecord, report: MigrationReport) -> None:
        if not self._store.exists(filename=record.filename, hash=record.hash):
            report.missing += 1
            _LOGGER.warning("File record has no stored content")
            return

        result = self._store.normalise(filename=record.filename, hash=record.hash)
        if result is None:
            report.missing += 1
            return
        for origin, target in result.operations.items():
            _LOGGER.info("Moved %s to %s", origin, target)
        if result.operations or result.tuple.filename != record.filename:
            report.normalised += 1
        self._records.record_normalised(
            record, filename=result.tuple.filename, hash=result.tuple.hash
        )

        if record.was_published:
            self._store.publish(filename=result.tuple.filename, hash=result.tuple.hash)
        else:
            self._store.protect(filename=result.tuple.filename, hash=result.tuple.hash)
