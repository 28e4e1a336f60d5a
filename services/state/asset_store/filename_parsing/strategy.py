"""Resolve FileIDs across naming schemes against one backing filesystem."""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from packages.asset_shared.logging import fields, get_logger, log_context
from resources.substrates.filesystem.substrate import AssetFilesystem
from services.state.asset_store.domain import (
    FileRecord,
    ParsedFileID,
    Stage,
    TupleLike,
    to_parsed_file_id,
)
from services.state.asset_store.filename_parsing.base import FileIDHelper
from services.state.asset_store.hashing import FileHashingService
from services.state.asset_store.interfaces import VersionedRecordStore

_LOGGER = get_logger(__name__)


class FileIDHelperResolutionStrategy:
    """Try an ordered list of helpers to parse, locate and verify FileIDs.

    ``default_helper`` builds every new FileID. ``resolution_helpers`` are
    tried in order when an incoming FileID has to be understood. The record
    store, when present, supplies current hashes at ``versioned_stage``.
    """

    def __init__(
        self,
        *,
        default_helper: FileIDHelper,
        resolution_helpers: Sequence[FileIDHelper],
        hasher: FileHashingService,
        records: VersionedRecordStore | None = None,
        versioned_stage: Stage = Stage.DRAFT,
    ) -> None:
        self._default_helper = default_helper
        self._resolution_helpers = tuple(resolution_helpers)
        self._hasher = hasher
        self._records = records
        self._versioned_stage = versioned_stage

    @property
    def default_helper(self) -> FileIDHelper:
        return self._default_helper

    @property
    def resolution_helpers(self) -> tuple[FileIDHelper, ...]:
        return self._resolution_helpers

    @property
    def versioned_stage(self) -> Stage:
        return self._versioned_stage

    def build_file_id(self, value: TupleLike) -> str:
        """Build the canonical FileID of one tuple with the default helper."""
        return self._default_helper.build_from(value)

    def clean_filename(self, filename: str) -> str:
        return self._default_helper.clean_filename(filename)

    def parse_file_id(self, file_id: str) -> ParsedFileID | None:
        """Parse with the first resolution helper that understands ``file_id``."""
        for helper in self._resolution_helpers:
            parsed = helper.parse_file_id(file_id)
            if parsed is not None:
                return parsed
        return None

    def resolve_file_id(
        self, file_id: str, filesystem: AssetFilesystem
    ) -> ParsedFileID | None:
        """Locate the stored file an incoming FileID refers to.

        The first helper able to parse ``file_id`` claims it. When the claimed
        tuple cannot be found under any scheme, later helpers are not tried.
        """
        parsed = self.parse_file_id(file_id)
        if parsed is None:
            return None
        return self.search_for_tuple(parsed, filesystem, strict=True)

    def soft_resolve_file_id(
        self, file_id: str, filesystem: AssetFilesystem
    ) -> ParsedFileID | None:
        """Resolve a possibly stale FileID to the latest version of its file."""
        if self._records is None:
            return None
        parsed = self.parse_file_id(file_id)
        if parsed is None:
            return None
        candidate = (
            self._resolve_with_hash(parsed)
            if parsed.hash
            else self._resolve_hashless(parsed)
        )
        if candidate is None:
            return None
        return self.search_for_tuple(candidate, filesystem, strict=False)

    def _resolve_with_hash(self, parsed: ParsedFileID) -> ParsedFileID | None:
        assert self._records is not None
        record = self._lookup(parsed.filename)
        if record is None:
            return None
        if record.hash.startswith(parsed.hash):
            return parsed

        # Only redirect to the current hash when the requested one existed.
        published_only = self._versioned_stage is Stage.LIVE
        if self._records.has_version(
            filename=record.filename,
            hash_prefix=parsed.hash,
            exclude_hash=record.hash,
            published_only=published_only,
        ):
            return ParsedFileID(
                filename=record.filename, hash=record.hash, variant=parsed.variant
            )
        return None

    def _resolve_hashless(self, parsed: ParsedFileID) -> ParsedFileID | None:
        record = self._lookup(parsed.filename)
        if record is None:
            return None
        return ParsedFileID(
            filename=parsed.filename, hash=record.hash, variant=parsed.variant
        )

    def search_for_tuple(
        self,
        value: TupleLike,
        filesystem: AssetFilesystem,
        *,
        strict: bool = True,
    ) -> ParsedFileID | None:
        """Find where one tuple is physically stored.

        With ``strict`` and a known hash, a path match whose content hash
        disagrees with the tuple is treated as not found.
        """
        parsed = to_parsed_file_id(value)
        enforce_hash = strict and bool(parsed.hash)

        if not parsed.hash:
            record = self._lookup(parsed.filename)
            if record is not None and record.hash:
                parsed = parsed.with_hash(record.hash)

        for helper in self._search_order():
            try:
                file_id = helper.build_from(parsed, clean=False)
            except ValueError:
                continue
            if not filesystem.has(file_id):
                continue
            if enforce_hash and not self._validate_hash(helper, parsed, filesystem):
                with log_context({fields.FILE_ID: file_id, fields.HASH: parsed.hash}):
                    _LOGGER.debug("Skipping FileID with mismatched content hash")
                continue
            if not parsed.hash:
                full_hash = self._find_hash_of(helper, parsed, filesystem)
                if full_hash:
                    parsed = parsed.with_hash(full_hash)
            return parsed.with_file_id(file_id)
        return None

    def generate_variant_file_id(
        self, value: TupleLike, filesystem: AssetFilesystem
    ) -> ParsedFileID | None:
        """Return the FileID a variant should take beside its stored original."""
        parsed = to_parsed_file_id(value)
        if not parsed.variant:
            return self.search_for_tuple(parsed, filesystem)
        for helper in self._resolution_helpers:
            if self._validate_hash(helper, parsed, filesystem):
                return parsed.with_file_id(helper.build_from(parsed))
        return None

    def find_variants(
        self, value: TupleLike, filesystem: AssetFilesystem
    ) -> Iterator[ParsedFileID]:
        """Lazily yield the stored original and every variant of one tuple.

        The iterator is single-pass and follows filesystem listing order.
        """
        parsed = to_parsed_file_id(value)
        # Tuples may still carry the name as the caller first wrote it.
        parsed = parsed.with_filename(self.clean_filename(parsed.filename))
        helpers = list(self._resolution_helpers)
        if self._default_helper not in helpers:
            helpers.insert(0, self._default_helper)

        resolvable: list[FileIDHelper] = []
        for helper in helpers:
            try:
                file_id = helper.build_file_id(filename=parsed.filename, hash=parsed.hash)
            except ValueError:
                continue
            if filesystem.has(file_id) and self._validate_hash(helper, parsed, filesystem):
                resolvable.append(helper)

        for helper in resolvable:
            hash = parsed.hash or self._find_hash_of(helper, parsed, filesystem) or ""
            folder = helper.look_for_variant_in(parsed)
            candidates = [
                entry.path
                for entry in filesystem.list_contents(
                    folder, recursive=helper.look_for_variant_recursive
                )
                if entry.type != "dir"
            ]
            main = self._strip_with(parsed, helper)
            if (
                main is not None
                and main.file_id not in candidates
                and filesystem.has(main.file_id)
            ):
                candidates.append(main.file_id)

            for candidate in candidates:
                if helper.is_variant_of(candidate, parsed):
                    found = helper.parse_file_id(candidate)
                    if found is not None:
                        yield found.with_hash(hash)

    def strip_variant(self, value: str | ParsedFileID) -> ParsedFileID | None:
        """Return the variantless equivalent of a FileID or parsed FileID."""
        hash = ""
        if isinstance(value, ParsedFileID):
            if not value.file_id:
                return self._strip_with(value, self._default_helper)
            hash = value.hash
            file_id = value.file_id
        else:
            file_id = value

        for helper in self._resolution_helpers:
            parsed = helper.parse_file_id(file_id)
            if parsed is None:
                continue
            if hash and parsed.hash and not self._hasher.compare(parsed.hash, hash):
                continue
            if hash:
                parsed = parsed.with_hash(hash)
            return self._strip_with(parsed, helper)
        return None

    def _strip_with(
        self, parsed: ParsedFileID, helper: FileIDHelper
    ) -> ParsedFileID | None:
        stripped = parsed.with_variant("")
        try:
            return stripped.with_file_id(helper.build_from(stripped))
        except ValueError:
            return None

    def _search_order(self) -> list[FileIDHelper]:
        return [self._default_helper] + [
            helper
            for helper in self._resolution_helpers
            if helper is not self._default_helper
        ]

    def _validate_hash(
        self, helper: FileIDHelper, parsed: ParsedFileID, filesystem: AssetFilesystem
    ) -> bool:
        # Hashless tuples have nothing to verify.
        if not parsed.hash:
            return True
        actual = self._find_hash_of(helper, parsed, filesystem)
        if not actual:
            return False
        return self._hasher.compare(actual, parsed.hash)

    def _find_hash_of(
        self, helper: FileIDHelper, parsed: ParsedFileID, filesystem: AssetFilesystem
    ) -> str | None:
        try:
            file_id = helper.build_file_id(
                filename=parsed.filename, hash=parsed.hash, clean=False
            )
        except ValueError:
            return None
        if not filesystem.file_exists(file_id):
            return None
        return self._hasher.compute_from_file(file_id, filesystem)

    def _lookup(self, filename: str) -> FileRecord | None:
        if self._records is None:
            return None
        records = self._records
        return records.with_stage(
            self._versioned_stage, lambda: records.lookup_by_filename(filename)
        )


def build_resolution_strategy(
    *,
    default_helper: str,
    resolution_helpers: Sequence[str],
    hasher: FileHashingService,
    records: VersionedRecordStore | None = None,
    versioned_stage: Stage = Stage.DRAFT,
    legacy_fail_newer_variant: bool = True,
    ss3_image_methods: Sequence[str] | None = None,
) -> FileIDHelperResolutionStrategy:
    """Build a strategy from helper names, sharing one instance per name."""
    from services.state.asset_store.config import DEFAULT_SS3_METHODS
    from services.state.asset_store.filename_parsing.hash import HashFileIDHelper
    from services.state.asset_store.filename_parsing.legacy import LegacyFileIDHelper
    from services.state.asset_store.filename_parsing.natural import NaturalFileIDHelper

    instances: dict[str, FileIDHelper] = {}

    def helper_for(name: str) -> FileIDHelper:
        if name not in instances:
            if name == "hash":
                instances[name] = HashFileIDHelper()
            elif name == "natural":
                instances[name] = NaturalFileIDHelper()
            elif name == "legacy":
                instances[name] = LegacyFileIDHelper(
                    fail_newer_variant=legacy_fail_newer_variant,
                    image_methods=ss3_image_methods or DEFAULT_SS3_METHODS,
                )
            else:
                raise ValueError(f"unknown FileID helper: {name}")
        return instances[name]

    return FileIDHelperResolutionStrategy(
        default_helper=helper_for(default_helper),
        resolution_helpers=[helper_for(name) for name in resolution_helpers],
        hasher=hasher,
        records=records,
        versioned_stage=versioned_stage,
    )
