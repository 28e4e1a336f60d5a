"""Filesystem-backed Asset Store implementation.

Two backing filesystems hold the bytes: ``public`` content is served as-is,
``protected`` content only to sessions holding a grant. Presence in one of
them is the visibility of a tuple; nothing else is persisted.
"""

from __future__ import annotations

import posixpath
import shutil
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from http import HTTPStatus
from io import BytesIO
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, BinaryIO

from packages.asset_shared.logging import (
    fields,
    get_logger,
    log_context,
    public_api_instrumented,
)
from resources.substrates.filesystem.substrate import (
    AssetFilesystem,
    ProtectedUrlCapable,
    PublicUrlCapable,
)
from resources.substrates.filesystem.validation import normalize_relative_path
from resources.substrates.redis.substrate import RedisSubstrate
from services.state.asset_store.component import SERVICE_COMPONENT_ID
from services.state.asset_store.config import AssetStoreSettings, ResolutionSettings
from services.state.asset_store.domain import (
    AssetMetadata,
    AssetResponse,
    AssetTuple,
    ConflictPolicy,
    HealthStatus,
    NormaliseResult,
    ParsedFileID,
    Visibility,
    WriteOptions,
)
from services.state.asset_store.errors import (
    AssetExistsError,
    AssetStoreConfigurationError,
    InvalidAssetInputError,
    NamingConflictExhaustedError,
)
from services.state.asset_store.filename_parsing import (
    FileIDHelperResolutionStrategy,
    build_resolution_strategy,
)
from services.state.asset_store.grants import current_session
from services.state.asset_store.hashing import FileHashingService
from services.state.asset_store.interfaces import GrantStore, VersionedRecordStore
from services.state.asset_store.naming import AssetNameGenerator
from services.state.asset_store.service import AssetStore

_LOGGER = get_logger(__name__)

SWAP_DIRECTORY = ".swap"
_TEMP_PREFIX = "assetbuffer-"
_STREAM_CHUNK_BYTES = 64 * 1024

# Returned by store callbacks to keep searching the remaining stores.
_CONTINUE: Any = object()

_TUPLE_FIELDS = (fields.FILENAME, fields.HASH, fields.VARIANT, fields.FILE_ID)


@dataclass(frozen=True)
class _StoreSet:
    """One backing filesystem with the strategy that names files in it."""

    fs: AssetFilesystem
    strategy: FileIDHelperResolutionStrategy
    visibility: Visibility


_StoreCallback = Callable[[ParsedFileID, _StoreSet], Any]


class FilesystemAssetStore(AssetStore):
    """Asset store over a public and a protected ``AssetFilesystem``."""

    def __init__(
        self,
        *,
        settings: AssetStoreSettings,
        public: AssetFilesystem,
        protected: AssetFilesystem,
        hasher: FileHashingService,
        grants: GrantStore,
        records: VersionedRecordStore | None = None,
        redis: RedisSubstrate | None = None,
    ) -> None:
        if not isinstance(public, PublicUrlCapable):
            raise AssetStoreConfigurationError(
                f"public filesystem '{public.name}' cannot build public URLs"
            )
        if not isinstance(protected, ProtectedUrlCapable):
            raise AssetStoreConfigurationError(
                f"protected filesystem '{protected.name}' cannot build protected URLs"
            )
        self._settings = settings
        self._hasher = hasher
        self._grants = grants
        self._redis = redis
        self._public = _StoreSet(
            fs=public,
            strategy=self._strategy(settings.public_resolution, records),
            visibility=Visibility.PUBLIC,
        )
        self._protected = _StoreSet(
            fs=protected,
            strategy=self._strategy(settings.protected_resolution, records),
            visibility=Visibility.PROTECTED,
        )

    def _strategy(
        self, resolution: ResolutionSettings, records: VersionedRecordStore | None
    ) -> FileIDHelperResolutionStrategy:
        return build_resolution_strategy(
            default_helper=resolution.default_helper,
            resolution_helpers=resolution.resolution_helpers,
            hasher=self._hasher,
            records=records,
            versioned_stage=self._settings.versioned_stage,
            legacy_fail_newer_variant=self._settings.legacy_fail_newer_variant,
            ss3_image_methods=self._settings.ss3_image_methods,
        )

    @property
    def public_strategy(self) -> FileIDHelperResolutionStrategy:
        """Strategy naming files in the public store."""
        return self._public.strategy

    @property
    def protected_strategy(self) -> FileIDHelperResolutionStrategy:
        """Strategy naming files in the protected store."""
        return self._protected.strategy

    @property
    def hasher(self) -> FileHashingService:
        """Hashing service shared by both stores."""
        return self._hasher

    @public_api_instrumented(logger=_LOGGER, component_id=SERVICE_COMPONENT_ID)
    def get_capabilities(self) -> dict[str, tuple[str, ...]]:
        """Return supported visibility and conflict policy values."""
        return {
            "visibility": tuple(v.value for v in Visibility),
            "conflict": tuple(c.value for c in ConflictPolicy),
        }

    @public_api_instrumented(logger=_LOGGER, component_id=SERVICE_COMPONENT_ID)
    def health(self) -> HealthStatus:
        """Return readiness of both backing filesystems and Redis when used."""
        public = self._public.fs.health()
        protected = self._protected.fs.health()
        details: dict[str, Any] = {"public": public, "protected": protected}
        redis_ready: bool | None = None
        if self._redis is not None:
            redis = self._redis.health()
            details["redis"] = redis
            redis_ready = redis.ready

        ready = all(status.ready for status in details.values())
        return HealthStatus(
            service_ready=ready,
            public_ready=public.ready,
            protected_ready=protected.ready,
            redis_ready=redis_ready,
            detail="ok"
            if ready
            else "; ".join(f"{name}={status.detail}" for name, status in details.items()),
        )

    # Reads

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def get_visibility(self, *, filename: str, hash: str) -> Visibility | None:
        """Return which store holds the tuple, or ``None`` when missing."""
        return self._apply_to_file(
            lambda parsed, store: store.visibility,
            ParsedFileID(filename=filename, hash=hash),
        )

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def get_as_stream(
        self, *, filename: str, hash: str, variant: str = ""
    ) -> BinaryIO | None:
        """Open stored content for reading; the caller closes the stream."""
        return self._apply_to_file(
            lambda parsed, store: store.fs.read_stream(parsed.file_id),
            ParsedFileID(filename=filename, hash=hash, variant=variant),
        )

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def get_as_bytes(
        self, *, filename: str, hash: str, variant: str = ""
    ) -> bytes | None:
        """Return stored content in full."""
        return self._apply_to_file(
            lambda parsed, store: store.fs.read(parsed.file_id),
            ParsedFileID(filename=filename, hash=hash, variant=variant),
        )

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def get_as_url(
        self, *, filename: str, hash: str, variant: str = "", grant: bool = True
    ) -> str:
        """Return the public URL, or a protected URL after granting access."""
        tuple_ = ParsedFileID(filename=filename, hash=hash, variant=variant)

        found = self._public.strategy.search_for_tuple(tuple_, self._public.fs)
        if found is not None:
            return self._public_url(found.file_id)

        found = self._protected.strategy.search_for_tuple(tuple_, self._protected.fs)
        if found is not None:
            if grant:
                self.grant(filename=found.filename, hash=found.hash)
            return self._protected_url(found.file_id)

        try:
            missing_id = self._public.strategy.build_file_id(tuple_)
        except ValueError as exc:
            raise InvalidAssetInputError(
                str(exc), metadata={"filename": filename, "hash": hash}
            ) from exc
        return self._public_url(missing_id)

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def get_metadata(
        self, *, filename: str, hash: str, variant: str = ""
    ) -> AssetMetadata | None:
        """Return size, MIME type and modification stamp of stored content."""

        def metadata(parsed: ParsedFileID, store: _StoreSet) -> AssetMetadata:
            return AssetMetadata(
                file_id=parsed.file_id,
                visibility=store.visibility,
                size=store.fs.file_size(parsed.file_id),
                mime_type=store.fs.mime_type(parsed.file_id),
                last_modified=store.fs.last_modified(parsed.file_id),
            )

        return self._apply_to_file(
            metadata, ParsedFileID(filename=filename, hash=hash, variant=variant)
        )

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def get_mime_type(
        self, *, filename: str, hash: str, variant: str = ""
    ) -> str | None:
        """Return the MIME type guessed for stored content."""
        return self._apply_to_file(
            lambda parsed, store: store.fs.mime_type(parsed.file_id),
            ParsedFileID(filename=filename, hash=hash, variant=variant),
        )

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def exists(self, *, filename: str, hash: str, variant: str = "") -> bool:
        """Return whether the tuple is stored with content matching ``hash``."""
        if not filename or not hash:
            return False

        def matches(parsed: ParsedFileID, store: _StoreSet) -> Any:
            original = store.strategy.strip_variant(parsed)
            if original is None or not original.file_id:
                return _CONTINUE
            if not store.fs.has(original.file_id):
                return _CONTINUE
            actual = self._hasher.compute_from_file(original.file_id, store.fs)
            return True if self._hasher.compare(actual, hash) else _CONTINUE

        found = self._apply_to_file(
            matches, ParsedFileID(filename=filename, hash=hash, variant=variant)
        )
        return found is True

    # Writes

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def set_from_local_file(
        self,
        *,
        path: str,
        filename: str = "",
        hash: str = "",
        variant: str = "",
        options: WriteOptions | None = None,
    ) -> AssetTuple:
        """Store the content of a local file, named after it by default."""
        source = Path(path)
        if not source.is_file():
            raise InvalidAssetInputError(f"{path} does not exist", metadata={"path": path})
        with source.open("rb") as stream:
            return self.set_from_stream(
                stream=stream,
                filename=filename or source.name,
                hash=hash,
                variant=variant,
                options=options,
            )

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def set_from_bytes(
        self,
        *,
        data: bytes | str,
        filename: str,
        hash: str = "",
        variant: str = "",
        options: WriteOptions | None = None,
    ) -> AssetTuple:
        """Store in-memory content; text is encoded as UTF-8."""
        content = data.encode("utf-8") if isinstance(data, str) else data
        with BytesIO(content) as stream:
            return self.set_from_stream(
                stream=stream,
                filename=filename,
                hash=hash,
                variant=variant,
                options=options,
            )

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def set_from_stream(
        self,
        *,
        stream: BinaryIO,
        filename: str,
        hash: str = "",
        variant: str = "",
        options: WriteOptions | None = None,
    ) -> AssetTuple:
        """Store streamed content, hashing originals from the content itself.

        Non-seekable streams are buffered to a temporary local file first,
        since hashing and writing both need to read from the start.
        """
        if not filename:
            raise InvalidAssetInputError("filename can not be empty")
        if not _is_seekable(stream):
            return self._set_from_buffered_stream(
                stream=stream, filename=filename, hash=hash, variant=variant, options=options
            )

        if not hash and not variant:
            hash = self._hasher.compute_from_stream(stream)

        def write(fs: AssetFilesystem, file_id: str) -> None:
            # Rewriting identical content over itself is skipped.
            if fs.file_exists(file_id):
                incoming = self._hasher.compute_from_stream(stream)
                if incoming == self._hasher.compute_from_file(file_id, fs):
                    return
            stream.seek(0)
            fs.write_stream(file_id, stream)
            if not variant:
                self._hasher.set(file_id, fs, hash)

        return self._write_with_callback(
            write, filename=filename, hash=hash, variant=variant, options=options
        )

    def _set_from_buffered_stream(
        self,
        *,
        stream: BinaryIO,
        filename: str,
        hash: str,
        variant: str,
        options: WriteOptions | None,
    ) -> AssetTuple:
        tmp_path: Path | None = None
        try:
            with NamedTemporaryFile(mode="wb", prefix=_TEMP_PREFIX, delete=False) as buffer:
                tmp_path = Path(buffer.name)
                shutil.copyfileobj(stream, buffer, _STREAM_CHUNK_BYTES)
            return self.set_from_local_file(
                path=str(tmp_path),
                filename=filename,
                hash=hash,
                variant=variant,
                options=options,
            )
        finally:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)

    def _write_with_callback(
        self,
        callback: Callable[[AssetFilesystem, str], None],
        *,
        filename: str,
        hash: str,
        variant: str,
        options: WriteOptions | None,
    ) -> AssetTuple:
        options = options or WriteOptions()
        conflict = options.conflict or self._settings.default_conflict

        if variant and conflict is ConflictPolicy.RENAME:
            raise InvalidAssetInputError("rename cannot be used when writing variants")
        if not filename:
            raise InvalidAssetInputError("filename is missing")
        if not hash:
            raise InvalidAssetInputError("file hash is missing")

        visibility = options.visibility or self._settings.default_visibility
        # Stored FileIDs are always cleaned, so the returned tuple is too.
        filename = self._store_for(visibility).strategy.clean_filename(filename)
        parsed = ParsedFileID(filename=filename, hash=hash, variant=variant)

        def beside_original(original: ParsedFileID, store: _StoreSet) -> Any:
            target = store.strategy.generate_variant_file_id(parsed, store.fs)
            return (target, store) if target is not None else _CONTINUE

        located = self._apply_to_file(beside_original, parsed.with_variant(""))
        if located is not None:
            parsed, store = located
            target_file_id = parsed.file_id
        else:
            store = self._store_for(visibility)
            target_file_id = store.strategy.build_file_id(parsed)

        if conflict is ConflictPolicy.OVERWRITE or not store.fs.has(target_file_id):
            parsed = parsed.with_file_id(target_file_id)
        elif conflict is ConflictPolicy.EXCEPTION:
            raise AssetExistsError(target_file_id)
        elif conflict is ConflictPolicy.RENAME:
            parsed = self._free_candidate(target_file_id, store).with_hash(hash)
        else:
            if not variant:
                # Defer to the stored original and report its real hash.
                existing = self._hasher.compute_from_file(target_file_id, store.fs)
                parsed = parsed.with_hash(existing)
            return parsed.as_tuple()

        with log_context(
            {fields.FILE_ID: parsed.file_id, fields.VISIBILITY: store.visibility.value}
        ):
            callback(store.fs, parsed.file_id)
            _LOGGER.debug("Asset content written")
        return parsed.as_tuple()

    def _free_candidate(self, file_id: str, store: _StoreSet) -> ParsedFileID:
        generator = AssetNameGenerator(file_id, max_tries=self._settings.rename_max_tries)
        for candidate in generator:
            if store.fs.has(candidate):
                continue
            parsed = store.strategy.parse_file_id(candidate)
            if parsed is not None:
                return parsed
        raise NamingConflictExhaustedError(file_id, generator.max_tries)

    # Lifecycle

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def delete(self, *, filename: str, hash: str) -> bool:
        """Delete the original and its variants from both stores."""
        deleted = False

        def delete_from(parsed: ParsedFileID, store: _StoreSet) -> Any:
            nonlocal deleted
            deleted = self._delete_from_store(parsed, store) or deleted
            return _CONTINUE

        self._apply_to_file(delete_from, ParsedFileID(filename=filename, hash=hash))
        return deleted

    def _delete_from_store(self, parsed: ParsedFileID, store: _StoreSet) -> bool:
        deleted = False
        for found in store.strategy.find_variants(parsed, store.fs):
            store.fs.delete(found.file_id)
            self._hasher.invalidate(found.file_id, store.fs)
            deleted = True
        self._truncate_directory(posixpath.dirname(parsed.file_id), store.fs)
        return deleted

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def rename(self, *, filename: str, hash: str, new_name: str) -> str | None:
        """Move the original and its variants to ``new_name``; return the clean name."""
        if not new_name:
            raise InvalidAssetInputError("cannot rename to an empty filename")
        if new_name == filename:
            return filename

        def rename_in(parsed: ParsedFileID, store: _StoreSet) -> str | None:
            destination = parsed.with_filename(new_name)
            for found in store.strategy.find_variants(parsed, store.fs):
                origin = found.file_id
                target = store.strategy.build_file_id(destination.with_variant(found.variant))
                if origin == target:
                    continue
                if store.fs.has(target):
                    store.fs.delete(origin)
                    self._hasher.invalidate(origin, store.fs)
                else:
                    store.fs.move(origin, target)
                    self._hasher.move(origin, store.fs, target)
                self._truncate_directory(posixpath.dirname(origin), store.fs)

            clean = store.strategy.parse_file_id(store.strategy.build_file_id(destination))
            return clean.filename if clean is not None else None

        return self._apply_to_file(rename_in, ParsedFileID(filename=filename, hash=hash))

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def copy(self, *, filename: str, hash: str, new_name: str) -> str | None:
        """Duplicate the original and its variants under ``new_name``."""
        if not new_name:
            raise InvalidAssetInputError("cannot copy to an empty filename")
        if new_name == filename:
            return filename

        def copy_in(parsed: ParsedFileID, store: _StoreSet) -> str:
            clean_name = store.strategy.clean_filename(new_name)
            for found in store.strategy.find_variants(parsed, store.fs):
                origin = found.file_id
                target = store.strategy.build_file_id(found.with_filename(clean_name))
                if origin == target or store.fs.has(target):
                    continue
                store.fs.copy(origin, target)
                cached = self._hasher.get(origin, store.fs)
                if cached is not None:
                    self._hasher.set(target, store.fs, cached)
            return clean_name

        return self._apply_to_file(copy_in, ParsedFileID(filename=filename, hash=hash))

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def publish(self, *, filename: str, hash: str) -> None:
        """Move a protected file and its variants into the public store."""
        if self.get_visibility(filename=filename, hash=hash) is Visibility.PUBLIC:
            return
        self._move_between_stores(
            ParsedFileID(filename=filename, hash=hash), self._protected, self._public
        )

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def protect(self, *, filename: str, hash: str) -> None:
        """Move a public file and its variants into the protected store."""
        if self.get_visibility(filename=filename, hash=hash) is Visibility.PROTECTED:
            return
        self._move_between_stores(
            ParsedFileID(filename=filename, hash=hash), self._public, self._protected
        )

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def swap_publish(self, *, filename: str, hash: str) -> None:
        """Publish while stashing any public file the move would overwrite.

        Conflicting public files travel to the protected store under
        ``.swap/`` first and take the published file's old place afterwards.
        """
        if self.get_visibility(filename=filename, hash=hash) is Visibility.PUBLIC:
            return
        parsed = ParsedFileID(filename=filename, hash=hash)
        origin, destination = self._protected, self._public

        stashed: list[str] = []
        conflict_id = destination.strategy.build_file_id(parsed)
        if destination.fs.has(conflict_id):
            conflicting = destination.strategy.resolve_file_id(conflict_id, destination.fs)
            if conflicting is not None:
                for found in destination.strategy.find_variants(conflicting, destination.fs):
                    origin_id = origin.strategy.build_file_id(found)
                    swap_id = f"{SWAP_DIRECTORY}/{origin_id}"
                    _stream_copy(destination.fs, found.file_id, origin.fs, swap_id)
                    destination.fs.delete(found.file_id)
                    self._hasher.move(found.file_id, destination.fs, swap_id, origin.fs)
                    self._truncate_directory(posixpath.dirname(found.file_id), destination.fs)
                    stashed.append(origin_id)

        self._move_between_stores(parsed, origin, destination)

        for origin_id in stashed:
            swap_id = f"{SWAP_DIRECTORY}/{origin_id}"
            origin.fs.move(swap_id, origin_id)
            self._hasher.move(swap_id, origin.fs, origin_id)
        origin.fs.delete_directory(SWAP_DIRECTORY)

    def _move_between_stores(
        self, parsed: ParsedFileID, origin: _StoreSet, destination: _StoreSet
    ) -> None:
        for found in origin.strategy.find_variants(parsed, origin.fs):
            target = destination.strategy.build_file_id(found)
            _stream_copy(origin.fs, found.file_id, destination.fs, target)
            origin.fs.delete(found.file_id)
            self._hasher.move(found.file_id, origin.fs, target, destination.fs)
            self._truncate_directory(posixpath.dirname(found.file_id), origin.fs)
            with log_context(
                {
                    fields.FILE_ID: target,
                    fields.VISIBILITY: destination.visibility.value,
                }
            ):
                _LOGGER.debug("Asset moved between stores")

    def _truncate_directory(self, dirname: str, fs: AssetFilesystem) -> None:
        """Remove ``dirname`` and its ancestors while they are empty."""
        while dirname and dirname.lstrip(".") and not self._settings.keep_empty_dirs:
            if next(iter(fs.list_contents(dirname)), None) is not None:
                return
            fs.delete_directory(dirname)
            dirname = posixpath.dirname(dirname)

    # Grants

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def grant(self, *, filename: str, hash: str) -> None:
        """Let the bound session view one protected original and its variants."""
        session_id = current_session()
        if session_id is None:
            _LOGGER.warning("Ignoring asset grant without a bound session")
            return
        file_id = self._file_id_for_grant(filename, hash)
        self._grants.set(session_id, self._grants.get(session_id) | {file_id})

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def revoke(self, *, filename: str, hash: str) -> None:
        """Withdraw a grant from the bound session."""
        session_id = current_session()
        if session_id is None:
            return
        file_id = self._file_id_for_grant(filename, hash)
        remaining = self._grants.get(session_id) - {file_id}
        if remaining:
            self._grants.set(session_id, remaining)
        else:
            self._grants.clear(session_id)

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def can_view(self, *, filename: str, hash: str) -> bool:
        """Return whether the bound session may read the tuple."""

        def visible(parsed: ParsedFileID, store: _StoreSet) -> bool:
            if store.visibility is Visibility.PROTECTED:
                return self._is_granted(parsed)
            return True

        return (
            self._apply_to_file(visible, ParsedFileID(filename=filename, hash=hash))
            is True
        )

    def _file_id_for_grant(self, filename: str, hash: str) -> str:
        parsed = ParsedFileID(filename=filename, hash=hash)
        found = self._apply_to_file(lambda p, store: p.file_id, parsed)
        return found or self._protected.strategy.build_file_id(parsed)

    def _is_granted(self, value: str | ParsedFileID) -> bool:
        session_id = current_session()
        if session_id is None:
            return False
        # Grants are held on originals only.
        original = self._protected.strategy.strip_variant(value)
        if original is None or not original.file_id:
            return False
        return original.file_id in self._grants.get(session_id)

    # HTTP

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=(fields.FILE_ID,)
    )
    def get_response_for(self, *, file_id: str) -> AssetResponse:
        """Map one requested FileID to a streamed file, redirect or error."""
        try:
            file_id = normalize_relative_path(file_id)
        except ValueError:
            return self._missing_response()

        public, protected = self._public, self._protected
        if public.fs.has(file_id):
            return self._file_response(public.fs, file_id)

        if protected.fs.has(file_id) and self._is_granted(file_id):
            return self._file_response(protected.fs, file_id)

        redirect = public.strategy.soft_resolve_file_id(file_id, public.fs)
        if redirect is not None:
            permanent = public.strategy.build_file_id(redirect)
            code = (
                self._settings.permanent_redirect_response_code
                if redirect.file_id == permanent
                else self._settings.redirect_response_code
            )
            return AssetResponse(
                status_code=code,
                headers={"Location": self._public_url(redirect.file_id)},
            )

        if protected.fs.has(file_id):
            return self._denied_response()
        return self._missing_response()

    def _file_response(self, fs: AssetFilesystem, file_id: str) -> AssetResponse:
        if fs.directory_exists(file_id):
            return self._denied_response()
        headers = {
            "Content-Type": fs.mime_type(file_id),
            "Content-Length": str(fs.file_size(file_id)),
            **self._settings.file_response_headers,
        }
        return AssetResponse(
            status_code=200, headers=headers, body=_iter_file(fs, file_id)
        )

    def _denied_response(self) -> AssetResponse:
        return self._error_response(self._settings.denied_response_code)

    def _missing_response(self) -> AssetResponse:
        return self._error_response(self._settings.missing_response_code)

    def _error_response(self, code: int) -> AssetResponse:
        body = HTTPStatus(code).phrase.encode("utf-8") if self._settings.debug else b""
        return AssetResponse(status_code=code, body=body)

    # Normalisation

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=_TUPLE_FIELDS
    )
    def normalise(self, *, filename: str, hash: str) -> NormaliseResult | None:
        """Move a tuple and its variants to the default scheme's FileID."""
        return self._apply_to_file(
            self._normalise_to_default_path, ParsedFileID(filename=filename, hash=hash)
        )

    @public_api_instrumented(
        logger=_LOGGER, component_id=SERVICE_COMPONENT_ID, id_fields=(fields.FILE_ID,)
    )
    def normalise_path(self, *, file_id: str) -> NormaliseResult | None:
        """Normalise whatever tuple a raw FileID resolves to."""
        return self._apply_to_file_id(self._normalise_to_default_path, file_id)

    def _normalise_to_default_path(
        self, parsed: ParsedFileID, store: _StoreSet
    ) -> NormaliseResult:
        strategy, fs = store.strategy, store.fs
        variants = list(strategy.find_variants(parsed, fs))
        clean_name = strategy.clean_filename(parsed.filename)
        if clean_name != parsed.filename:
            clean_id = strategy.build_file_id(
                parsed.with_variant("").with_filename(clean_name)
            )
            # Only a different file already at the cleaned name is a clash.
            if fs.has(clean_id) and clean_id not in {f.file_id for f in variants}:
                clean_name = self._free_candidate(clean_id, store).filename

        operations: dict[str, str] = {}
        for found in variants:
            origin = found.file_id
            target = strategy.build_file_id(found.with_filename(clean_name))
            if target == origin:
                continue
            if fs.has(target):
                fs.delete(origin)
                self._hasher.invalidate(origin, fs)
            else:
                fs.move(origin, target)
                self._hasher.move(origin, fs, target)
                operations[origin] = target
            self._truncate_directory(posixpath.dirname(origin), fs)

        return NormaliseResult(
            tuple=parsed.with_filename(clean_name).as_tuple(), operations=operations
        )

    # Store lookup

    def _store_for(self, visibility: Visibility) -> _StoreSet:
        return self._public if visibility is Visibility.PUBLIC else self._protected

    def _apply_to_file(self, callback: _StoreCallback, parsed: ParsedFileID) -> Any:
        """Run ``callback`` on the first store holding ``parsed``.

        Exact FileID matches in public then protected are tried first, then a
        strategy search for alternative naming schemes. A callback returning
        ``_CONTINUE`` lets the search carry on.
        """
        for store in (self._public, self._protected):
            try:
                file_id = store.strategy.build_file_id(parsed)
            except ValueError:
                continue
            if not store.fs.has(file_id):
                continue
            if parsed.hash and not self._original_matches(parsed, store):
                continue
            result = callback(parsed.with_file_id(file_id), store)
            if result is not _CONTINUE:
                return result

        for store in (self._public, self._protected):
            found = store.strategy.search_for_tuple(parsed, store.fs, strict=True)
            if found is None:
                continue
            result = callback(found, store)
            if result is not _CONTINUE:
                return result
        return None

    def _original_matches(self, parsed: ParsedFileID, store: _StoreSet) -> bool:
        original = store.strategy.strip_variant(parsed)
        if original is None:
            return False
        main_id = store.strategy.build_file_id(original)
        if not store.fs.file_exists(main_id):
            return False
        actual = self._hasher.compute_from_file(main_id, store.fs)
        return self._hasher.compare(actual, parsed.hash)

    def _apply_to_file_id(self, callback: _StoreCallback, file_id: str) -> Any:
        """Run ``callback`` on the first store that can resolve a raw FileID."""
        for store in (self._public, self._protected):
            if not store.fs.has(file_id):
                continue
            parsed = store.strategy.resolve_file_id(file_id, store.fs)
            if parsed is None:
                continue
            result = callback(parsed, store)
            if result is not _CONTINUE:
                return result

        for store in (self._public, self._protected):
            parsed = store.strategy.resolve_file_id(file_id, store.fs)
            if parsed is None:
                continue
            result = callback(parsed, store)
            if result is not _CONTINUE:
                return result
        return None

    def _public_url(self, file_id: str) -> str:
        fs = self._public.fs
        assert isinstance(fs, PublicUrlCapable)
        return fs.public_url(file_id)

    def _protected_url(self, file_id: str) -> str:
        fs = self._protected.fs
        assert isinstance(fs, ProtectedUrlCapable)
        return fs.protected_url(file_id)


def _is_seekable(stream: BinaryIO) -> bool:
    try:
        return stream.seekable()
    except (AttributeError, ValueError):
        return False


def _stream_copy(
    origin: AssetFilesystem, origin_id: str, destination: AssetFilesystem, target_id: str
) -> None:
    with origin.read_stream(origin_id) as stream:
        destination.write_stream(target_id, stream)


def _iter_file(fs: AssetFilesystem, file_id: str) -> Iterator[bytes]:
    with fs.read_stream(file_id) as stream:
        while chunk := stream.read(_STREAM_CHUNK_BYTES):
            yield chunk
