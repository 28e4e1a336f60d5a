"""Behavior tests for the filesystem-backed Asset Store."""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from io import BytesIO
from pathlib import Path

import pytest

from packages.asset_shared.config import load_settings
from resources.substrates.filesystem import (
    ProtectedAssetFilesystem,
    PublicAssetFilesystem,
)
from resources.substrates.redis.substrate import RedisHealthStatus
from services.state.asset_store.config import AssetStoreSettings, ResolutionSettings
from services.state.asset_store.domain import (
    AssetTuple,
    ConflictPolicy,
    FileRecord,
    Visibility,
    WriteOptions,
)
from services.state.asset_store.errors import (
    AssetExistsError,
    AssetStoreConfigurationError,
    InvalidAssetInputError,
    NamingConflictExhaustedError,
)
from services.state.asset_store.grants import InMemoryGrantStore, grant_session
from services.state.asset_store.hashing import FileHashingService
from services.state.asset_store.implementation import FilesystemAssetStore
from services.state.asset_store.records import InMemoryRecordStore
from services.state.asset_store.service import build_asset_store

MakeStore = Callable[..., FilesystemAssetStore]

HASH_A = hashlib.sha1(b"A").hexdigest()
HASH_B = hashlib.sha1(b"B").hexdigest()
SHORT_A = HASH_A[:10]
SHORT_B = HASH_B[:10]

NATURAL_PUBLIC = ResolutionSettings(
    default_helper="natural", resolution_helpers=("hash", "natural")
)


class _NonSeekableStream:
    """Readable stream that cannot rewind, like a socket or pipe."""

    def __init__(self, content: bytes) -> None:
        self._inner = BytesIO(content)

    def read(self, size: int = -1) -> bytes:
        return self._inner.read(size)

    def seekable(self) -> bool:
        return False


def _write_sam_with_variant(store: FilesystemAssetStore) -> AssetTuple:
    original = store.set_from_bytes(data=b"A", filename="sam.jpg")
    store.set_from_bytes(
        data=b"small", filename="sam.jpg", hash=original.hash, variant="resizeXYZ"
    )
    return original


def test_write_original_then_variant_in_hash_scheme(
    make_store: MakeStore,
    public_fs: PublicAssetFilesystem,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Originals are hashed from content; variants inherit the original hash."""
    store = make_store()

    original = store.set_from_bytes(data=b"A", filename="sam.jpg")

    def _no_hashing(stream: object) -> str:
        raise AssertionError("variant writes must not hash content")

    monkeypatch.setattr(store.hasher, "compute_from_stream", _no_hashing)
    variant = store.set_from_bytes(
        data=b"small", filename="sam.jpg", hash=original.hash, variant="resizeXYZ"
    )

    assert original == AssetTuple(filename="sam.jpg", hash=HASH_A)
    assert variant == AssetTuple(filename="sam.jpg", hash=HASH_A, variant="resizeXYZ")
    assert public_fs.read(f"{SHORT_A}/sam.jpg") == b"A"
    assert public_fs.read(f"{SHORT_A}/sam__resizeXYZ.jpg") == b"small"


def test_written_original_hash_is_prewarmed(
    make_store: MakeStore, public_fs: PublicAssetFilesystem
) -> None:
    store = make_store()

    store.set_from_bytes(data="A", filename="sam.jpg")

    assert store.hasher.get(f"{SHORT_A}/sam.jpg", public_fs) == HASH_A


def test_write_honours_visibility_option(
    make_store: MakeStore,
    public_fs: PublicAssetFilesystem,
    protected_fs: ProtectedAssetFilesystem,
) -> None:
    store = make_store()

    store.set_from_bytes(
        data=b"A",
        filename="sam.jpg",
        options=WriteOptions(visibility=Visibility.PROTECTED),
    )

    assert protected_fs.file_exists(f"{SHORT_A}/sam.jpg")
    assert not public_fs.has(f"{SHORT_A}/sam.jpg")
    assert store.get_visibility(filename="sam.jpg", hash=HASH_A) is Visibility.PROTECTED


def test_variant_follows_original_into_protected_store(
    make_store: MakeStore, protected_fs: ProtectedAssetFilesystem
) -> None:
    store = make_store()
    store.set_from_bytes(
        data=b"A",
        filename="sam.jpg",
        options=WriteOptions(visibility=Visibility.PROTECTED),
    )

    store.set_from_bytes(data=b"small", filename="sam.jpg", hash=HASH_A, variant="v1")

    assert protected_fs.file_exists(f"{SHORT_A}/sam__v1.jpg")


def test_overwrite_same_tuple_twice(make_store: MakeStore) -> None:
    store = make_store()

    first = store.set_from_bytes(data=b"A", filename="sam.jpg")
    second = store.set_from_bytes(
        data=b"A",
        filename="sam.jpg",
        options=WriteOptions(conflict=ConflictPolicy.OVERWRITE),
    )

    assert first == second
    assert store.get_as_bytes(filename="sam.jpg", hash=HASH_A) == b"A"


def test_overwrite_replaces_content_at_natural_path(
    make_store: MakeStore, public_fs: PublicAssetFilesystem
) -> None:
    store = make_store(public_resolution=NATURAL_PUBLIC)
    store.set_from_bytes(data=b"A", filename="sam.jpg")

    result = store.set_from_bytes(data=b"B", filename="sam.jpg")

    assert result.hash == HASH_B
    assert public_fs.read("sam.jpg") == b"B"
    assert store.get_as_bytes(filename="sam.jpg", hash=HASH_B) == b"B"


def test_exception_policy_raises_on_existing_target(make_store: MakeStore) -> None:
    store = make_store(public_resolution=NATURAL_PUBLIC)
    store.set_from_bytes(data=b"A", filename="sam.jpg")

    with pytest.raises(AssetExistsError):
        store.set_from_bytes(
            data=b"B",
            filename="sam.jpg",
            options=WriteOptions(conflict=ConflictPolicy.EXCEPTION),
        )


def test_rename_policy_keeps_both_files(
    make_store: MakeStore, public_fs: PublicAssetFilesystem
) -> None:
    store = make_store(public_resolution=NATURAL_PUBLIC)
    first = store.set_from_bytes(data=b"A", filename="sam.jpg")

    second = store.set_from_bytes(
        data=b"B",
        filename="sam.jpg",
        options=WriteOptions(conflict=ConflictPolicy.RENAME),
    )

    assert first.filename == "sam.jpg"
    assert second == AssetTuple(filename="sam-v2.jpg", hash=HASH_B)
    assert public_fs.read("sam.jpg") == b"A"
    assert store.get_as_bytes(filename="sam.jpg", hash=HASH_A) == b"A"
    assert store.get_as_bytes(filename="sam-v2.jpg", hash=HASH_B) == b"B"


def test_rename_policy_gives_up_after_max_tries(make_store: MakeStore) -> None:
    store = make_store(public_resolution=NATURAL_PUBLIC, rename_max_tries=2)
    store.set_from_bytes(data=b"A", filename="sam.jpg")
    store.set_from_bytes(
        data=b"B", filename="sam.jpg", options=WriteOptions(conflict=ConflictPolicy.RENAME)
    )

    with pytest.raises(NamingConflictExhaustedError):
        store.set_from_bytes(
            data=b"C",
            filename="sam.jpg",
            options=WriteOptions(conflict=ConflictPolicy.RENAME),
        )


def test_use_existing_policy_reports_stored_tuple(
    make_store: MakeStore, public_fs: PublicAssetFilesystem
) -> None:
    store = make_store(public_resolution=NATURAL_PUBLIC)
    store.set_from_bytes(data=b"A", filename="sam.jpg")

    result = store.set_from_bytes(
        data=b"B",
        filename="sam.jpg",
        options=WriteOptions(conflict=ConflictPolicy.USE_EXISTING),
    )

    assert result == AssetTuple(filename="sam.jpg", hash=HASH_A)
    assert public_fs.read("sam.jpg") == b"A"


def test_rename_policy_is_rejected_for_variants(make_store: MakeStore) -> None:
    store = make_store()

    with pytest.raises(InvalidAssetInputError):
        store.set_from_bytes(
            data=b"small",
            filename="sam.jpg",
            hash=HASH_A,
            variant="v1",
            options=WriteOptions(conflict=ConflictPolicy.RENAME),
        )


@pytest.mark.parametrize("kwargs", [{"filename": ""}, {"filename": "a.jpg", "variant": "v"}])
def test_write_rejects_missing_filename_or_hash(
    make_store: MakeStore, kwargs: dict[str, str]
) -> None:
    with pytest.raises(InvalidAssetInputError):
        make_store().set_from_bytes(data=b"A", **kwargs)


def test_set_from_local_file(make_store: MakeStore, tmp_path: Path) -> None:
    source = tmp_path / "upload.txt"
    source.write_bytes(b"A")
    store = make_store()

    result = store.set_from_local_file(path=str(source))

    assert result == AssetTuple(filename="upload.txt", hash=HASH_A)
    with pytest.raises(InvalidAssetInputError):
        store.set_from_local_file(path=str(tmp_path / "missing.txt"))


def test_set_from_non_seekable_stream_is_buffered(
    make_store: MakeStore, public_fs: PublicAssetFilesystem
) -> None:
    store = make_store()

    result = store.set_from_stream(
        stream=_NonSeekableStream(b"A"),  # type: ignore[arg-type]
        filename="Folder/sam.jpg",
    )

    assert result == AssetTuple(filename="Folder/sam.jpg", hash=HASH_A)
    assert public_fs.read(f"Folder/{SHORT_A}/sam.jpg") == b"A"


def test_reads_resolve_whichever_store_holds_tuple(make_store: MakeStore) -> None:
    store = make_store()
    _write_sam_with_variant(store)

    with store.get_as_stream(filename="sam.jpg", hash=HASH_A, variant="resizeXYZ") as stream:
        assert stream.read() == b"small"
    assert store.get_mime_type(filename="sam.jpg", hash=HASH_A) == "image/jpeg"
    metadata = store.get_metadata(filename="sam.jpg", hash=HASH_A)
    assert metadata is not None
    assert metadata.file_id == f"{SHORT_A}/sam.jpg"
    assert metadata.visibility is Visibility.PUBLIC
    assert metadata.size == 1
    assert store.get_as_bytes(filename="missing.jpg", hash=HASH_A) is None
    assert store.get_visibility(filename="missing.jpg", hash=HASH_A) is None


def test_exists_checks_stored_content(make_store: MakeStore) -> None:
    store = make_store()
    _write_sam_with_variant(store)

    assert store.exists(filename="sam.jpg", hash=HASH_A)
    assert store.exists(filename="sam.jpg", hash=HASH_A, variant="resizeXYZ")
    assert not store.exists(filename="sam.jpg", hash=HASH_B)
    assert not store.exists(filename="sam.jpg", hash="")
    assert not store.exists(filename="", hash=HASH_A)


def test_get_as_url_for_public_and_missing_tuples(make_store: MakeStore) -> None:
    store = make_store()
    store.set_from_bytes(data=b"A", filename="sam.jpg")

    assert store.get_as_url(filename="sam.jpg", hash=HASH_A) == f"/assets/{SHORT_A}/sam.jpg"
    assert store.get_as_url(filename="new.jpg", hash=HASH_B) == f"/assets/{SHORT_B}/new.jpg"


def test_get_as_url_rejects_missing_hash(make_store: MakeStore) -> None:
    store = make_store()

    with pytest.raises(InvalidAssetInputError):
        store.get_as_url(filename="sam.jpg", hash="")


def test_double_underscore_filename_is_cleaned_and_managed(
    make_store: MakeStore,
    public_fs: PublicAssetFilesystem,
    protected_fs: ProtectedAssetFilesystem,
) -> None:
    """The tuple a write returns keeps working for protect and delete."""
    store = make_store()
    original = store.set_from_bytes(data=b"A", filename="my__file.jpg")
    store.set_from_bytes(
        data=b"small", filename=original.filename, hash=original.hash, variant="v1"
    )

    assert original == AssetTuple(filename="my_file.jpg", hash=HASH_A)

    store.protect(filename=original.filename, hash=original.hash)

    assert store.get_visibility(filename=original.filename, hash=original.hash) is (
        Visibility.PROTECTED
    )
    assert protected_fs.read(f"{SHORT_A}/my_file.jpg") == b"A"
    assert protected_fs.read(f"{SHORT_A}/my_file__v1.jpg") == b"small"
    assert not public_fs.has(SHORT_A)

    assert store.delete(filename=original.filename, hash=original.hash) is True
    assert not protected_fs.has(SHORT_A)


def test_lifecycle_accepts_uncleaned_filename(
    make_store: MakeStore,
    public_fs: PublicAssetFilesystem,
    protected_fs: ProtectedAssetFilesystem,
) -> None:
    store = make_store()
    store.set_from_bytes(data=b"A", filename="my__file.jpg")

    store.protect(filename="my__file.jpg", hash=HASH_A)
    result = store.normalise(filename="my__file.jpg", hash=HASH_A)

    assert protected_fs.file_exists(f"{SHORT_A}/my_file.jpg")
    assert not public_fs.has(SHORT_A)
    assert result is not None
    assert result.tuple == AssetTuple(filename="my_file.jpg", hash=HASH_A)
    assert result.operations == {}


def test_protect_moves_original_and_all_variants(
    make_store: MakeStore,
    public_fs: PublicAssetFilesystem,
    protected_fs: ProtectedAssetFilesystem,
) -> None:
    store = make_store()
    _write_sam_with_variant(store)

    store.protect(filename="sam.jpg", hash=HASH_A)

    assert protected_fs.read(f"{SHORT_A}/sam.jpg") == b"A"
    assert protected_fs.read(f"{SHORT_A}/sam__resizeXYZ.jpg") == b"small"
    assert not public_fs.has(f"{SHORT_A}/sam.jpg")
    assert not public_fs.has(f"{SHORT_A}/sam__resizeXYZ.jpg")
    # The emptied hash folder is truncated.
    assert not public_fs.has(SHORT_A)
    assert store.get_visibility(filename="sam.jpg", hash=HASH_A) is Visibility.PROTECTED


def test_publish_reverses_protect(
    make_store: MakeStore,
    public_fs: PublicAssetFilesystem,
    protected_fs: ProtectedAssetFilesystem,
) -> None:
    store = make_store()
    _write_sam_with_variant(store)
    store.protect(filename="sam.jpg", hash=HASH_A)

    store.publish(filename="sam.jpg", hash=HASH_A)
    store.publish(filename="sam.jpg", hash=HASH_A)

    assert public_fs.file_exists(f"{SHORT_A}/sam.jpg")
    assert public_fs.file_exists(f"{SHORT_A}/sam__resizeXYZ.jpg")
    assert not protected_fs.has(SHORT_A)


def test_publish_moves_into_public_naming_scheme(
    make_store: MakeStore,
    public_fs: PublicAssetFilesystem,
    protected_fs: ProtectedAssetFilesystem,
) -> None:
    store = make_store(public_resolution=NATURAL_PUBLIC)
    store.set_from_bytes(
        data=b"A",
        filename="Folder/sam.jpg",
        options=WriteOptions(visibility=Visibility.PROTECTED),
    )

    store.publish(filename="Folder/sam.jpg", hash=HASH_A)

    assert public_fs.read("Folder/sam.jpg") == b"A"
    assert not protected_fs.has("Folder")


def test_keep_empty_dirs_leaves_folders(
    make_store: MakeStore, public_fs: PublicAssetFilesystem
) -> None:
    store = make_store(keep_empty_dirs=True)
    store.set_from_bytes(data=b"A", filename="Folder/sam.jpg")

    store.protect(filename="Folder/sam.jpg", hash=HASH_A)

    assert public_fs.directory_exists(f"Folder/{SHORT_A}")


def test_grants_are_scoped_to_session(make_store: MakeStore) -> None:
    store = make_store()
    store.set_from_bytes(
        data=b"A",
        filename="sam.jpg",
        options=WriteOptions(visibility=Visibility.PROTECTED),
    )

    with grant_session("s1"):
        assert store.can_view(filename="sam.jpg", hash=HASH_A) is False
        store.grant(filename="sam.jpg", hash=HASH_A)
        assert store.can_view(filename="sam.jpg", hash=HASH_A) is True

    with grant_session("s2"):
        assert store.can_view(filename="sam.jpg", hash=HASH_A) is False

    with grant_session("s1"):
        store.revoke(filename="sam.jpg", hash=HASH_A)
        assert store.can_view(filename="sam.jpg", hash=HASH_A) is False


def test_grant_without_session_is_ignored(make_store: MakeStore) -> None:
    store = make_store()
    store.set_from_bytes(
        data=b"A",
        filename="sam.jpg",
        options=WriteOptions(visibility=Visibility.PROTECTED),
    )

    store.grant(filename="sam.jpg", hash=HASH_A)

    assert store.can_view(filename="sam.jpg", hash=HASH_A) is False


def test_public_files_are_always_viewable(make_store: MakeStore) -> None:
    store = make_store()
    store.set_from_bytes(data=b"A", filename="sam.jpg")

    assert store.can_view(filename="sam.jpg", hash=HASH_A) is True
    assert store.can_view(filename="missing.jpg", hash=HASH_A) is False


def test_end_to_end_protect_then_grant(
    make_store: MakeStore, protected_fs: ProtectedAssetFilesystem
) -> None:
    """Write, add a variant, protect, then grant access to get a protected URL."""
    store = make_store()
    original = _write_sam_with_variant(store)
    store.protect(filename="sam.jpg", hash=original.hash)

    with grant_session("visitor"):
        assert store.can_view(filename="sam.jpg", hash=original.hash) is False
        store.grant(filename="sam.jpg", hash=original.hash)
        assert store.can_view(filename="sam.jpg", hash=original.hash) is True
        url = store.get_as_url(filename="sam.jpg", hash=original.hash)
        variant_response = store.get_response_for(file_id=f"{SHORT_A}/sam__resizeXYZ.jpg")

    assert protected_fs.file_exists(f"{SHORT_A}/sam.jpg")
    assert protected_fs.file_exists(f"{SHORT_A}/sam__resizeXYZ.jpg")
    assert url == f"/protected/{SHORT_A}/sam.jpg"
    assert variant_response.status_code == 200


def test_get_as_url_grants_protected_access(make_store: MakeStore) -> None:
    store = make_store()
    store.set_from_bytes(
        data=b"A",
        filename="sam.jpg",
        options=WriteOptions(visibility=Visibility.PROTECTED),
    )

    with grant_session("s1"):
        store.get_as_url(filename="sam.jpg", hash=HASH_A, grant=False)
        assert store.can_view(filename="sam.jpg", hash=HASH_A) is False
        store.get_as_url(filename="sam.jpg", hash=HASH_A)
        assert store.can_view(filename="sam.jpg", hash=HASH_A) is True


def test_delete_removes_all_variants_and_folders(
    make_store: MakeStore, public_fs: PublicAssetFilesystem
) -> None:
    store = make_store()
    store.set_from_bytes(data=b"A", filename="Folder/sam.jpg")
    store.set_from_bytes(data=b"small", filename="Folder/sam.jpg", hash=HASH_A, variant="v1")

    assert store.delete(filename="Folder/sam.jpg", hash=HASH_A) is True
    assert store.delete(filename="Folder/sam.jpg", hash=HASH_A) is False
    assert not public_fs.has("Folder")
    assert store.hasher.get(f"Folder/{SHORT_A}/sam.jpg", public_fs) is None


def test_rename_moves_original_and_variants(
    make_store: MakeStore, public_fs: PublicAssetFilesystem
) -> None:
    store = make_store()
    store.set_from_bytes(data=b"A", filename="Folder/sam.jpg")
    store.set_from_bytes(data=b"small", filename="Folder/sam.jpg", hash=HASH_A, variant="v1")

    renamed = store.rename(filename="Folder/sam.jpg", hash=HASH_A, new_name="Other/new__name.jpg")

    assert renamed == "Other/new_name.jpg"
    assert public_fs.read(f"Other/{SHORT_A}/new_name.jpg") == b"A"
    assert public_fs.read(f"Other/{SHORT_A}/new_name__v1.jpg") == b"small"
    assert not public_fs.has("Folder")
    assert store.hasher.get(f"Other/{SHORT_A}/new_name.jpg", public_fs) == HASH_A


def test_rename_edge_cases(make_store: MakeStore) -> None:
    store = make_store()
    store.set_from_bytes(data=b"A", filename="sam.jpg")

    assert store.rename(filename="sam.jpg", hash=HASH_A, new_name="sam.jpg") == "sam.jpg"
    assert store.rename(filename="missing.jpg", hash=HASH_A, new_name="x.jpg") is None
    with pytest.raises(InvalidAssetInputError):
        store.rename(filename="sam.jpg", hash=HASH_A, new_name="")


def test_copy_duplicates_original_and_variants(
    make_store: MakeStore, public_fs: PublicAssetFilesystem
) -> None:
    store = make_store()
    _write_sam_with_variant(store)

    copied = store.copy(filename="sam.jpg", hash=HASH_A, new_name="copy.jpg")

    assert copied == "copy.jpg"
    assert public_fs.read(f"{SHORT_A}/sam.jpg") == b"A"
    assert public_fs.read(f"{SHORT_A}/copy.jpg") == b"A"
    assert public_fs.read(f"{SHORT_A}/copy__resizeXYZ.jpg") == b"small"
    with pytest.raises(InvalidAssetInputError):
        store.copy(filename="sam.jpg", hash=HASH_A, new_name="")


def test_swap_publish_trades_places_with_conflicting_public_file(
    make_store: MakeStore,
    public_fs: PublicAssetFilesystem,
    protected_fs: ProtectedAssetFilesystem,
) -> None:
    store = make_store(public_resolution=NATURAL_PUBLIC)
    store.set_from_bytes(data=b"A", filename="sam.jpg")
    store.set_from_bytes(
        data=b"B",
        filename="sam.jpg",
        options=WriteOptions(visibility=Visibility.PROTECTED),
    )

    store.swap_publish(filename="sam.jpg", hash=HASH_B)

    assert public_fs.read("sam.jpg") == b"B"
    assert protected_fs.read(f"{SHORT_A}/sam.jpg") == b"A"
    assert not protected_fs.has(".swap")
    assert not protected_fs.has(SHORT_B)
    assert store.get_visibility(filename="sam.jpg", hash=HASH_A) is Visibility.PROTECTED


def test_normalise_moves_file_to_default_scheme(
    make_store: MakeStore, public_fs: PublicAssetFilesystem
) -> None:
    store = make_store(public_resolution=NATURAL_PUBLIC)
    public_fs.write(f"{SHORT_A}/sam.jpg", b"A")
    public_fs.write(f"{SHORT_A}/sam__v1.jpg", b"small")

    result = store.normalise(filename="sam.jpg", hash=HASH_A)

    assert result is not None
    assert result.tuple == AssetTuple(filename="sam.jpg", hash=HASH_A)
    assert result.operations == {
        f"{SHORT_A}/sam.jpg": "sam.jpg",
        f"{SHORT_A}/sam__v1.jpg": "sam__v1.jpg",
    }
    assert public_fs.read("sam__v1.jpg") == b"small"
    assert not public_fs.has(SHORT_A)


def test_normalise_path_resolves_raw_file_id(
    make_store: MakeStore, public_fs: PublicAssetFilesystem
) -> None:
    store = make_store(public_resolution=NATURAL_PUBLIC)
    public_fs.write(f"Folder/{SHORT_A}/sam.jpg", b"A")

    result = store.normalise_path(file_id=f"Folder/{SHORT_A}/sam.jpg")

    assert result is not None
    assert result.tuple.filename == "Folder/sam.jpg"
    assert result.operations == {f"Folder/{SHORT_A}/sam.jpg": "Folder/sam.jpg"}
    assert store.normalise_path(file_id="Folder/missing.jpg") is None


def test_get_response_for_public_file(make_store: MakeStore) -> None:
    store = make_store()
    store.set_from_bytes(data=b"A", filename="sam.jpg")

    response = store.get_response_for(file_id=f"{SHORT_A}/sam.jpg")

    assert response.status_code == 200
    assert response.headers["Content-Type"] == "image/jpeg"
    assert response.headers["Content-Length"] == "1"
    assert response.headers["Cache-Control"] == "private"
    assert not isinstance(response.body, (bytes, type(None)))
    assert b"".join(response.body) == b"A"


def test_get_response_for_protected_file_needs_grant(make_store: MakeStore) -> None:
    store = make_store(denied_response_code=403)
    store.set_from_bytes(
        data=b"A",
        filename="sam.jpg",
        options=WriteOptions(visibility=Visibility.PROTECTED),
    )
    file_id = f"{SHORT_A}/sam.jpg"

    with grant_session("s1"):
        denied = store.get_response_for(file_id=file_id)
        store.grant(filename="sam.jpg", hash=HASH_A)
        allowed = store.get_response_for(file_id=file_id)

    assert denied.status_code == 403
    assert denied.body == b""
    assert allowed.status_code == 200


def test_get_response_for_missing_and_invalid_paths(make_store: MakeStore) -> None:
    quiet = make_store()
    chatty = make_store(debug=True)

    assert quiet.get_response_for(file_id="nope.jpg").status_code == 404
    assert quiet.get_response_for(file_id="nope.jpg").body == b""
    assert chatty.get_response_for(file_id="nope.jpg").body == b"Not Found"
    assert quiet.get_response_for(file_id="../etc/passwd").status_code == 404


def test_get_response_for_directory_is_denied(make_store: MakeStore) -> None:
    store = make_store(denied_response_code=403)
    store.set_from_bytes(data=b"A", filename="sam.jpg")

    assert store.get_response_for(file_id=SHORT_A).status_code == 403


def test_get_response_for_redirects_stale_hash_to_latest(
    make_store: MakeStore,
) -> None:
    records = InMemoryRecordStore()
    records.save(FileRecord(filename="sam.jpg", hash=HASH_A))
    records.save(FileRecord(filename="sam.jpg", hash=HASH_B))
    store = make_store(records=records)
    store.set_from_bytes(data=b"B", filename="sam.jpg")

    response = store.get_response_for(file_id=f"{SHORT_A}/sam.jpg")

    assert response.status_code == 301
    assert response.headers["Location"] == f"/assets/{SHORT_B}/sam.jpg"


def test_get_response_for_temporary_redirect_to_non_canonical_path(
    make_store: MakeStore, public_fs: PublicAssetFilesystem
) -> None:
    records = InMemoryRecordStore()
    records.save(FileRecord(filename="sam.jpg", hash=HASH_A))
    records.save(FileRecord(filename="sam.jpg", hash=HASH_B))
    store = make_store(records=records)
    public_fs.write("sam.jpg", b"B")

    response = store.get_response_for(file_id=f"{SHORT_A}/sam.jpg")

    assert response.status_code == 302
    assert response.headers["Location"] == "/assets/sam.jpg"


def test_capabilities_and_health(make_store: MakeStore) -> None:
    store = make_store()

    capabilities = store.get_capabilities()
    health = store.health()

    assert capabilities["visibility"] == ("public", "protected")
    assert "use_existing" in capabilities["conflict"]
    assert health.service_ready is True
    assert health.public_ready is True and health.protected_ready is True


class _DownRedis:
    def health(self) -> RedisHealthStatus:
        return RedisHealthStatus(ready=False, detail="redis ping failed: ConnectionError")


def test_health_includes_redis_when_configured(
    public_fs: PublicAssetFilesystem, protected_fs: ProtectedAssetFilesystem
) -> None:
    store = FilesystemAssetStore(
        settings=AssetStoreSettings(),
        public=public_fs,
        protected=protected_fs,
        hasher=FileHashingService(),
        grants=InMemoryGrantStore(),
        redis=_DownRedis(),  # type: ignore[arg-type]
    )

    health = store.health()

    assert health.service_ready is False
    assert health.public_ready is True
    assert health.redis_ready is False
    assert "redis=redis ping failed: ConnectionError" in health.detail


def test_health_without_redis_leaves_it_unreported(make_store: MakeStore) -> None:
    assert make_store().health().redis_ready is None


def test_built_store_reports_redis_used_for_grants(tmp_path: Path) -> None:
    settings = load_settings(
        cli_params={
            "components": {
                "substrate": {
                    "filesystem": {
                        "public_root_dir": str(tmp_path / "public"),
                        "protected_root_dir": str(tmp_path / "protected"),
                    }
                },
                "service": {"asset_store": {"grant_backend": "redis"}},
            }
        },
        environ={},
        config_path=tmp_path / "assets.yaml",
    )

    store = build_asset_store(settings=settings, redis=_DownRedis())  # type: ignore[arg-type]
    health = store.health()

    assert health.redis_ready is False
    assert health.service_ready is False


def test_store_requires_url_capable_filesystems(
    public_fs: PublicAssetFilesystem, protected_fs: ProtectedAssetFilesystem
) -> None:
    with pytest.raises(AssetStoreConfigurationError):
        FilesystemAssetStore(
            settings=AssetStoreSettings(),
            public=protected_fs,
            protected=protected_fs,
            hasher=FileHashingService(),
            grants=InMemoryGrantStore(),
        )
    with pytest.raises(AssetStoreConfigurationError):
        FilesystemAssetStore(
            settings=AssetStoreSettings(),
            public=public_fs,
            protected=public_fs,
            hasher=FileHashingService(),
            grants=InMemoryGrantStore(),
        )
