"""Hash-prefixed naming scheme: ``<dir>/<10-hex>/<name>[__<variant>].<ext>``."""

from __future__ import annotations

import re

from services.state.asset_store.domain import ParsedFileID
from services.state.asset_store.filename_parsing.base import FileIDHelper
from services.state.asset_store.filename_parsing.common import (
    restore_original_extension,
)

HASH_TRUNCATE_LENGTH = 10

_FILE_ID = re.compile(
    r"^(?P<folder>([^/]+/)*)"
    rf"(?P<hash>[a-f0-9]{{{HASH_TRUNCATE_LENGTH}}})/"
    r"(?P<basename>((?<!__)[^/.])+)"
    r"(__(?P<variant>[^.]+))?"
    r"(?P<extension>(\..+)*)$"
)


def truncate_hash(hash: str) -> str:
    return hash[:HASH_TRUNCATE_LENGTH]


class HashFileIDHelper(FileIDHelper):
    """Embed the truncated content hash as a folder before the basename."""

    name = "hash"

    def validate_file_parts(self, *, filename: str, hash: str, variant: str) -> None:
        if not hash:
            raise ValueError("hash-prefixed FileIDs require a hash")

    def file_id_base(self, *, name: str, filename: str, hash: str, variant: str) -> str:
        return f"{truncate_hash(hash)}/{name}"

    def parse_file_id(self, file_id: str) -> ParsedFileID | None:
        match = _FILE_ID.match(file_id)
        if match is None:
            return None
        variant = match.group("variant") or ""
        filename = (
            match.group("folder") + match.group("basename") + match.group("extension")
        )
        return ParsedFileID(
            filename=restore_original_extension(filename, variant),
            hash=match.group("hash"),
            variant=variant,
            file_id=file_id,
        )

    def is_variant_of(self, file_id: str, original: ParsedFileID) -> bool:
        parsed = self.parse_file_id(file_id)
        return (
            parsed is not None
            and parsed.filename == original.filename
            and parsed.hash == truncate_hash(original.hash)
        )

    def look_for_variant_in(self, original: ParsedFileID) -> str:
        folder = self._folder(original.filename)
        return f"{folder}{truncate_hash(original.hash)}"

    @staticmethod
    def _folder(filename: str) -> str:
        head, sep, _ = filename.rpartition("/")
        return f"{head}/" if sep else ""
