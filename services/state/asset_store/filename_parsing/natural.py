"""Hashless naming scheme: ``<dir>/<name>[__<variant>].<ext>``."""

from __future__ import annotations

import re

from services.state.asset_store.domain import ParsedFileID
from services.state.asset_store.filename_parsing.base import FileIDHelper
from services.state.asset_store.filename_parsing.common import (
    directory_of,
    in_resampled_folder,
    restore_original_extension,
)

_FILE_ID = re.compile(
    r"^(?P<folder>([^/]+/)*)"
    r"(?P<basename>((?<!__)[^/.])+)"
    r"(__(?P<variant>[^.]+))?"
    r"(?P<extension>(\..+)*)$"
)


class NaturalFileIDHelper(FileIDHelper):
    """Store files under their logical filename, variants beside them."""

    name = "natural"

    def file_id_base(self, *, name: str, filename: str, hash: str, variant: str) -> str:
        return name

    def parse_file_id(self, file_id: str) -> ParsedFileID | None:
        match = _FILE_ID.match(file_id)
        # Legacy resampled folders are never natural FileIDs.
        if match is None or in_resampled_folder(file_id):
            return None
        variant = match.group("variant") or ""
        filename = (
            match.group("folder") + match.group("basename") + match.group("extension")
        )
        return ParsedFileID(
            filename=restore_original_extension(filename, variant),
            variant=variant,
            file_id=file_id,
        )

    def is_variant_of(self, file_id: str, original: ParsedFileID) -> bool:
        parsed = self.parse_file_id(file_id)
        return parsed is not None and parsed.filename == original.filename

    def look_for_variant_in(self, original: ParsedFileID) -> str:
        return directory_of(original.filename)
