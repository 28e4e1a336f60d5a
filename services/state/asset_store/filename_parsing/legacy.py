"""SS3 legacy naming scheme with ``_resampled/<method>/...`` variant folders.

Only used to parse and redirect old URLs. Two historical shapes exist:

* ``Uploads/_resampled/FitWzEwLDEwXQ/PadWzEwXQ/sam.jpg`` where each variant
  method is one folder.
* ``Uploads/_resampled/FitWzEwLDEwXQ-sam.jpg`` (before SS 3.3) where variant
  methods prefix the basename, joined by dashes.
"""

from __future__ import annotations

import base64
import binascii
import posixpath
import re
from collections.abc import Iterable

from services.state.asset_store.config import DEFAULT_SS3_METHODS
from services.state.asset_store.domain import ParsedFileID
from services.state.asset_store.filename_parsing.base import FileIDHelper
from services.state.asset_store.filename_parsing.common import (
    RESAMPLED_FOLDER,
    directory_of,
    in_resampled_folder,
    join_file_id,
    split_extension,
)

_BASENAME_STRICT = r"(?P<basename>((?<!__)[^/.])+)"
_BASENAME_LOOSE = r"(?P<basename>([^/.])+)"
_ARGUMENT_LIST = re.compile(rb"^\[.*\]$")


class LegacyFileIDHelper(FileIDHelper):
    """Parse and build SS3 legacy FileIDs.

    With ``fail_newer_variant`` (the default) names carrying a ``__variant``
    suffix are refused so that newer FileIDs fall through to their own helper.
    """

    name = "legacy"
    look_for_variant_recursive = True

    def __init__(
        self,
        *,
        fail_newer_variant: bool = True,
        image_methods: Iterable[str] = DEFAULT_SS3_METHODS,
    ) -> None:
        self._fail_newer_variant = fail_newer_variant
        # Longest first, so ``paddedimage`` is never read as ``pad``.
        methods = sorted({m.lower() for m in image_methods}, key=len, reverse=True)
        alternation = "|".join(re.escape(method) for method in methods)
        basename = _BASENAME_STRICT if fail_newer_variant else _BASENAME_LOOSE

        self._pattern = re.compile(
            r"^(?P<folder>([^/]+/)*?)"
            rf"({RESAMPLED_FOLDER}/(?P<variant>([^.]+))/)?"
            rf"({basename})"
            r"(?P<extension>(\..+)*)$",
            re.IGNORECASE,
        )
        self._dashed_pattern = re.compile(
            r"^(?P<folder>([^/]+/)*?)"
            rf"({RESAMPLED_FOLDER}/(?P<variant>(((({alternation})[^.-]+))-)+))?"
            rf"({basename})"
            r"(?P<extension>(\..+)*)$",
            re.IGNORECASE,
        )
        self._dashed_part = re.compile(
            rf"^({alternation})(?P<base64>.+)$", re.IGNORECASE
        )

    def build_file_id(
        self,
        *,
        filename: str,
        hash: str = "",
        variant: str = "",
        clean: bool = True,
    ) -> str:
        if clean:
            filename = self.clean_filename(filename)
        name, extension = split_extension(posixpath.basename(filename))
        file_id = name
        if variant:
            file_id = f"{RESAMPLED_FOLDER}/{variant.replace('_', '/')}/{file_id}"
        return join_file_id(directory_of(filename), file_id) + extension

    def file_id_base(self, *, name: str, filename: str, hash: str, variant: str) -> str:
        return name

    def parse_file_id(self, file_id: str) -> ParsedFileID | None:
        match = self._pattern.match(file_id)
        if match is None:
            return None
        variant = match.group("variant")
        if not variant and in_resampled_folder(file_id):
            return self._parse_dashed_variant(file_id)
        return ParsedFileID(
            filename=match.group("folder")
            + match.group("basename")
            + match.group("extension"),
            variant=(variant or "").replace("/", "_"),
            file_id=file_id,
        )

    def _parse_dashed_variant(self, file_id: str) -> ParsedFileID | None:
        match = self._dashed_pattern.match(file_id)
        if match is None:
            return None

        candidates = [part for part in (match.group("variant") or "").strip("-").split("-") if part]
        valid: list[str] = []
        while candidates and self._is_dashed_method(candidates[0]):
            valid.append(candidates.pop(0))
        if not valid:
            return None

        # Leftover segments were part of the original basename.
        leftover = "-".join(candidates) + "-" if candidates else ""
        return ParsedFileID(
            filename=match.group("folder")
            + leftover
            + match.group("basename")
            + match.group("extension"),
            variant="_".join(valid),
            file_id=file_id,
        )

    def _is_dashed_method(self, part: str) -> bool:
        match = self._dashed_part.match(part)
        if match is None:
            return False
        encoded = match.group("base64")
        try:
            decoded = base64.b64decode(encoded + "=" * (-len(encoded) % 4))
        except (binascii.Error, ValueError):
            return False
        return bool(decoded) and _ARGUMENT_LIST.match(decoded) is not None

    def is_variant_of(self, file_id: str, original: ParsedFileID) -> bool:
        parsed = self.parse_file_id(file_id)
        return parsed is not None and parsed.filename == original.filename

    def look_for_variant_in(self, original: ParsedFileID) -> str:
        return join_file_id(directory_of(original.filename), RESAMPLED_FOLDER)
