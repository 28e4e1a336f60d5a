"""Abstract FileID helper contract and the shared build algorithm."""

from __future__ import annotations

import posixpath
from abc import ABC, abstractmethod

from services.state.asset_store.domain import ParsedFileID, TupleLike, to_parsed_file_id
from services.state.asset_store.filename_parsing.common import (
    VARIANT_DELIMITER,
    clean_filename,
    directory_of,
    join_file_id,
    rewrite_variant_extension,
    split_extension,
)


class FileIDHelper(ABC):
    """Map between a logical ``(filename, hash, variant)`` and one FileID.

    Helpers are stateless. ``parse_file_id`` returns ``None`` when the input
    does not have this scheme's shape; callers move on to the next helper.
    """

    #: Short name used in configuration.
    name: str = ""

    look_for_variant_recursive: bool = False

    def build_file_id(
        self,
        *,
        filename: str,
        hash: str = "",
        variant: str = "",
        clean: bool = True,
    ) -> str:
        """Build the FileID for one tuple.

        Raises ``ValueError`` when this scheme cannot represent the tuple.
        """
        self.validate_file_parts(filename=filename, hash=hash, variant=variant)
        if clean:
            filename = self.clean_filename(filename)
        if variant:
            filename = rewrite_variant_extension(filename, variant)

        name, extension = split_extension(posixpath.basename(filename))
        file_id = self.file_id_base(name=name, filename=filename, hash=hash, variant=variant)
        file_id = join_file_id(directory_of(filename), file_id)
        if variant:
            file_id += f"{VARIANT_DELIMITER}{variant}"
        return file_id + extension

    def build_from(self, value: TupleLike, *, clean: bool = True) -> str:
        """Build the FileID for any accepted tuple shape."""
        parsed = to_parsed_file_id(value)
        return self.build_file_id(
            filename=parsed.filename,
            hash=parsed.hash,
            variant=parsed.variant,
            clean=clean,
        )

    def clean_filename(self, filename: str) -> str:
        return clean_filename(filename)

    @abstractmethod
    def parse_file_id(self, file_id: str) -> ParsedFileID | None:
        """Decompose one FileID or return ``None`` on a scheme mismatch."""

    @abstractmethod
    def is_variant_of(self, file_id: str, original: ParsedFileID) -> bool:
        """Return whether ``file_id`` is ``original`` or one of its variants."""

    @abstractmethod
    def look_for_variant_in(self, original: ParsedFileID) -> str:
        """Return the directory to list when collecting variants."""

    @abstractmethod
    def file_id_base(self, *, name: str, filename: str, hash: str, variant: str) -> str:
        """Return the scheme-specific FileID core before directory and suffixes."""

    def validate_file_parts(self, *, filename: str, hash: str, variant: str) -> None:
        """Reject tuples this scheme cannot represent."""
