"""Candidate name generation for the ``rename`` conflict policy."""

from __future__ import annotations

import posixpath
import re
from collections.abc import Iterator

from services.state.asset_store.filename_parsing.common import (
    directory_of,
    join_file_id,
    split_extension,
)

_VERSION_SUFFIX = re.compile(r"^(?P<stem>.+)-v(?P<version>\d+)$")


class AssetNameGenerator:
    """Yield ``file_id`` then ``name-v2.ext``, ``name-v3.ext`` and so on.

    An existing ``-vN`` suffix is continued from rather than stacked. At most
    ``max_tries`` candidates are produced, the original included.
    """

    def __init__(self, file_id: str, *, max_tries: int = 100) -> None:
        self._file_id = file_id
        self._max_tries = max_tries

    @property
    def max_tries(self) -> int:
        return self._max_tries

    def __iter__(self) -> Iterator[str]:
        dirname = directory_of(self._file_id)
        name, extension = split_extension(posixpath.basename(self._file_id))
        version = 1
        match = _VERSION_SUFFIX.match(name)
        if match is not None:
            name = match.group("stem")
            version = int(match.group("version"))

        yield self._file_id
        for offset in range(1, self._max_tries):
            yield join_file_id(dirname, f"{name}-v{version + offset}{extension}")
