"""Pure filename helpers shared by every FileID naming scheme."""

from __future__ import annotations

import base64
import json
import posixpath
import re
from typing import Any

EXTENSION_REWRITE_VARIANT = "ExtRewrite"
EXTENSION_ORIGINAL = 0
EXTENSION_VARIANT = 1
VARIANT_DELIMITER = "__"
RESAMPLED_FOLDER = "_resampled"

_UNDERSCORE_RUN = re.compile(r"_{2,}")
_EXTENSION_REWRITE = re.compile(rf"^{EXTENSION_REWRITE_VARIANT}(?P<base64>.+)$")


def normalize_separators(filename: str) -> str:
    """Swap backslashes for forward slashes."""
    return filename.replace("\\", "/")


def clean_filename(filename: str) -> str:
    """Normalize separators and collapse underscore runs reserved for variants."""
    return _UNDERSCORE_RUN.sub("_", normalize_separators(filename))


def split_extension(name: str) -> tuple[str, str]:
    """Split ``name`` at its first dot; the extension keeps the dot."""
    position = name.find(".")
    if position == -1:
        return name, ""
    return name[:position], name[position:]


def directory_of(filename: str) -> str:
    """Return the directory part of ``filename`` without a lone ``.``."""
    dirname = posixpath.dirname(filename)
    return "" if dirname == "." else dirname


def in_resampled_folder(file_id: str) -> bool:
    """Return whether any directory segment of ``file_id`` is ``_resampled``."""
    return RESAMPLED_FOLDER in file_id.split("/")[:-1]


def join_file_id(dirname: str, file_id: str) -> str:
    return f"{dirname}/{file_id}" if dirname else file_id


def base64url_encode(value: Any) -> str:
    """JSON-encode then base64 with the ``~_`` URL alphabet and no padding."""
    payload = json.dumps(value, separators=(",", ":")).encode("utf-8")
    encoded = base64.b64encode(payload).decode("ascii")
    return encoded.translate(str.maketrans("+/", "~_")).rstrip("=")


def base64url_decode(value: str) -> Any:
    """Reverse ``base64url_encode``; return ``None`` when undecodable."""
    standard = value.translate(str.maketrans("~_", "+/"))
    standard += "=" * (-len(standard) % 4)
    try:
        return json.loads(base64.b64decode(standard))
    except (ValueError, UnicodeDecodeError):
        return None


def encode_extension_rewrite(original_extension: str, variant_extension: str) -> str:
    """Build the variant token for a variant stored under another extension."""
    return EXTENSION_REWRITE_VARIANT + base64url_encode(
        [original_extension, variant_extension]
    )


def decode_extension_rewrite(token: str) -> tuple[str, str] | None:
    """Return ``(original, variant)`` extensions for one rewrite token."""
    match = _EXTENSION_REWRITE.match(token)
    if match is None:
        return None
    data = base64url_decode(match.group("base64"))
    if not isinstance(data, list) or len(data) != 2:
        return None
    return str(data[EXTENSION_ORIGINAL]), str(data[EXTENSION_VARIANT])


def swap_extension(filename: str, variant: str, index: int) -> str:
    """Rewrite the last extension of ``filename`` from the variant chain.

    The last rewrite token in the ``_``-joined chain wins. ``index`` selects
    the original extension (``EXTENSION_ORIGINAL``) or the variant one.
    """
    if not variant:
        return filename
    dirname = directory_of(filename)
    basename = posixpath.basename(filename)
    stem, dot, _extension = basename.rpartition(".")
    if not dot:
        return filename
    for sub_variant in reversed(variant.split("_")):
        extensions = decode_extension_rewrite(sub_variant)
        if extensions is not None:
            return join_file_id(dirname, f"{stem}.{extensions[index]}")
    return filename


def rewrite_variant_extension(filename: str, variant: str) -> str:
    return swap_extension(filename, variant, EXTENSION_VARIANT)


def restore_original_extension(filename: str, variant: str) -> str:
    return swap_extension(filename, variant, EXTENSION_ORIGINAL)
