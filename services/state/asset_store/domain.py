"""Domain contracts for asset identity, write options and HTTP responses."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict


class Visibility(StrEnum):
    """Backing store a tuple currently lives in."""

    PUBLIC = "public"
    PROTECTED = "protected"


class ConflictPolicy(StrEnum):
    """Behavior when a write targets a FileID that already exists."""

    EXCEPTION = "exception"
    OVERWRITE = "overwrite"
    RENAME = "rename"
    USE_EXISTING = "use_existing"


class Stage(StrEnum):
    """Versioning stage consulted by soft resolution."""

    DRAFT = "draft"
    LIVE = "live"


class AssetTuple(BaseModel):
    """Logical identity ``(filename, hash, variant)`` of one stored asset."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    filename: str
    hash: str = ""
    variant: str = ""


class ParsedFileID(BaseModel):
    """Decomposed FileID; ``file_id`` is empty when built from a known tuple."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    filename: str
    hash: str = ""
    variant: str = ""
    file_id: str = ""

    def with_filename(self, filename: str) -> ParsedFileID:
        return self.model_copy(update={"filename": filename})

    def with_hash(self, hash: str) -> ParsedFileID:
        return self.model_copy(update={"hash": hash})

    def with_variant(self, variant: str) -> ParsedFileID:
        return self.model_copy(update={"variant": variant})

    def with_file_id(self, file_id: str) -> ParsedFileID:
        return self.model_copy(update={"file_id": file_id})

    def as_tuple(self) -> AssetTuple:
        """Return the logical tuple without the physical FileID."""
        return AssetTuple(filename=self.filename, hash=self.hash, variant=self.variant)


TupleLike = Union[AssetTuple, ParsedFileID, Mapping[str, Any]]

_LEGACY_KEYS = ("Filename", "Hash", "Variant")


def to_parsed_file_id(value: TupleLike) -> ParsedFileID:
    """Convert one accepted tuple shape into a ``ParsedFileID``.

    Mappings must use the ``Filename``/``Hash``/``Variant`` keys of stored
    record rows. Anything else raises ``TypeError``.
    """
    if isinstance(value, ParsedFileID):
        return value
    if isinstance(value, AssetTuple):
        return ParsedFileID(filename=value.filename, hash=value.hash, variant=value.variant)
    if isinstance(value, Mapping):
        if "Filename" not in value:
            raise TypeError("tuple mapping requires a 'Filename' key")
        unknown = set(value) - set(_LEGACY_KEYS)
        if unknown:
            raise TypeError(f"unexpected tuple mapping keys: {sorted(unknown)}")
        return ParsedFileID(
            filename=str(value.get("Filename") or ""),
            hash=str(value.get("Hash") or ""),
            variant=str(value.get("Variant") or ""),
        )
    raise TypeError(f"cannot convert {type(value).__name__} to ParsedFileID")


class WriteOptions(BaseModel):
    """Per-write conflict and visibility choices."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    conflict: ConflictPolicy | None = None
    visibility: Visibility | None = None


class AssetMetadata(BaseModel):
    """Physical metadata of one stored FileID."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    file_id: str
    visibility: Visibility
    size: int
    mime_type: str
    last_modified: int


@dataclass(frozen=True)
class AssetResponse:
    """HTTP-shaped answer for one requested FileID.

    ``body`` is a chunk iterator for streamed file content, a short byte
    payload for errors, or ``None``.
    """

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: Iterator[bytes] | bytes | None = None


class FileRecord(BaseModel):
    """Record-layer view of one file at one stage."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    filename: str
    hash: str
    variant: str = ""
    was_published: bool = False


class FileVersion(BaseModel):
    """One historical version row of a file record."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    filename: str
    hash: str
    stage: Stage = Stage.DRAFT
    was_published: bool = False


class NormaliseResult(BaseModel):
    """Outcome of moving one file and its variants to the canonical FileID."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    tuple: AssetTuple
    operations: dict[str, str]


class HealthStatus(BaseModel):
    """Asset store and backing filesystem readiness."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_ready: bool
    public_ready: bool
    protected_ready: bool
    redis_ready: bool | None = None
    detail: str
