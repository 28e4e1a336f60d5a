"""Content hashing with a timestamp-validated, pluggable cache.

Cached hashes are keyed by filesystem identity and FileID. An entry is only
honoured while the file's last-modified stamp still equals the stamp recorded
with it, so files changed behind the store's back are re-hashed.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from threading import Lock
from typing import BinaryIO

from packages.asset_shared.logging import fields, get_logger, log_context
from resources.substrates.filesystem.substrate import AssetFilesystem
from resources.substrates.redis.substrate import RedisSubstrate
from services.state.asset_store.interfaces import HashCache

_LOGGER = get_logger(__name__)

HASH_ALGORITHM = "sha1"


@dataclass(frozen=True)
class HashCacheEntry:
    """Hash of one file together with the stamp it was computed at."""

    timestamp: int
    hash: str


class InMemoryHashCache:
    """Process-local hash cache."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[int, str]] = {}
        self._lock = Lock()

    def get(self, key: str) -> tuple[int, str] | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, entry: tuple[int, str]) -> None:
        with self._lock:
            self._entries[key] = entry

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class RedisHashCache:
    """Hash cache shared between processes through the Redis substrate."""

    def __init__(self, *, redis: RedisSubstrate, namespace: str = "hash:") -> None:
        self._redis = redis
        self._namespace = namespace

    def get(self, key: str) -> tuple[int, str] | None:
        raw = self._redis.get_value(key=self._namespace + key)
        if raw is None:
            return None
        try:
            timestamp, digest = json.loads(raw)
        except (ValueError, TypeError):
            with log_context({fields.FILE_ID: key}):
                _LOGGER.warning("Dropping unreadable hash cache entry")
            self.delete(key)
            return None
        return int(timestamp), str(digest)

    def set(self, key: str, entry: tuple[int, str]) -> None:
        self._redis.set_value(
            key=self._namespace + key, value=json.dumps(list(entry)), ttl_seconds=None
        )

    def delete(self, key: str) -> None:
        self._redis.delete_value(key=self._namespace + key)

    def clear(self) -> None:
        self._redis.delete_prefix(prefix=self._namespace)


class FileHashingService:
    """Compute SHA-1 content hashes and cache them per filesystem and FileID."""

    def __init__(
        self,
        *,
        cache: HashCache | None = None,
        enabled: bool = True,
        chunk_bytes: int = 64 * 1024,
    ) -> None:
        self._cache: HashCache = cache if cache is not None else InMemoryHashCache()
        self._enabled = enabled
        self._chunk_bytes = chunk_bytes

    def compute_from_stream(self, stream: BinaryIO) -> str:
        """Hash a whole stream from its start."""
        if stream.seekable():
            stream.seek(0)
        digest = hashlib.new(HASH_ALGORITHM)
        while chunk := stream.read(self._chunk_bytes):
            digest.update(chunk)
        return digest.hexdigest()

    def compute_from_file(self, file_id: str, fs: AssetFilesystem) -> str:
        """Return the hash of one stored file, reading it only on cache miss."""
        cached = self.get(file_id, fs)
        if cached is not None:
            return cached
        with fs.read_stream(file_id) as stream:
            digest = self.compute_from_stream(stream)
        self.set(file_id, fs, digest)
        return digest

    @staticmethod
    def compare(hash_one: str, hash_two: str) -> bool:
        """Return whether either hash is a prefix of the other."""
        if not hash_one or not hash_two:
            raise ValueError("cannot compare empty hashes")
        return hash_one.startswith(hash_two) or hash_two.startswith(hash_one)

    def is_cached(self) -> bool:
        return self._enabled

    def enable_cache(self) -> None:
        self._enabled = True

    def disable_cache(self) -> None:
        """Stop caching and drop everything cached so far."""
        self._enabled = False
        self._cache.clear()

    def flush(self) -> None:
        self._cache.clear()

    def get(self, file_id: str, fs: AssetFilesystem) -> str | None:
        """Return a cached hash still valid for the file's current stamp."""
        if not self._enabled:
            return None
        key = self._key(file_id, fs)
        raw = self._cache.get(key)
        if raw is None:
            return None
        entry = HashCacheEntry(*raw)
        if not fs.file_exists(file_id) or fs.last_modified(file_id) != entry.timestamp:
            self._cache.delete(key)
            return None
        return entry.hash

    def set(self, file_id: str, fs: AssetFilesystem, hash: str) -> None:
        """Cache ``hash`` against the file's current stamp."""
        if not self._enabled or not fs.file_exists(file_id):
            return
        self._cache.set(self._key(file_id, fs), (fs.last_modified(file_id), hash))

    def invalidate(self, file_id: str, fs: AssetFilesystem) -> None:
        self._cache.delete(self._key(file_id, fs))

    def move(
        self,
        from_file_id: str,
        from_fs: AssetFilesystem,
        to_file_id: str,
        to_fs: AssetFilesystem | None = None,
    ) -> None:
        """Carry a cached hash to another key without reading the file."""
        target_fs = to_fs or from_fs
        source_key = self._key(from_file_id, from_fs)
        raw = self._cache.get(source_key) if self._enabled else None
        if raw is not None:
            entry = HashCacheEntry(*raw)
            stale = from_fs.file_exists(from_file_id) and (
                from_fs.last_modified(from_file_id) != entry.timestamp
            )
            if not stale:
                self.set(to_file_id, target_fs, entry.hash)
        self._cache.delete(source_key)

    @staticmethod
    def _key(file_id: str, fs: AssetFilesystem) -> str:
        return f"{fs.name}://{file_id}"
