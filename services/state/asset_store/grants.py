"""Session-scoped grants to view protected FileIDs."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from threading import Lock

from resources.substrates.redis.substrate import RedisSubstrate

_SESSION_ID: ContextVar[str | None] = ContextVar("asset_grant_session", default=None)


def current_session() -> str | None:
    """Return the session id bound to the current context, if any."""
    return _SESSION_ID.get()


@contextmanager
def grant_session(session_id: str | None) -> Iterator[None]:
    """Bind ``session_id`` as the grant holder for the enclosed calls."""
    token = _SESSION_ID.set(session_id or None)
    try:
        yield
    finally:
        _SESSION_ID.reset(token)


class InMemoryGrantStore:
    """Process-local grant lists."""

    def __init__(self) -> None:
        self._grants: dict[str, frozenset[str]] = {}
        self._lock = Lock()

    def get(self, session_id: str) -> frozenset[str]:
        with self._lock:
            return self._grants.get(session_id, frozenset())

    def set(self, session_id: str, grants: frozenset[str]) -> None:
        with self._lock:
            if grants:
                self._grants[session_id] = frozenset(grants)
            else:
                self._grants.pop(session_id, None)

    def clear(self, session_id: str) -> None:
        with self._lock:
            self._grants.pop(session_id, None)


class RedisGrantStore:
    """Grant lists stored as JSON arrays under ``grants:<session>``."""

    def __init__(
        self,
        *,
        redis: RedisSubstrate,
        ttl_seconds: int | None = None,
        namespace: str = "grants:",
    ) -> None:
        self._redis = redis
        self._ttl_seconds = ttl_seconds
        self._namespace = namespace

    def get(self, session_id: str) -> frozenset[str]:
        raw = self._redis.get_value(key=self._namespace + session_id)
        if raw is None:
            return frozenset()
        return frozenset(str(item) for item in json.loads(raw))

    def set(self, session_id: str, grants: frozenset[str]) -> None:
        if not grants:
            self.clear(session_id)
            return
        self._redis.set_value(
            key=self._namespace + session_id,
            value=json.dumps(sorted(grants)),
            ttl_seconds=self._ttl_seconds,
        )

    def clear(self, session_id: str) -> None:
        self._redis.delete_value(key=self._namespace + session_id)
