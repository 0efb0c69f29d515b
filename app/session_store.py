from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import datetime
from typing import Protocol

import redis

from app.api.models import Session
from app.config import EngineSettings


logger = logging.getLogger(__name__)

SESSIONS_SET_KEY = "rpg:sessions"
SESSION_KEY_PREFIX = "rpg:session:"  # + {session_id}


class SessionStore(Protocol):
    """Minimum storage the engine needs: keyed get/put/delete plus ages for expiry."""

    def get(self, session_id: str) -> Session | None:  # pragma: no cover
        ...

    def put(self, session: Session) -> None:  # pragma: no cover
        ...

    def delete(self, session_id: str) -> None:  # pragma: no cover
        ...

    def iter_ages(self) -> Iterator[tuple[str, datetime]]:  # pragma: no cover
        ...


class InMemorySessionStore:
    """Process-local store. Sessions vanish on restart."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def put(self, session: Session) -> None:
        self._sessions[session.session_id] = session

    def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def iter_ages(self) -> Iterator[tuple[str, datetime]]:
        # Snapshot so callers may delete while iterating.
        for sid, session in list(self._sessions.items()):
            yield sid, session.created_at

    def __len__(self) -> int:
        return len(self._sessions)


def _session_key(session_id: str) -> str:
    return f"{SESSION_KEY_PREFIX}{session_id}"


class RedisSessionStore:
    """Sessions as JSON blobs in Redis, with a set indexing the live ids."""

    def __init__(self, r: redis.Redis) -> None:
        self.r = r

    def get(self, session_id: str) -> Session | None:
        raw = self.r.get(_session_key(session_id))
        if not raw:
            return None
        return Session.model_validate_json(raw)

    def put(self, session: Session) -> None:
        # redis-py is synchronous; explicit alias helps some IDEs avoid thinking these are coroutines.
        r_sync = self.r  # type: ignore[assignment]
        pipe = r_sync.pipeline()
        pipe.set(_session_key(session.session_id), session.model_dump_json())
        pipe.sadd(SESSIONS_SET_KEY, session.session_id)
        pipe.execute()

    def delete(self, session_id: str) -> None:
        pipe = self.r.pipeline()
        pipe.delete(_session_key(session_id))
        pipe.srem(SESSIONS_SET_KEY, session_id)
        pipe.execute()

    def iter_ages(self) -> Iterator[tuple[str, datetime]]:
        for sid in sorted(self.r.smembers(SESSIONS_SET_KEY)):
            session = self.get(sid)
            if session is None:
                # Index entry without a body (e.g. key evicted); tidy it up.
                logger.debug("Dropping stale session index entry %s", sid)
                self.r.srem(SESSIONS_SET_KEY, sid)
                continue
            yield sid, session.created_at


def create_store(settings: EngineSettings) -> SessionStore:
    if settings.session_store == "redis":
        # decode_responses=True => strings in/out instead of bytes
        return RedisSessionStore(redis.Redis.from_url(settings.redis_url, decode_responses=True))
    if settings.session_store == "memory":
        return InMemorySessionStore()
    raise ValueError(f"Unknown session store: {settings.session_store}")
