from __future__ import annotations

from datetime import UTC, datetime, timedelta

import fakeredis
import pytest

from app.api.models import Session, StoryTurn
from app.config import EngineSettings
from app.session_store import (
    SESSION_KEY_PREFIX,
    SESSIONS_SET_KEY,
    InMemorySessionStore,
    RedisSessionStore,
    create_store,
)

_T0 = datetime(2025, 1, 1, tzinfo=UTC)


def _session(sid: str, *, age_hours: int = 0) -> Session:
    created = _T0 - timedelta(hours=age_hours)
    return Session(
        session_id=sid,
        theme="horror-gothic",
        character_name="Mina",
        created_at=created,
        last_updated_at=created,
        inventory=["Candle", "Candle"],
        story_history=[StoryTurn(narration="The manor looms.", choices=["Knock", "Leave"], timestamp=created)],
    )


@pytest.fixture(params=["memory", "redis"])
def any_store(request: pytest.FixtureRequest):
    if request.param == "memory":
        return InMemorySessionStore()
    return RedisSessionStore(fakeredis.FakeRedis(decode_responses=True))


def test_put_get_round_trip(any_store) -> None:
    s = _session("a")
    any_store.put(s)

    loaded = any_store.get("a")
    assert loaded is not None
    assert loaded.model_dump() == s.model_dump()


def test_get_missing_is_none(any_store) -> None:
    assert any_store.get("ghost") is None


def test_delete_is_idempotent(any_store) -> None:
    any_store.put(_session("a"))
    any_store.delete("a")
    any_store.delete("a")
    assert any_store.get("a") is None


def test_iter_ages_reports_creation_time(any_store) -> None:
    any_store.put(_session("old", age_hours=30))
    any_store.put(_session("new"))

    ages = dict(any_store.iter_ages())
    assert ages == {"old": _T0 - timedelta(hours=30), "new": _T0}


def test_iter_ages_tolerates_deletion_while_iterating(any_store) -> None:
    for sid in ("a", "b", "c"):
        any_store.put(_session(sid))
    for sid, _created in any_store.iter_ages():
        any_store.delete(sid)
    assert list(any_store.iter_ages()) == []


def test_redis_layout() -> None:
    r = fakeredis.FakeRedis(decode_responses=True)
    store = RedisSessionStore(r)
    store.put(_session("a"))

    assert r.sismember(SESSIONS_SET_KEY, "a")
    assert r.get(f"{SESSION_KEY_PREFIX}a") is not None

    store.delete("a")
    assert not r.sismember(SESSIONS_SET_KEY, "a")
    assert r.get(f"{SESSION_KEY_PREFIX}a") is None


def test_redis_drops_dangling_index_entries() -> None:
    r = fakeredis.FakeRedis(decode_responses=True)
    store = RedisSessionStore(r)
    store.put(_session("a"))
    r.delete(f"{SESSION_KEY_PREFIX}a")

    assert list(store.iter_ages()) == []
    assert not r.sismember(SESSIONS_SET_KEY, "a")


def test_create_store_memory() -> None:
    assert isinstance(create_store(EngineSettings(session_store="memory")), InMemorySessionStore)


def test_create_store_rejects_unknown_backend() -> None:
    with pytest.raises(ValueError):
        create_store(EngineSettings(session_store="sqlite"))


def test_create_store_redis_is_lazy() -> None:
    store = create_store(EngineSettings(session_store="redis", redis_url="redis://localhost:6399/0"))
    assert isinstance(store, RedisSessionStore)
