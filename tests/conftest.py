from __future__ import annotations

import asyncio
from collections.abc import Callable, Generator
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from app.config import EngineSettings
from app.engine import SessionEngine
from app.errors import GenerationError
from app.narrator.base import NarrativeRequest
from app.narrator.schema import GeneratedTurn
from app.session_store import InMemorySessionStore


def make_turn(**overrides: Any) -> GeneratedTurn:
    """A narrator turn with three choices and no side effects unless overridden."""

    data: dict[str, Any] = {
        "narration": "The road winds on.",
        "choices": ["Go north", "Go south", "Rest"],
        "statChanges": {},
        "itemsFound": [],
        "itemsUsed": [],
    }
    data.update(overrides)
    return GeneratedTurn.model_validate(data)


@dataclass
class ScriptedGenerator:
    """Narrator stub that replays queued turns (or raises queued exceptions).

    Records every request it receives. When the queue runs dry it returns a
    plain default turn.
    """

    name: str = "scripted"
    supports_continuation: bool = False
    script: list[GeneratedTurn | Exception] = field(default_factory=list)
    requests: list[NarrativeRequest] = field(default_factory=list)
    token_prefix: str | None = None
    gate: asyncio.Event | None = None
    in_flight: int = 0
    max_in_flight: int = 0

    def queue(self, *items: GeneratedTurn | Exception) -> None:
        self.script.extend(items)

    async def generate(self, request: NarrativeRequest) -> GeneratedTurn:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            item = self.script.pop(0) if self.script else make_turn()
            if isinstance(item, Exception):
                raise item
            if self.token_prefix is not None and item.continuation_token is None:
                item = item.model_copy(update={"continuation_token": f"{self.token_prefix}-{len(self.requests)}"})
            return item
        finally:
            self.in_flight -= 1


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def generator() -> ScriptedGenerator:
    return ScriptedGenerator()


@pytest.fixture()
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture()
def settings() -> EngineSettings:
    return EngineSettings(narrator_timeout_seconds=2.0)


@pytest.fixture()
def engine(
    store: InMemorySessionStore, generator: ScriptedGenerator, settings: EngineSettings, clock: FakeClock
) -> SessionEngine:
    return SessionEngine(store=store, generator=generator, settings=settings, clock=clock)


@pytest.fixture()
def turn() -> Callable[..., GeneratedTurn]:
    return make_turn


@pytest.fixture()
def client(engine: SessionEngine) -> Generator[Any, None, None]:
    """FastAPI TestClient wired to the scripted engine."""

    from fastapi.testclient import TestClient

    from app.api.deps import init_engine, reset_engine_for_tests
    from app.main import app

    reset_engine_for_tests()
    init_engine(engine)
    with TestClient(app) as c:
        yield c
    reset_engine_for_tests()


@pytest.fixture()
def failing(generator: ScriptedGenerator) -> Callable[[str], None]:
    def _fail(message: str = "boom", *, retryable: bool = False) -> None:
        generator.queue(GenerationError(message, retryable=retryable))

    return _fail
