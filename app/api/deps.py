from __future__ import annotations

import logging

from app.config import EngineSettings, settings_from_env
from app.engine import SessionEngine
from app.narrator.factory import create_default_generator
from app.session_store import create_store


logger = logging.getLogger(__name__)

_ENGINE: SessionEngine | None = None


def build_default_engine(settings: EngineSettings | None = None) -> SessionEngine:
    settings = settings or settings_from_env()
    logger.info(
        "Building session engine (store=%s, narrator=%s, turn_budget=%d)",
        settings.session_store,
        settings.narrator_backend,
        settings.turn_budget,
    )
    return SessionEngine(
        store=create_store(settings),
        generator=create_default_generator(settings),
        settings=settings,
    )


def init_engine(engine: SessionEngine | None = None) -> SessionEngine:
    """Create the process-wide engine once and cache it.

    Safe to call multiple times; subsequent calls return the already built instance.
    """

    global _ENGINE
    if _ENGINE is None:
        _ENGINE = engine or build_default_engine()
    return _ENGINE


def reset_engine_for_tests() -> None:
    global _ENGINE
    _ENGINE = None


def get_engine() -> SessionEngine:
    if _ENGINE is None:
        raise RuntimeError("Engine not initialized. Call init_engine() at startup.")
    return _ENGINE
