from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta


NARRATOR_BACKENDS = ("ag2", "openai-responses")
SESSION_STORES = ("memory", "redis")


@dataclass(frozen=True, slots=True)
class EngineSettings:
    # Turns after which the story is expected to wrap up.
    turn_budget: int = 450
    # Turns of history sent verbatim when no continuation token is usable.
    history_window: int = 3
    session_ttl: timedelta = timedelta(hours=24)
    sweep_interval: timedelta = timedelta(hours=1)
    narrator_timeout_seconds: float = 60.0
    narrator_backend: str = "ag2"
    session_store: str = "memory"
    redis_url: str = "redis://localhost:6379/0"


def _env_int(name: str, default: int, *, minimum: int = 1) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def _env_choice(name: str, default: str, choices: tuple[str, ...]) -> str:
    value = os.environ.get(name, default).strip().lower() or default
    if value not in choices:
        raise ValueError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return value


def settings_from_env() -> EngineSettings:
    """Read engine settings from the environment (a `.env` is loaded at app startup)."""

    defaults = EngineSettings()
    return EngineSettings(
        turn_budget=_env_int("STORY_TURN_BUDGET", defaults.turn_budget),
        history_window=_env_int("STORY_HISTORY_WINDOW", defaults.history_window),
        session_ttl=timedelta(
            seconds=_env_int("SESSION_TTL_SECONDS", int(defaults.session_ttl.total_seconds()))
        ),
        sweep_interval=timedelta(
            seconds=_env_int("SESSION_SWEEP_INTERVAL_SECONDS", int(defaults.sweep_interval.total_seconds()))
        ),
        narrator_timeout_seconds=_env_float("NARRATOR_TIMEOUT_SECONDS", defaults.narrator_timeout_seconds),
        narrator_backend=_env_choice("NARRATOR_BACKEND", defaults.narrator_backend, NARRATOR_BACKENDS),
        session_store=_env_choice("SESSION_STORE", defaults.session_store, SESSION_STORES),
        redis_url=os.environ.get("REDIS_URL", defaults.redis_url),
    )
