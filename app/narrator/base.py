from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from app.narrator.schema import GeneratedTurn


@dataclass(frozen=True, slots=True)
class NarrativeRequest:
    theme: str
    # Full system prompt: narrator rules, world, character and pacing.
    instructions: str
    # Chat-style messages ({"role", "content"}), ending with the player's turn.
    messages: list[dict[str, str]] = field(default_factory=list)
    player_action: str | None = None
    continuation_token: str | None = None


class NarrativeGenerator(Protocol):
    name: str
    # Whether the backend can resume from a continuation token instead of history.
    supports_continuation: bool

    async def generate(self, request: NarrativeRequest) -> GeneratedTurn:  # pragma: no cover
        ...
