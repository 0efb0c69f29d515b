from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class BaseNarratorContext:
    """Global narrator rules shared by every session."""

    system_prompt: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class WorldContext:
    """The session's setting, from the theme catalog."""

    theme_id: str
    theme_name: str
    description: str


@dataclass(frozen=True, slots=True)
class CharacterContext:
    name: str


@dataclass(frozen=True, slots=True)
class PacingContext:
    """Where the story stands relative to the turn budget."""

    turn_count: int
    turn_budget: int
    suggested_arc: str
    ending_window: bool


@dataclass(frozen=True, slots=True)
class RenderedContext:
    """Final, merged system prompt passed to the narrator."""

    system_prompt: str

    def as_messages(self) -> list[dict[str, str]]:
        return [{"role": "system", "content": self.system_prompt}]


def _pacing_lines(pacing: PacingContext) -> list[str]:
    lines = [
        "STORY PACING:",
        f"- turn: {pacing.turn_count} of about {pacing.turn_budget}",
        f"- suggested story arc: {pacing.suggested_arc}",
    ]
    if pacing.ending_window:
        lines.append(
            "- the adventure has reached its planned length: steer toward a satisfying conclusion "
            "and end the game when it arrives"
        )
    else:
        lines.append("- do not end the game early unless the character dies or fails irrecoverably")
    return lines


def compose_context(
    *,
    base: BaseNarratorContext,
    world: WorldContext,
    character: CharacterContext,
    pacing: PacingContext,
) -> RenderedContext:
    parts: list[str] = []
    parts.append(base.system_prompt.strip())

    parts.append(
        "\n".join(
            [
                "WORLD CONTEXT:",
                f"- theme: {world.theme_name} ({world.theme_id})",
                f"- setting: the adventure takes place in {world.description}",
            ]
        ).strip()
    )

    parts.append(
        "\n".join(
            [
                "CHARACTER CONTEXT:",
                f"- name: {character.name}",
            ]
        ).strip()
    )

    parts.append("\n".join(_pacing_lines(pacing)).strip())

    system_prompt = "\n\n".join([p for p in parts if p.strip()]).strip()
    return RenderedContext(system_prompt=system_prompt)
