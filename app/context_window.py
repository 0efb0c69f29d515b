from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass

from app.api.models import Session, StoryTurn
from app.config import EngineSettings
from app.contexts import make_base_narrator_context, make_world_context
from app.core.context import CharacterContext, PacingContext, compose_context
from app.narrator.base import NarrativeRequest
from app.progression import derive_phase, is_ending_window, progress_percent
from app.prompts import render_prompt
from app.stats import experience_threshold, health_cap, mana_cap


HISTORY_WINDOW = 3
SUMMARY_ACTION_LIMIT = 5
SUMMARY_PREFIX = "Earlier in the adventure: "
SUMMARY_PLACEHOLDER = "The story started with an introduction to the world."

# How many recent entries of each list make it into the status line.
_STATUS_RECENT = 3


@dataclass(frozen=True, slots=True)
class HistoryWindow:
    """History as sent to the narrator: an optional summary, then verbatim turns."""

    summary: str | None
    turns: list[StoryTurn]

    def as_messages(self) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if self.summary is not None:
            messages.append({"role": "assistant", "content": self.summary})
        for turn in self.turns:
            messages.append(
                {
                    "role": "assistant",
                    "content": json.dumps({"narration": turn.narration, "choices": turn.choices}),
                }
            )
            if turn.player_action:
                messages.append({"role": "user", "content": f"Player chose: {turn.player_action}"})
        return messages


def summarize_turns(turns: Sequence[StoryTurn], *, limit: int = SUMMARY_ACTION_LIMIT) -> str:
    """One-sentence recap of the player's last few actions in `turns`."""

    actions = [t.player_action.strip() for t in turns if t.player_action and t.player_action.strip()]
    if not actions:
        return SUMMARY_PLACEHOLDER
    return SUMMARY_PREFIX + "; then ".join(actions[-limit:]) + "."


def build_history_window(history: Sequence[StoryTurn], *, window: int = HISTORY_WINDOW) -> HistoryWindow:
    """Keep the last `window` turns verbatim and fold anything older into one summary."""

    if len(history) <= window:
        return HistoryWindow(summary=None, turns=list(history))

    collapsed = history[:-window]
    return HistoryWindow(summary=summarize_turns(collapsed), turns=list(history[-window:]))


def status_line(session: Session, *, turn_budget: int) -> str:
    """Compact snapshot of the character and story for the narrator."""

    s = session.stats
    progress = progress_percent(session.turn_count, turn_budget)
    lines = [
        "Current Character Status:",
        f"- Turn {session.turn_count} of {turn_budget} ({progress:.0f}% through the story), "
        f"arc: {session.story_arc.value}",
        f"- Level {s.level} (experience {s.experience}/{experience_threshold(s.level)})",
        f"- Health: {s.health}/{health_cap(s.level)}",
        f"- Mana: {s.mana}/{mana_cap(s.level)}",
        f"- Strength: {s.strength}",
        f"- Intelligence: {s.intelligence}",
        f"- Charisma: {s.charisma}",
        f"- Inventory: {', '.join(session.inventory) if session.inventory else '(empty)'}",
    ]
    if session.achievements:
        lines.append(f"- Recent achievements: {'; '.join(session.achievements[-_STATUS_RECENT:])}")
    if session.major_choices:
        lines.append(f"- Major choices: {'; '.join(session.major_choices[-_STATUS_RECENT:])}")
    if session.relationships:
        rels = ", ".join(f"{name}: {level.value}" for name, level in session.relationships.items())
        lines.append(f"- Relationships: {rels}")
    return "\n".join(lines)


def _player_message(session: Session, player_action: str | None, *, turn_budget: int) -> dict[str, str]:
    status = status_line(session, turn_budget=turn_budget)
    if player_action is None:
        content = render_prompt("opening.txt", character_name=session.character_name, status=status)
    else:
        content = render_prompt("continue.txt", player_action=player_action, status=status)
    return {"role": "user", "content": content.strip()}


def build_instructions(session: Session, *, turn_budget: int) -> str:
    rendered = compose_context(
        base=make_base_narrator_context(),
        world=make_world_context(session.theme),
        character=CharacterContext(name=session.character_name),
        pacing=PacingContext(
            turn_count=session.turn_count,
            turn_budget=turn_budget,
            suggested_arc=derive_phase(session.turn_count, turn_budget).value,
            ending_window=is_ending_window(session.turn_count, turn_budget),
        ),
    )
    return rendered.system_prompt


def build_request(
    *,
    session: Session,
    player_action: str | None,
    settings: EngineSettings,
    use_continuation: bool,
) -> NarrativeRequest:
    """Build the narrator request for the next turn.

    With `use_continuation` (and a token on the session) only the player's turn
    is sent and the narrator resumes from its own stored context. Otherwise the
    history window goes along verbatim.
    """

    current = _player_message(session, player_action, turn_budget=settings.turn_budget)
    instructions = build_instructions(session, turn_budget=settings.turn_budget)

    if use_continuation and session.continuation_token:
        return NarrativeRequest(
            theme=session.theme,
            instructions=instructions,
            messages=[current],
            player_action=player_action,
            continuation_token=session.continuation_token,
        )

    window = build_history_window(session.story_history, window=settings.history_window)
    return NarrativeRequest(
        theme=session.theme,
        instructions=instructions,
        messages=[*window.as_messages(), current],
        player_action=player_action,
        continuation_token=None,
    )
