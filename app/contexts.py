from __future__ import annotations

from app.core.context import BaseNarratorContext, WorldContext
from app.prompts import load_prompt
from app.themes import get_theme, world_description


def make_base_narrator_context(*, system_prefix: str = "") -> BaseNarratorContext:
    """Construct the base narrator context shared by all sessions.

    The shared context holds the narrator rules and JSON response format from
    prompts/narrator_rules.txt. Extra system-level instructions can be
    prepended via system_prefix.
    """

    rules = load_prompt("narrator_rules.txt")
    parts: list[str] = []
    if system_prefix.strip():
        parts.append(system_prefix.strip())
    parts.append(rules.strip())

    return BaseNarratorContext(system_prompt="\n\n".join(parts).strip())


def make_world_context(theme_id: str) -> WorldContext:
    theme = get_theme(theme_id)
    if theme is None:
        raise ValueError(f"Unknown theme: {theme_id}")
    return WorldContext(theme_id=theme.id, theme_name=theme.name, description=world_description(theme.id))
