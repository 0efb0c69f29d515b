from __future__ import annotations

from typing import TYPE_CHECKING

from app.api.models import Session, StoryArc

if TYPE_CHECKING:
    from app.narrator.schema import GeneratedTurn


DEFAULT_TURN_BUDGET = 450

# (upper bound on progress %, arc) checked in order; anything above the last is `ending`.
_ARC_THRESHOLDS: tuple[tuple[float, StoryArc], ...] = (
    (20, StoryArc.beginning),
    (50, StoryArc.rising),
    (75, StoryArc.climax),
    (95, StoryArc.resolution),
)


def progress_percent(turn_count: int, total_budget: int) -> float:
    if total_budget <= 0:
        return 100.0
    return min(100.0, turn_count / total_budget * 100)


def derive_phase(turn_count: int, total_budget: int = DEFAULT_TURN_BUDGET) -> StoryArc:
    """Suggested story arc for a turn count.

    This is only a pacing hint; when the narrator reports its own arc that wins.
    """

    progress = progress_percent(turn_count, total_budget)
    for bound, arc in _ARC_THRESHOLDS:
        if progress < bound:
            return arc
    return StoryArc.ending


def is_ending_window(turn_count: int, total_budget: int = DEFAULT_TURN_BUDGET) -> bool:
    return turn_count >= total_budget


def record_turn_result(session: Session, result: GeneratedTurn) -> list[str]:
    """Fold achievements, major choices, relationships and arc into the session.

    Returns the achievements gained this turn.
    """

    gained = [a for a in result.achievements if a.strip()]
    session.achievements.extend(gained)

    if result.major_choice and result.major_choice.strip():
        session.major_choices.append(result.major_choice.strip())

    session.relationships.update(result.relationships)

    if result.story_arc is not None:
        session.story_arc = result.story_arc

    return gained
