from __future__ import annotations

import pytest

from app.api.models import RelationshipLevel, Session, StoryArc
from app.narrator.schema import GeneratedTurn
from app.progression import derive_phase, is_ending_window, progress_percent, record_turn_result


@pytest.mark.parametrize(
    ("turn_count", "expected"),
    [
        (0, StoryArc.beginning),
        (89, StoryArc.beginning),
        (90, StoryArc.rising),
        (224, StoryArc.rising),
        (225, StoryArc.climax),
        (337, StoryArc.climax),
        (338, StoryArc.resolution),
        (427, StoryArc.resolution),
        (428, StoryArc.ending),
        (10_000, StoryArc.ending),
    ],
)
def test_derive_phase_thresholds(turn_count: int, expected: StoryArc) -> None:
    assert derive_phase(turn_count, 450) == expected


def test_progress_is_capped_at_100() -> None:
    assert progress_percent(900, 450) == 100.0


def test_ending_window_boundary() -> None:
    assert is_ending_window(449, 450) is False
    assert is_ending_window(450, 450) is True
    assert is_ending_window(451, 450) is True


def _session() -> Session:
    return Session.model_validate(
        {
            "session_id": "s1",
            "theme": "cyberpunk",
            "character_name": "Vex",
            "created_at": "2025-01-01T00:00:00Z",
            "last_updated_at": "2025-01-01T00:00:00Z",
            "achievements": ["First Blood"],
            "relationships": {"Fixer": "neutral", "Arasaka": "hostile"},
        }
    )


def test_record_turn_result_accumulates() -> None:
    session = _session()
    result = GeneratedTurn.model_validate(
        {
            "narration": "You cut a deal.",
            "choices": ["a", "b", "c"],
            "achievements": ["First Blood", "Dealmaker"],
            "majorChoice": "Sided with the Fixer",
            "relationships": {"Fixer": "Allied"},
            "storyArc": "rising",
        }
    )

    gained = record_turn_result(session, result)

    assert gained == ["First Blood", "Dealmaker"]
    assert session.achievements == ["First Blood", "First Blood", "Dealmaker"]
    assert session.major_choices == ["Sided with the Fixer"]
    assert session.relationships == {"Fixer": RelationshipLevel.allied, "Arasaka": RelationshipLevel.hostile}
    assert session.story_arc == StoryArc.rising


def test_record_turn_result_leaves_arc_when_not_supplied() -> None:
    session = _session()
    session.story_arc = StoryArc.climax
    result = GeneratedTurn.model_validate({"narration": "Quiet.", "choices": ["a", "b", "c"]})

    assert record_turn_result(session, result) == []
    assert session.story_arc == StoryArc.climax
    assert session.major_choices == []
