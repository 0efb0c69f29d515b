from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.api.models import RelationshipLevel, StoryArc
from app.errors import GenerationError


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class JsonSchema:
    """Minimal JSON Schema wrapper for OpenAI-style structured outputs."""

    name: str
    schema: dict[str, Any]
    strict: bool = True


class GeneratedTurn(BaseModel):
    """One narrator turn as parsed from the model's JSON.

    Field names are snake_case here and camelCase on the wire.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    narration: str = Field(..., min_length=1)
    choices: list[str]
    stat_changes: dict[str, int] = Field(default_factory=dict)
    items_found: list[str] = Field(default_factory=list)
    items_used: list[str] = Field(default_factory=list)
    achievements: list[str] = Field(default_factory=list)
    major_choice: str | None = None
    relationships: dict[str, RelationshipLevel] = Field(default_factory=dict)
    story_arc: StoryArc | None = None
    is_game_over: bool = False
    game_over_reason: str | None = None

    # Set by the backend, not by the model.
    continuation_token: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _nulls_to_empty(cls, data: Any) -> Any:
        # Models like to send `null` for "nothing this turn".
        if not isinstance(data, dict):
            return data
        out = dict(data)
        for key in ("statChanges", "stat_changes", "relationships"):
            if key in out and out[key] is None:
                out[key] = {}
        for key in ("itemsFound", "items_found", "itemsUsed", "items_used", "achievements"):
            if key in out and out[key] is None:
                out[key] = []
        return out

    @field_validator("narration")
    @classmethod
    def _strip_narration(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("narration must not be blank")
        return v

    @field_validator("choices", "items_found", "items_used", "achievements")
    @classmethod
    def _drop_blank_strings(cls, v: list[str]) -> list[str]:
        return [s.strip() for s in v if s.strip()]

    @field_validator("relationships", mode="before")
    @classmethod
    def _normalize_relationships(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {str(k): (val.strip().lower() if isinstance(val, str) else val) for k, val in v.items()}
        return v

    @field_validator("story_arc", mode="before")
    @classmethod
    def _normalize_arc(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v


NARRATIVE_TURN_SCHEMA = JsonSchema(
    name="narrative_turn",
    schema={
        "type": "object",
        "properties": {
            "narration": {"type": "string", "minLength": 1},
            "choices": {"type": "array", "items": {"type": "string"}, "maxItems": 4},
            "statChanges": {"type": "object", "additionalProperties": {"type": "integer"}},
            "itemsFound": {"type": "array", "items": {"type": "string"}},
            "itemsUsed": {"type": "array", "items": {"type": "string"}},
            "achievements": {"type": "array", "items": {"type": "string"}},
            "majorChoice": {"type": ["string", "null"]},
            "relationships": {
                "type": "object",
                "additionalProperties": {"type": "string", "enum": [r.value for r in RelationshipLevel]},
            },
            "storyArc": {"type": "string", "enum": [a.value for a in StoryArc]},
            "isGameOver": {"type": "boolean"},
            "gameOverReason": {"type": ["string", "null"]},
        },
        "required": ["narration", "choices", "statChanges", "itemsFound", "itemsUsed"],
    },
    # Free-form relationship keys rule out strict mode.
    strict=False,
)


_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    m = _FENCE_RE.match(text)
    return m.group(1) if m else text


def parse_generated_turn(text: str) -> GeneratedTurn:
    """Parse and validate narrator output.

    Anything that is not a JSON object matching GeneratedTurn raises GenerationError.
    An empty choice list is left for the engine to judge, since only it knows
    whether the turn ended the game.
    """

    try:
        data = json.loads(_strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise GenerationError(f"Narrator returned invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise GenerationError("Narrator returned JSON that is not an object")

    try:
        turn = GeneratedTurn.model_validate(data)
    except ValidationError as e:
        raise GenerationError(f"Narrator response failed validation: {e.error_count()} error(s): {e}") from e

    if not turn.is_game_over and not 3 <= len(turn.choices) <= 4:
        logger.warning("Narrator returned %d choices (expected 3-4)", len(turn.choices))

    return turn
