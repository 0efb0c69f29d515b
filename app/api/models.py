from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class StoryArc(StrEnum):
    beginning = "beginning"
    rising = "rising"
    climax = "climax"
    resolution = "resolution"
    ending = "ending"


class RelationshipLevel(StrEnum):
    allied = "allied"
    friendly = "friendly"
    neutral = "neutral"
    suspicious = "suspicious"
    hostile = "hostile"
    enemy = "enemy"


class SessionPhase(StrEnum):
    active = "active"
    game_over = "game_over"


class ThemeInfo(BaseModel):
    id: str
    name: str
    description: str
    icon: str


class CharacterStats(BaseModel):
    health: int = 100
    mana: int = 50
    strength: int = 10
    intelligence: int = 10
    charisma: int = 10
    level: int = 1
    experience: int = 0


class StoryTurn(BaseModel):
    narration: str
    choices: list[str] = Field(default_factory=list)
    # None while the turn is waiting for the player's response.
    player_action: str | None = None
    timestamp: datetime


class Session(BaseModel):
    session_id: str
    theme: str
    character_name: str
    created_at: datetime
    last_updated_at: datetime

    # Opaque handle the narrator uses to resume its own context.
    continuation_token: str | None = None

    turn_count: int = 0
    stats: CharacterStats = Field(default_factory=CharacterStats)
    inventory: list[str] = Field(default_factory=list)
    achievements: list[str] = Field(default_factory=list)
    major_choices: list[str] = Field(default_factory=list)
    relationships: dict[str, RelationshipLevel] = Field(default_factory=dict)
    story_arc: StoryArc = StoryArc.beginning

    is_game_over: bool = False
    game_over_reason: str | None = None

    story_history: list[StoryTurn] = Field(default_factory=list)

    @property
    def phase(self) -> SessionPhase:
        return SessionPhase.game_over if self.is_game_over else SessionPhase.active

    @property
    def pending_turn(self) -> StoryTurn | None:
        if self.story_history and self.story_history[-1].player_action is None:
            return self.story_history[-1]
        return None


class StartRequest(BaseModel):
    theme: str = Field(..., max_length=100)
    character_name: str = Field("", max_length=100)


class ActionRequest(BaseModel):
    session_id: str
    action: str = Field(..., max_length=2000)


class TurnDeltas(BaseModel):
    """What changed during a single turn, for player-facing notifications."""

    stat_changes: dict[str, int] = Field(default_factory=dict)
    items_found: list[str] = Field(default_factory=list)
    items_used: list[str] = Field(default_factory=list)
    achievements_gained: list[str] = Field(default_factory=list)
    leveled_up: bool = False


class TurnProjection(BaseModel):
    session_id: str
    character_name: str
    narration: str
    choices: list[str]
    stats: CharacterStats
    inventory: list[str]
    turn_count: int
    achievements: list[str]
    story_arc: StoryArc
    is_ending_window: bool
    is_game_over: bool
    game_over_reason: str | None = None
    deltas: TurnDeltas = Field(default_factory=TurnDeltas)


class SessionView(BaseModel):
    session_id: str
    theme: str
    character_name: str
    created_at: datetime
    phase: SessionPhase
    turn_count: int
    stats: CharacterStats
    inventory: list[str]
    achievements: list[str]
    major_choices: list[str]
    relationships: dict[str, RelationshipLevel]
    story_arc: StoryArc
    is_ending_window: bool
    is_game_over: bool
    game_over_reason: str | None = None
    story_history: list[StoryTurn]
