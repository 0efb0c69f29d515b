from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from uuid import uuid4

from app.api.models import (
    Session,
    SessionView,
    StoryTurn,
    ThemeInfo,
    TurnDeltas,
    TurnProjection,
)
from app.config import EngineSettings
from app.context_window import build_request
from app.errors import ContinuationExpired, GenerationError, InvalidInput, SessionNotFound
from app.fsm import SessionFSM
from app.inventory import add_items, remove_items
from app.lock import SessionLocks
from app.narrator.base import NarrativeGenerator, NarrativeRequest
from app.narrator.schema import GeneratedTurn
from app.progression import derive_phase, is_ending_window, record_turn_result
from app.session_store import SessionStore
from app.stats import apply_deltas, maybe_level_up
from app.sweeper import SessionSweeper
from app.themes import get_theme, list_themes


logger = logging.getLogger(__name__)

DEFAULT_CHARACTER_NAME = "Adventurer"
DEFAULT_GAME_OVER_REASON = "Your health has fallen to zero. Your adventure ends here."
GENERATOR_GAME_OVER_REASON = "The adventure has come to an end."


def _now() -> datetime:
    return datetime.now(tz=UTC)


class SessionEngine:
    """Owns session state and drives start/action transitions.

    Each transition works on a deep copy of the stored session and commits it
    only after the narrator call succeeded and every update has been applied,
    so a failed turn leaves the stored session untouched.
    """

    def __init__(
        self,
        *,
        store: SessionStore,
        generator: NarrativeGenerator,
        settings: EngineSettings | None = None,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self.store = store
        self.generator = generator
        self.settings = settings or EngineSettings()
        self.clock = clock
        self.locks = SessionLocks()

    # ---- queries ----

    def list_themes(self) -> list[ThemeInfo]:
        return list_themes()

    def is_expired(self, session: Session, *, now: datetime | None = None) -> bool:
        now = now or self.clock()
        return now - session.created_at >= self.settings.session_ttl

    def get_state(self, *, session_id: str) -> SessionView:
        # The view must not share objects with the stored session.
        session = self._load(session_id).model_copy(deep=True)
        return SessionView(
            session_id=session.session_id,
            theme=session.theme,
            character_name=session.character_name,
            created_at=session.created_at,
            phase=session.phase,
            turn_count=session.turn_count,
            stats=session.stats,
            inventory=list(session.inventory),
            achievements=list(session.achievements),
            major_choices=list(session.major_choices),
            relationships=dict(session.relationships),
            story_arc=session.story_arc,
            is_ending_window=is_ending_window(session.turn_count, self.settings.turn_budget),
            is_game_over=session.is_game_over,
            game_over_reason=session.game_over_reason,
            story_history=list(session.story_history),
        )

    # ---- transitions ----

    async def start(self, *, theme: str, character_name: str = "") -> TurnProjection:
        if not theme or not theme.strip():
            raise InvalidInput("Theme is required")
        theme_info = get_theme(theme)
        if theme_info is None:
            raise InvalidInput(f"Unknown theme: {theme}")

        now = self.clock()
        session = Session(
            session_id=str(uuid4()),
            theme=theme_info.id,
            character_name=character_name.strip() or DEFAULT_CHARACTER_NAME,
            created_at=now,
            last_updated_at=now,
        )

        result = await self._generate(session, player_action=None)

        session.continuation_token = result.continuation_token
        session.story_history.append(
            StoryTurn(narration=result.narration, choices=list(result.choices), timestamp=self.clock())
        )
        deltas = self._apply_turn(session, result)
        self._settle_game_over(session, result)
        self._require_choices(session)

        session.last_updated_at = self.clock()
        self.store.put(session)

        logger.info(
            "Started session %s (theme=%s, character=%s)", session.session_id, session.theme, session.character_name
        )
        return self._project(session, deltas=deltas)

    async def action(self, *, session_id: str, action: str) -> TurnProjection:
        if not action or not action.strip():
            raise InvalidInput("Action is required")
        action = action.strip()

        async with self.locks.hold(session_id):
            stored = self._load(session_id)

            if SessionFSM(stored).is_terminal:
                return self._project(stored, deltas=TurnDeltas())

            working = stored.model_copy(deep=True)
            working.turn_count += 1

            result = await self._generate(working, player_action=action)

            pending = working.pending_turn
            if pending is not None:
                pending.player_action = action
            working.story_history.append(
                StoryTurn(narration=result.narration, choices=list(result.choices), timestamp=self.clock())
            )
            working.continuation_token = result.continuation_token

            deltas = self._apply_turn(working, result)
            self._settle_game_over(working, result)
            self._require_choices(working)

            working.last_updated_at = self.clock()
            self.store.put(working)

        return self._project(working, deltas=deltas)

    def create_sweeper(self) -> SessionSweeper:
        return SessionSweeper(
            store=self.store,
            ttl=self.settings.session_ttl,
            interval=self.settings.sweep_interval,
            clock=self.clock,
            is_busy=self.locks.is_busy,
        )

    # ---- internals ----

    def _load(self, session_id: str) -> Session:
        session = self.store.get(session_id)
        if session is None or self.is_expired(session):
            raise SessionNotFound("Game session not found")
        return session

    async def _call_generator(self, request: NarrativeRequest) -> GeneratedTurn:
        try:
            return await asyncio.wait_for(
                self.generator.generate(request), timeout=self.settings.narrator_timeout_seconds
            )
        except TimeoutError as e:
            raise GenerationError("Narrator did not respond in time", retryable=True) from e
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(f"Failed to generate story: {e}") from e

    async def _generate(self, session: Session, *, player_action: str | None) -> GeneratedTurn:
        """Ask the narrator for the next turn of `session`.

        Prefers continuation mode when the backend supports it. If the token turns
        out to be unknown, it is cleared on `session` and the same turn is retried
        once with the verbatim history window.
        """

        use_continuation = self.generator.supports_continuation and session.continuation_token is not None
        request = build_request(
            session=session, player_action=player_action, settings=self.settings, use_continuation=use_continuation
        )
        try:
            return await self._call_generator(request)
        except ContinuationExpired:
            logger.warning("Continuation token expired for session %s; retrying with history", session.session_id)
        except GenerationError as e:
            logger.error("Narrator failed for session %s: %s", session.session_id, e)
            raise

        session.continuation_token = None
        request = build_request(
            session=session, player_action=player_action, settings=self.settings, use_continuation=False
        )
        try:
            return await self._call_generator(request)
        except ContinuationExpired as e:
            raise GenerationError("Narrator rejected the turn even without a continuation token") from e
        except GenerationError as e:
            logger.error("Narrator retry failed for session %s: %s", session.session_id, e)
            raise

    def _apply_turn(self, session: Session, result: GeneratedTurn) -> TurnDeltas:
        apply_deltas(session.stats, result.stat_changes)
        leveled_up = maybe_level_up(session.stats)
        if leveled_up:
            logger.info("Session %s reached level %d", session.session_id, session.stats.level)

        add_items(session.inventory, result.items_found)
        used = remove_items(session.inventory, result.items_used)

        gained = record_turn_result(session, result)
        if result.story_arc is None:
            session.story_arc = derive_phase(session.turn_count, self.settings.turn_budget)

        return TurnDeltas(
            stat_changes=dict(result.stat_changes),
            items_found=list(result.items_found),
            items_used=used,
            achievements_gained=gained,
            leveled_up=leveled_up,
        )

    def _settle_game_over(self, session: Session, result: GeneratedTurn) -> None:
        if not (result.is_game_over or session.stats.health <= 0):
            return

        if result.game_over_reason and result.game_over_reason.strip():
            reason = result.game_over_reason.strip()
        elif session.stats.health <= 0:
            reason = DEFAULT_GAME_OVER_REASON
        else:
            reason = GENERATOR_GAME_OVER_REASON

        fsm = SessionFSM(session)
        if not fsm.is_terminal:
            fsm.end_game(reason=reason)
            logger.info("Session %s is over after %d turn(s): %s", session.session_id, session.turn_count, reason)

    def _require_choices(self, session: Session) -> None:
        # Checked after game over is settled: a lethal turn may legitimately come without choices.
        if session.is_game_over or session.story_history[-1].choices:
            return
        logger.error("Narrator returned no choices for running session %s", session.session_id)
        raise GenerationError("Narrator returned no choices for a game that is still running")

    def _project(self, session: Session, *, deltas: TurnDeltas) -> TurnProjection:
        latest = session.story_history[-1] if session.story_history else None
        return TurnProjection(
            session_id=session.session_id,
            character_name=session.character_name,
            narration=latest.narration if latest is not None else "",
            # Presentation never offers choices once the game is over.
            choices=[] if session.is_game_over or latest is None else list(latest.choices),
            stats=session.stats.model_copy(),
            inventory=list(session.inventory),
            turn_count=session.turn_count,
            achievements=list(session.achievements),
            story_arc=session.story_arc,
            is_ending_window=is_ending_window(session.turn_count, self.settings.turn_budget),
            is_game_over=session.is_game_over,
            game_over_reason=session.game_over_reason,
            deltas=deltas,
        )
