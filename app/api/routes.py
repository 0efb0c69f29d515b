from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_engine
from app.api.models import ActionRequest, SessionView, StartRequest, ThemeInfo, TurnProjection
from app.engine import SessionEngine
from app.errors import GenerationError, InvalidInput, SessionNotFound

logger = logging.getLogger(__name__)

router = APIRouter()


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, InvalidInput):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    if isinstance(e, SessionNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, GenerationError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE if e.retryable else status.HTTP_502_BAD_GATEWAY
        return HTTPException(status_code=code, detail=f"Failed to generate story: {e}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/game/themes", response_model=list[ThemeInfo])
async def list_themes_route(engine: SessionEngine = Depends(get_engine)) -> list[ThemeInfo]:
    return engine.list_themes()


@router.post("/game/start", response_model=TurnProjection, status_code=status.HTTP_201_CREATED)
async def start_game_route(payload: StartRequest, engine: SessionEngine = Depends(get_engine)) -> TurnProjection:
    try:
        return await engine.start(theme=payload.theme, character_name=payload.character_name)
    except (InvalidInput, GenerationError) as e:
        if isinstance(e, GenerationError):
            logger.error("Error starting game: %s", e)
        raise _http_error(e) from e


@router.post("/game/action", response_model=TurnProjection)
async def action_route(payload: ActionRequest, engine: SessionEngine = Depends(get_engine)) -> TurnProjection:
    try:
        return await engine.action(session_id=payload.session_id, action=payload.action)
    except (InvalidInput, SessionNotFound, GenerationError) as e:
        if isinstance(e, GenerationError):
            logger.error("Error processing action for session %s: %s", payload.session_id, e)
        raise _http_error(e) from e


@router.get("/game/state/{session_id}", response_model=SessionView)
async def get_state_route(session_id: str, engine: SessionEngine = Depends(get_engine)) -> SessionView:
    try:
        return engine.get_state(session_id=session_id)
    except SessionNotFound as e:
        raise _http_error(e) from e
