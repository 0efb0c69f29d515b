from __future__ import annotations

import logging
from typing import Any

import openai

from app.errors import ContinuationExpired, GenerationError
from app.narrator.autogen_config import OpenAICompatibleSettings, resolve_api_key
from app.narrator.base import NarrativeRequest
from app.narrator.schema import GeneratedTurn, parse_generated_turn


logger = logging.getLogger(__name__)


def _is_unknown_previous_response(e: openai.APIStatusError) -> bool:
    if e.status_code not in (400, 404):
        return False
    code = getattr(e, "code", None)
    if code == "previous_response_not_found":
        return True
    return "previous response" in e.message.lower() or "previous_response" in e.message.lower()


class OpenAIResponsesGenerator:
    """Narrator backed by the OpenAI Responses API.

    The response id is handed back as the continuation token and sent as
    `previous_response_id` next turn, so the server keeps the conversation and
    we only send the new player action.
    """

    supports_continuation = True

    def __init__(
        self,
        *,
        settings: OpenAICompatibleSettings,
        client: Any | None = None,
        name: str = "narrator",
    ) -> None:
        self.name = name
        self.settings = settings
        self.client = client or openai.AsyncOpenAI(base_url=settings.base_url, api_key=resolve_api_key(settings))

    async def generate(self, request: NarrativeRequest) -> GeneratedTurn:
        kwargs: dict[str, Any] = {
            "model": self.settings.model,
            "instructions": request.instructions,
            "input": request.messages,
            "temperature": self.settings.temperature,
            "max_output_tokens": self.settings.max_tokens,
            "text": {"format": {"type": "json_object"}},
        }
        if request.continuation_token:
            kwargs["previous_response_id"] = request.continuation_token

        try:
            response = await self.client.responses.create(**kwargs)
        except openai.APITimeoutError as e:
            raise GenerationError("Narrator request timed out", retryable=True) from e
        except openai.APIStatusError as e:
            if request.continuation_token and _is_unknown_previous_response(e):
                raise ContinuationExpired(f"Narrator no longer knows response {request.continuation_token}") from e
            retryable = e.status_code == 429 or e.status_code >= 500
            logger.error("Narrator request failed with status %s: %s", e.status_code, e.message)
            raise GenerationError(f"Narrator request failed ({e.status_code}): {e.message}", retryable=retryable) from e
        except openai.APIError as e:
            raise GenerationError(f"Narrator request failed: {e}", retryable=True) from e

        turn = parse_generated_turn(response.output_text)
        return turn.model_copy(update={"continuation_token": response.id})
