from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, ClassVar

from autogen import ConversableAgent

from app.errors import GenerationError
from app.narrator.autogen_config import DEFAULT_MODEL, llm_config_from_env
from app.narrator.base import NarrativeRequest
from app.narrator.schema import NARRATIVE_TURN_SCHEMA, GeneratedTurn, parse_generated_turn


_SPEAKERS = {"assistant": "NARRATOR", "user": "PLAYER", "system": "NOTE"}


def _extract_last_content(messages: object) -> str:
    """Extract the last message content from AG2 chat history."""

    if not isinstance(messages, list):
        return ""

    for msg in reversed(messages):
        if isinstance(msg, dict):
            content = msg.get("content")
            if isinstance(content, str) and content.strip():
                return content.strip()
    return ""


def flatten_messages(messages: list[dict[str, str]]) -> str:
    """Render chat-style messages as a single transcript prompt.

    AG2's single-shot `run` takes one message, so prior turns travel as text.
    The final message (the player's current turn) is left unlabelled.
    """

    if not messages:
        return ""

    *earlier, current = messages
    parts: list[str] = []
    if earlier:
        lines = [f"{_SPEAKERS.get(m['role'], m['role'].upper())}: {m['content'].strip()}" for m in earlier]
        parts.append("STORY SO FAR:\n" + "\n\n".join(lines))
    parts.append(current["content"].strip())
    return "\n\n".join(parts)


@dataclass(slots=True)
class Ag2NarrativeGenerator:
    """Narrator backed by an AG2 `ConversableAgent`.

    AG2 keeps no server-side state between calls, so every request carries its
    history window. The blocking chat runs in a worker thread.

    Environment variables supported:
    - OPENAI_MODEL
    - OPENAI_API_KEY (optional if OPENAI_BASE_URL is set)
    - OPENAI_BASE_URL (for OpenAI-compatible servers like Ollama, e.g. http://127.0.0.1:11434/v1)
    """

    supports_continuation: ClassVar[bool] = False

    name: str = "narrator"
    model: str = DEFAULT_MODEL
    structured_output: bool = True

    async def generate(self, request: NarrativeRequest) -> GeneratedTurn:
        text = await asyncio.to_thread(self._run_chat, request)
        return parse_generated_turn(text)

    def _run_chat(self, request: NarrativeRequest) -> str:
        llm_config = llm_config_from_env(default_model=self.model)

        agent = ConversableAgent(
            name=self.name,
            system_message=request.instructions,
            llm_config=llm_config,
            human_input_mode="NEVER",
        )

        # AG2 forwards unknown kwargs through to the OpenAI client.
        extra: dict[str, Any] = {}
        if self.structured_output:
            extra["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": NARRATIVE_TURN_SCHEMA.name,
                    "schema": NARRATIVE_TURN_SCHEMA.schema,
                    "strict": NARRATIVE_TURN_SCHEMA.strict,
                },
            }

        prompt = flatten_messages(request.messages)
        result = agent.run(message=prompt, max_turns=1, **extra)
        result.process()

        text = _extract_last_content(list(result.messages))
        if not text or text == prompt.strip():
            summary = result.summary
            text = summary.strip() if isinstance(summary, str) else ""
        if not text:
            raise GenerationError("Narrator returned an empty response", retryable=True)
        return text
