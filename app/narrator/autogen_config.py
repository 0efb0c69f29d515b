from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from autogen import LLMConfig


DEFAULT_MODEL = "gpt-4o-mini"


@dataclass(frozen=True, slots=True)
class OpenAICompatibleSettings:
    model: str
    base_url: str | None
    api_key: str | None
    temperature: float = 0.8
    max_tokens: int = 1000


def settings_from_env(*, default_model: str = DEFAULT_MODEL) -> OpenAICompatibleSettings:
    return OpenAICompatibleSettings(
        model=os.environ.get("OPENAI_MODEL", default_model),
        # For Ollama, typically http://127.0.0.1:11434/v1
        base_url=os.environ.get("OPENAI_BASE_URL"),
        api_key=os.environ.get("OPENAI_API_KEY"),
        temperature=float(os.environ.get("NARRATOR_TEMPERATURE", "0.8")),
        max_tokens=int(os.environ.get("NARRATOR_MAX_TOKENS", "1000")),
    )


def resolve_api_key(s: OpenAICompatibleSettings) -> str:
    # Many OpenAI-compatible servers ignore the key but the SDKs require one.
    api_key = s.api_key or ("ollama" if s.base_url else None)
    if not api_key:
        raise RuntimeError(
            "Set OPENAI_API_KEY for hosted OpenAI, or set OPENAI_BASE_URL for a local OpenAI-compatible server"
        )
    return api_key


def llm_config_from_env(*, default_model: str = DEFAULT_MODEL) -> LLMConfig:
    s = settings_from_env(default_model=default_model)

    # AG2 expects a 'config_list' similar to OAI_CONFIG_LIST.
    config: dict[str, Any] = {
        "model": s.model,
        "api_key": resolve_api_key(s),
        "temperature": s.temperature,
        "max_tokens": s.max_tokens,
    }
    if s.base_url:
        config["base_url"] = s.base_url

    return LLMConfig(config_list=[config])
