from __future__ import annotations

from typing import cast

from app.config import EngineSettings
from app.narrator.ag2_backend import Ag2NarrativeGenerator
from app.narrator.autogen_config import DEFAULT_MODEL, settings_from_env
from app.narrator.base import NarrativeGenerator
from app.narrator.openai_backend import OpenAIResponsesGenerator


def create_default_generator(settings: EngineSettings) -> NarrativeGenerator:
    """Create the narrator selected by NARRATOR_BACKEND.

    `ag2` (default) resends a bounded history window every turn;
    `openai-responses` resumes server-side context via continuation tokens.
    """

    llm = settings_from_env(default_model=DEFAULT_MODEL)
    if settings.narrator_backend == "openai-responses":
        return cast(NarrativeGenerator, OpenAIResponsesGenerator(settings=llm))
    if settings.narrator_backend == "ag2":
        return cast(NarrativeGenerator, Ag2NarrativeGenerator(model=llm.model))
    raise ValueError(f"Unknown narrator backend: {settings.narrator_backend}")
