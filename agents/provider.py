"""Agent provider — builds PydanticAI model instances from settings.

Model names use the ``"provider/model"`` convention, e.g.
``"gemini/gemini-2.0-flash"`` or ``"openai/gpt-4o-mini"``.
"""

from __future__ import annotations

import logging

from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider

from config.settings import get_settings

logger = logging.getLogger(__name__)


def create_model(model_name: str | None = None):
    """Build a PydanticAI model instance.

    - ``gemini/*`` → native :class:`GoogleModel`
    - ``anthropic/*`` → native :class:`AnthropicModel`
    - ``openai/*`` or bare name → :class:`OpenAIChatModel` with OpenAI API

    Args:
        model_name: Model identifier in ``"provider/model"`` format.
                    Defaults to ``settings.default_model``.

    Returns:
        A PydanticAI model instance ready for ``Agent.run(model=...)``.
    """
    settings = get_settings()
    name = model_name or settings.default_model

    if "/" in name:
        prefix, model_id = name.split("/", 1)

        # ── Google Gemini: native GoogleProvider ──
        if prefix == "gemini":
            from pydantic_ai.models.google import GoogleModel
            from pydantic_ai.providers.google import GoogleProvider

            provider = GoogleProvider(api_key=settings.gemini_api_key or None)
            return GoogleModel(model_id, provider=provider)

        # ── Anthropic native ──
        if prefix == "anthropic":
            from pydantic_ai.models.anthropic import AnthropicModel
            from pydantic_ai.providers.anthropic import AnthropicProvider

            provider = AnthropicProvider(api_key=settings.anthropic_api_key or None)
            return AnthropicModel(model_id, provider=provider)

    # Fallback: assume OpenAI with OPENAI_API_KEY
    model_id = name.split("/", 1)[1] if "/" in name else name
    provider = OpenAIProvider(api_key=settings.openai_api_key or None)
    return OpenAIChatModel(model_id, provider=provider)


def get_analysis_model_name() -> str:
    settings = get_settings()
    return settings.analysis_model or settings.default_model


def get_guidance_model_name() -> str:
    settings = get_settings()
    return settings.guidance_model or settings.default_model
