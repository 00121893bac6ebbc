"""StoryCoach — the generative AI collaborator behind each turn.

Wraps two PydanticAI agents (structured quality analysis, free-text
guidance) plus the illustration client.  Every operation honours a
degraded-mode contract: on timeout, provider error, or unusable output it
falls back to a locally computed result instead of raising, so a turn on a
valid session always completes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from pydantic_ai import Agent

from agents.provider import create_model, get_analysis_model_name, get_guidance_model_name
from config.llm_config import LLMConfig
from config.prompts.analysis import ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt
from config.prompts.guidance import GUIDANCE_SYSTEM_PROMPT, build_guidance_prompt, fallback_guidance
from config.settings import get_settings
from errors import CollaboratorError
from models.analysis import QualityAnalysis
from models.template import TemplateKind
from services.heuristics import LexicalEstimator, LocalEstimator, estimate_quality
from services.illustration import generate_image

logger = logging.getLogger(__name__)

# Low temperature for consistent scoring, warmer for conversation
ANALYSIS_LLM_CONFIG = LLMConfig(temperature=0.2)
GUIDANCE_LLM_CONFIG = LLMConfig(temperature=0.7)


class StoryCollaborator(Protocol):
    """What the Interaction Processor needs from the AI service."""

    async def analyze_quality(
        self, text: str, position: int, mode: TemplateKind
    ) -> QualityAnalysis: ...

    async def generate_guidance(
        self, text: str, position: int, context: str, mode: TemplateKind
    ) -> str: ...

    async def generate_image(self, prompt: str) -> str | None: ...


# Module-level agents; the model is resolved per call so a missing API
# key degrades a turn instead of failing at import.
_analysis_agent: Agent[None, QualityAnalysis] = Agent(
    output_type=QualityAnalysis,
    system_prompt=ANALYSIS_SYSTEM_PROMPT,
    retries=1,
)

_guidance_agent: Agent[None, str] = Agent(
    system_prompt=GUIDANCE_SYSTEM_PROMPT,
    retries=1,
)


class StoryCoach:
    """Production :class:`StoryCollaborator` backed by PydanticAI.

    Args:
        analysis_model: Model instance override (tests pass ``TestModel``).
        guidance_model: Model instance override.
        estimator: Local estimator used for degraded analyses.
        timeout: Seconds to wait for each LLM call; defaults to settings.
    """

    def __init__(
        self,
        *,
        analysis_model=None,
        guidance_model=None,
        estimator: LocalEstimator | None = None,
        timeout: float | None = None,
    ) -> None:
        settings = get_settings()
        base = settings.get_default_llm_config()
        self._analysis_model = analysis_model
        self._guidance_model = guidance_model
        self._analysis_settings = base.merge(ANALYSIS_LLM_CONFIG).to_model_settings()
        self._guidance_settings = base.merge(GUIDANCE_LLM_CONFIG).to_model_settings()
        self._estimator = estimator or LexicalEstimator()
        self._timeout = timeout if timeout is not None else settings.llm_timeout

    async def analyze_quality(
        self, text: str, position: int, mode: TemplateKind
    ) -> QualityAnalysis:
        """Score *text*; falls back to the lexical estimate on any failure."""
        try:
            model = self._analysis_model or create_model(get_analysis_model_name())
            result = await asyncio.wait_for(
                _analysis_agent.run(
                    build_analysis_prompt(text, position, mode),
                    model=model,
                    model_settings=self._analysis_settings,
                ),
                timeout=self._timeout,
            )
            analysis = result.output
        except Exception as exc:
            logger.warning(
                "Quality analysis unavailable (mode=%s) — using local estimate: %s",
                mode.value, exc, exc_info=True,
            )
            return estimate_quality(self._estimator, text, mode)

        if mode == TemplateKind.LINEAR:
            # Children's answers are recorded verbatim, never rewritten
            analysis.optimized_prompt = text
        logger.info("Quality analysis: mode=%s overall=%d", mode.value, analysis.overall)
        return analysis

    async def generate_guidance(
        self, text: str, position: int, context: str, mode: TemplateKind
    ) -> str:
        """Encouraging next-step message; canned text on any failure."""
        try:
            model = self._guidance_model or create_model(get_guidance_model_name())
            result = await asyncio.wait_for(
                _guidance_agent.run(
                    build_guidance_prompt(text, position, context, mode),
                    model=model,
                    model_settings=self._guidance_settings,
                ),
                timeout=self._timeout,
            )
            guidance = str(result.output).strip()
            if not guidance:
                raise CollaboratorError("generate_guidance", "empty response")
        except Exception as exc:
            logger.warning(
                "Guidance unavailable (mode=%s) — using canned encouragement: %s",
                mode.value, exc, exc_info=True,
            )
            return fallback_guidance(position, mode)

        logger.info("Guidance generated: mode=%s length=%d", mode.value, len(guidance))
        return guidance

    async def generate_image(self, prompt: str) -> str | None:
        return await generate_image(prompt=prompt)


_coach: StoryCoach | None = None


def get_story_coach() -> StoryCoach:
    """Singleton collaborator configured from settings."""
    global _coach
    if _coach is None:
        _coach = StoryCoach()
    return _coach
