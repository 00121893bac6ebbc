"""Quality analysis and progress models produced once per turn."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, PrivateAttr, field_validator

from models.base import CamelModel

SCORE_FIELDS = ("clarity", "detail", "emotion", "structure", "visual", "overall")


class QualityAnalysis(CamelModel):
    """Multi-dimensional score for one piece of user input.

    Produced by the AI collaborator (or its local fallback) and consumed
    as an opaque value by the progression engine.
    """

    clarity: int = Field(ge=0, le=100, description="Is the description clear and understandable")
    detail: int = Field(ge=0, le=100, description="Richness of concrete detail")
    emotion: int = Field(ge=0, le=100, description="Emotion or atmosphere expressed")
    structure: int = Field(ge=0, le=100, description="Logical completeness")
    visual: int = Field(ge=0, le=100, description="How well it can be visualised")
    overall: int = Field(ge=0, le=100, description="Overall score")
    suggestions: list[str] = Field(default_factory=list)
    optimized_prompt: str = ""

    # Internal provenance for logging only; never serialized.
    _source: Literal["live", "degraded"] = PrivateAttr(default="live")

    @field_validator(*SCORE_FIELDS, mode="before")
    @classmethod
    def _clamp_score(cls, value):
        """LLMs occasionally return floats or overshoot 100; coerce to an int in range."""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return value
        return max(0, min(100, round(value)))

    @property
    def source(self) -> str:
        return self._source

    def mark_degraded(self) -> QualityAnalysis:
        self._source = "degraded"
        return self


class LevelProgress(CamelModel):
    """Heuristic progress estimate for one turn at one level."""

    current_level: int
    progress: int = Field(ge=0, le=100)
    next_skills: list[str] = Field(default_factory=list)
