"""Reusable LLM generation parameters.

LLMConfig is a small Pydantic model that can be:
- built from Settings as the global default,
- declared per-agent for task-specific tuning (analysis vs. guidance).

Priority chain (low → high):
    .env global defaults  →  agent-level LLMConfig
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class LLMConfig(BaseModel):
    """LLM generation parameters shared by the story agents.

    All fields are optional.  ``None`` means "use the model's default".
    """

    model: str | None = Field(default=None, description="'provider/model' identifier")
    max_tokens: int | None = Field(default=None, description="Max tokens to generate")
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    seed: int | None = Field(default=None, description="Random seed for reproducibility")

    def merge(self, overrides: LLMConfig) -> LLMConfig:
        """Return a new LLMConfig: *self* as base, *overrides* wins on non-None fields."""
        base = self.model_dump(exclude_none=True)
        base.update(overrides.model_dump(exclude_none=True))
        return LLMConfig(**base)

    def to_model_settings(self) -> dict:
        """Convert to a pydantic-ai ``ModelSettings`` dict (model name excluded)."""
        return {
            field: getattr(self, field)
            for field in ("max_tokens", "temperature", "top_p", "seed")
            if getattr(self, field) is not None
        }
