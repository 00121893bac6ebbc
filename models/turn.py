"""Turn results returned by the Interaction Processor.

Fields that do not apply to the active mode are left as ``None`` and
dropped on serialization (``exclude_none``), so callers must read an
absent field as "not applicable" rather than zero.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from models.analysis import LevelProgress, QualityAnalysis
from models.base import CamelModel
from models.template import Stage


class TurnResult(CamelModel):
    """Fields common to both progression modes."""

    session_id: str
    system_response: str
    prompt_analysis: QualityAnalysis
    is_complete: bool = False

    def to_response(self) -> dict[str, Any]:
        """Serialize for the API boundary, dropping not-applicable fields."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class LinearTurnResult(TurnResult):
    mode: Literal["linear"] = "linear"
    current_stage: Stage  # The stage this turn just completed
    next_stage: Stage | None = None
    next_stage_prompt: str | None = None  # next_stage.child_prompt with placeholders filled
    stage_index: int


class LeveledTurnResult(TurnResult):
    mode: Literal["leveled"] = "leveled"
    level_progress: LevelProgress
    skills_learned: list[str] = Field(default_factory=list)
    next_step: str
    should_advance_level: bool = False
    level_advanced: bool = False
