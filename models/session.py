"""Session models — one participant's run through one template.

A session is a common envelope (identity, timestamps, history) plus a
mode-specific state selected from the template kind at creation time:
``LeveledState`` tracks a skill level, ``LinearState`` a stage index and
the raw input recorded per stage.
"""

from __future__ import annotations

import time
import uuid
from typing import Annotated, Literal, Union

from pydantic import Field, computed_field

from models.analysis import QualityAnalysis
from models.base import CamelModel, FrozenCamelModel

MIN_LEVEL = 1
MAX_LEVEL = 4


def generate_session_id() -> str:
    """Generate a new server-side session ID."""
    return f"session-{uuid.uuid4().hex[:12]}"


class Interaction(FrozenCamelModel):
    """One completed submit-score-respond cycle; never mutated once appended."""

    id: str = Field(default_factory=lambda: f"interaction-{uuid.uuid4().hex[:12]}")
    timestamp: float = Field(default_factory=time.time)
    user_input: str
    system_response: str
    prompt_analysis: QualityAnalysis
    skills_learned: list[str] = Field(default_factory=list)
    level_progress: int = Field(ge=0, le=100)
    level: int | None = None  # Leveled sessions: level the turn was scored at
    stage_id: str | None = None  # Linear sessions: stage the turn completed


class LeveledState(CamelModel):
    kind: Literal["leveled"] = "leveled"
    level: int = Field(default=MIN_LEVEL, ge=MIN_LEVEL, le=MAX_LEVEL)


class LinearState(CamelModel):
    kind: Literal["linear"] = "linear"
    stage_index: int = Field(default=0, ge=0)
    stage_inputs: dict[str, str] = Field(default_factory=dict)


SessionState = Annotated[
    Union[LeveledState, LinearState],
    Field(discriminator="kind"),
]


class LearningSession(CamelModel):
    """Server-side state for one participant's progression."""

    id: str = Field(default_factory=generate_session_id)
    participant_id: str
    template_id: str
    started_at: float = Field(default_factory=time.time)
    ended_at: float | None = None
    state: SessionState
    interactions: list[Interaction] = Field(default_factory=list)
    final_score: int | None = None
    updated_at: float = Field(default_factory=time.time)

    @computed_field
    @property
    def current_level(self) -> int:
        """Skill level (leveled) or 0-based stage index (linear)."""
        if isinstance(self.state, LeveledState):
            return self.state.level
        return self.state.stage_index

    def append_interaction(self, interaction: Interaction) -> None:
        """Append a fully computed turn to the history."""
        self.interactions.append(interaction)
        self.touch()

    def touch(self) -> None:
        self.updated_at = time.time()
