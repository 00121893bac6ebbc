"""Template models — immutable content describing a progression path.

Two kinds share identity/name/description:
- ``LeveledTemplate``: open scenarios practised across skill levels 1–4.
- ``LinearTemplate``: a fixed, ordered sequence of story stages.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import Field, model_validator

from models.base import FrozenCamelModel


class TemplateKind(str, Enum):
    """Progression mode — also the mode flag passed to the AI collaborator."""

    LEVELED = "leveled"
    LINEAR = "linear"


class InteractionKind(str, Enum):
    CHOICE = "choice"
    OPEN_ENDED = "open_ended"
    VISUAL_CREATION = "visual_creation"


# ── Leveled templates ────────────────────────────────────────


class Scenario(FrozenCamelModel):
    """An open practice scenario; may be attempted at any level."""

    id: str
    title: str
    description: str
    prompt: str  # Seed prompt shown to the learner
    expected_elements: list[str] = Field(default_factory=list)


class LeveledTemplate(FrozenCamelModel):
    kind: Literal["leveled"] = "leveled"
    id: str
    name: str
    description: str
    difficulty: Literal["basic", "intermediate", "creative"] = "basic"
    emoji: str = ""
    scenarios: list[Scenario] = Field(default_factory=list)

    def find_scenario(self, scenario_id: str) -> Scenario | None:
        return next((s for s in self.scenarios if s.id == scenario_id), None)


# ── Linear templates ─────────────────────────────────────────


class Stage(FrozenCamelModel):
    """One fixed step of a linear story template."""

    id: str
    order: int = Field(ge=1)
    title: str
    simple_title: str = ""
    description: str = ""
    educational_goal: str = ""
    child_prompt: str  # Directed at the child; may contain [placeholders]
    parent_guidance: str = ""  # Directed at the facilitating parent
    visual_cues: list[str] = Field(default_factory=list)  # Illustration keyword hints
    suggestions: list[str] = Field(default_factory=list)
    time_estimate: int = 3  # minutes
    interaction_type: InteractionKind = InteractionKind.OPEN_ENDED


class LinearTemplate(FrozenCamelModel):
    kind: Literal["linear"] = "linear"
    id: str
    name: str
    description: str
    target_age: tuple[int, int] = (3, 6)
    estimated_time: int = 15  # minutes
    visual_support: bool = True
    parent_role: Literal["primary", "secondary", "observer"] = "primary"
    stages: list[Stage] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_stage_order(self) -> LinearTemplate:
        """Stage order must be 1-based and contiguous; the sequencer walks it by index."""
        orders = [s.order for s in self.stages]
        if orders != list(range(1, len(self.stages) + 1)):
            raise ValueError(f"stage order must be 1..{len(self.stages)} without gaps, got {orders}")
        ids = [s.id for s in self.stages]
        if len(set(ids)) != len(ids):
            raise ValueError(f"stage ids must be unique, got {ids}")
        return self

    @property
    def stage_count(self) -> int:
        return len(self.stages)


Template = Annotated[
    Union[LeveledTemplate, LinearTemplate],
    Field(discriminator="kind"),
]
