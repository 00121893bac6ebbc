"""API request / response models."""

from __future__ import annotations

from pydantic import Field

from models.base import CamelModel
from models.session import LearningSession
from models.template import Stage


class StartSessionRequest(CamelModel):
    """POST /api/learning/sessions — request body."""

    participant_id: str = Field(..., min_length=1)
    template_id: str = Field(..., min_length=1)


class InteractRequest(CamelModel):
    """POST /api/learning/sessions/{id}/interactions — request body."""

    user_input: str
    scenario_id: str | None = None


class StoryCreateRequest(CamelModel):
    """POST /api/story/create — request body."""

    user_id: str = Field(..., min_length=1)


class StoryCreateResponse(CamelModel):
    """POST /api/story/create — response body."""

    session: LearningSession
    current_stage: Stage


class StoryInteractRequest(CamelModel):
    """POST /api/story/interact — request body.

    ``stage_id`` is the stage the user just answered.
    """

    session_id: str = Field(..., min_length=1)
    user_input: str
    stage_id: str = Field(..., min_length=1)
