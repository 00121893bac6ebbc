"""Learning API — leveled (and linear) session lifecycle endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends

from api.deps import http_error, processor_dep
from errors import StoryEngineError
from models.request import InteractRequest, StartSessionRequest
from models.session import LearningSession
from services.interaction_processor import InteractionProcessor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/learning", tags=["Learning"])


@router.post("/sessions", response_model=LearningSession, status_code=201)
async def start_session(
    req: StartSessionRequest,
    processor: InteractionProcessor = Depends(processor_dep),
) -> LearningSession:
    """Start a session for a participant on a template."""
    try:
        return await processor.start_session(req.participant_id, req.template_id)
    except StoryEngineError as e:
        raise http_error(e)


@router.get("/sessions/{session_id}", response_model=LearningSession)
async def get_session(
    session_id: str,
    processor: InteractionProcessor = Depends(processor_dep),
) -> LearningSession:
    try:
        return await processor.get_session(session_id)
    except StoryEngineError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/interactions")
async def interact(
    session_id: str,
    req: InteractRequest,
    processor: InteractionProcessor = Depends(processor_dep),
) -> dict[str, Any]:
    """Process one turn.  Fields that do not apply to the mode are omitted."""
    try:
        result = await processor.process_interaction(session_id, req.user_input, req.scenario_id)
    except StoryEngineError as e:
        raise http_error(e)
    return result.to_response()


@router.post("/sessions/{session_id}/finish", response_model=LearningSession)
async def finish_session(
    session_id: str,
    processor: InteractionProcessor = Depends(processor_dep),
) -> LearningSession:
    """Close the session and compute its final score."""
    try:
        return await processor.finish_session(session_id)
    except StoryEngineError as e:
        raise http_error(e)
