"""Story API — the toddler story-creation flow.

Wraps the linear progression of the interaction processor with the
illustration cadence and the best-effort story archive.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from api.deps import archive_dep, http_error, processor_dep
from errors import StoryEngineError
from models.request import StoryCreateRequest, StoryCreateResponse, StoryInteractRequest
from models.session import LinearState
from models.turn import LinearTurnResult
from services import stage_sequencer
from services.illustration import build_image_prompt, should_illustrate
from services.interaction_processor import InteractionProcessor
from services.story_archive import StoryArchive, archive_story_safely, build_story_record

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/story", tags=["Story"])

STORY_TEMPLATE_ID = "toddler_adventure"
IMAGE_ERROR_MESSAGE = "Image generation failed"


@router.post("/create", response_model=StoryCreateResponse, status_code=201)
async def create_story(
    req: StoryCreateRequest,
    processor: InteractionProcessor = Depends(processor_dep),
) -> StoryCreateResponse:
    """Start a story session and return its first stage."""
    try:
        session = await processor.start_session(req.user_id, STORY_TEMPLATE_ID)
        template = processor.store.catalog.require_template(STORY_TEMPLATE_ID)
        stage = stage_sequencer.current_stage(template, session.state)
    except StoryEngineError as e:
        raise http_error(e)
    return StoryCreateResponse(session=session, current_stage=stage)


@router.post("/interact")
async def interact(
    req: StoryInteractRequest,
    processor: InteractionProcessor = Depends(processor_dep),
    archive: StoryArchive = Depends(archive_dep),
) -> dict[str, Any]:
    """Answer the current stage, illustrate when due, archive on completion."""
    try:
        session = await processor.get_session(req.session_id)
        if not isinstance(session.state, LinearState):
            raise HTTPException(status_code=409, detail=f"Session '{req.session_id}' is not a story session")
        result = await processor.process_interaction(req.session_id, req.user_input, req.stage_id)
    except StoryEngineError as e:
        raise http_error(e)
    if not isinstance(result, LinearTurnResult):
        raise HTTPException(status_code=409, detail=f"Session '{req.session_id}' is not a story session")

    body = result.to_response()

    image_url: str | None = None
    if should_illustrate(result.current_stage, result.is_complete):
        try:
            image_url = await processor.collaborator.generate_image(
                build_image_prompt(result.current_stage, req.user_input)
            )
        except Exception as exc:
            logger.warning("Illustration failed for session %s: %s", req.session_id, exc, exc_info=True)
        if image_url:
            body["imageUrl"] = image_url
        else:
            body["imageError"] = IMAGE_ERROR_MESSAGE

    if result.is_complete:
        # The completing turn is already recorded; a session gone by now only skips the archive.
        try:
            session = await processor.get_session(req.session_id)
            template = processor.store.catalog.require_template(session.template_id)
        except StoryEngineError as exc:
            logger.warning("Story %s not archived: %s", req.session_id, exc)
            body["archived"] = False
        else:
            record = build_story_record(session, template, image_url, result.current_stage.id)
            body["archived"] = await archive_story_safely(archive, record)

    return body


@router.get("/archive")
async def list_stories(
    user_id: str = Query(..., alias="userId", min_length=1),
    archive: StoryArchive = Depends(archive_dep),
) -> list[dict[str, Any]]:
    """Archived stories for a user, newest first."""
    try:
        records = await archive.list_for_participant(user_id)
    except Exception as exc:
        logger.exception("Archive listing failed for %s", user_id)
        raise HTTPException(status_code=502, detail=f"Story archive unavailable: {exc}")
    return [r.model_dump(by_alias=True, mode="json") for r in records]
