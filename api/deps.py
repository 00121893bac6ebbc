"""Shared route dependencies and domain-error → HTTP mapping."""

from __future__ import annotations

import logging

from fastapi import HTTPException

from errors import ConsistencyError, NotFoundError, StoryEngineError
from services.interaction_processor import InteractionProcessor, get_interaction_processor
from services.story_archive import StoryArchive, get_story_archive
from services.template_catalog import TemplateCatalog, get_template_catalog

logger = logging.getLogger(__name__)


def processor_dep() -> InteractionProcessor:
    return get_interaction_processor()


def archive_dep() -> StoryArchive:
    return get_story_archive()


def catalog_dep() -> TemplateCatalog:
    return get_template_catalog()


def http_error(exc: StoryEngineError) -> HTTPException:
    """404 for stale references, 409 for desynchronized state."""
    if isinstance(exc, NotFoundError):
        logger.info("Not found: %s", exc)
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ConsistencyError):
        logger.warning("Consistency error: %s", exc)
        return HTTPException(status_code=409, detail=str(exc))
    logger.error("Unhandled engine error: %s", exc)
    return HTTPException(status_code=500, detail=str(exc))
