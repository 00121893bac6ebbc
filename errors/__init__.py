"""Custom exception hierarchy for the story progression engine."""

from errors.exceptions import (
    CollaboratorError,
    ConsistencyError,
    InvalidLevel,
    InvalidStageIndex,
    NotFoundError,
    SessionNotFound,
    StageMismatch,
    StoryEngineError,
    TemplateNotFound,
)

__all__ = [
    "CollaboratorError",
    "ConsistencyError",
    "InvalidLevel",
    "InvalidStageIndex",
    "NotFoundError",
    "SessionNotFound",
    "StageMismatch",
    "StoryEngineError",
    "TemplateNotFound",
]
