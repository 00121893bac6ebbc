"""Domain-specific exceptions for the story progression engine.

These exceptions allow the API layer to distinguish stale references
(not found) from caller/state desynchronization (consistency) and respond
with different HTTP status codes.
"""

from __future__ import annotations


class StoryEngineError(Exception):
    """Base class for progression engine errors."""


# ── Not-found class ──────────────────────────────────────────


class NotFoundError(StoryEngineError):
    """A referenced template or session does not exist."""

    def __init__(self, entity_type: str, entity_id: str) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} '{entity_id}' not found")


class TemplateNotFound(NotFoundError):
    def __init__(self, template_id: str) -> None:
        super().__init__("Template", template_id)


class SessionNotFound(NotFoundError):
    def __init__(self, session_id: str) -> None:
        super().__init__("Session", session_id)


# ── Consistency class ────────────────────────────────────────


class ConsistencyError(StoryEngineError):
    """Caller and session state disagree — a protocol or programming error."""


class StageMismatch(ConsistencyError):
    """The submitted stage id is not the session's current stage.

    Raised before any state mutation so a stale client cannot record a
    duplicate or out-of-order stage completion.
    """

    def __init__(self, expected_stage_id: str, received_stage_id: str) -> None:
        self.expected_stage_id = expected_stage_id
        self.received_stage_id = received_stage_id
        super().__init__(
            f"Stage mismatch: session is at '{expected_stage_id}', "
            f"received '{received_stage_id}'"
        )


class InvalidStageIndex(ConsistencyError):
    def __init__(self, index: int, stage_count: int) -> None:
        self.index = index
        self.stage_count = stage_count
        super().__init__(f"Stage index {index} out of range (0..{stage_count - 1})")


class InvalidLevel(ConsistencyError):
    def __init__(self, level: int) -> None:
        self.level = level
        super().__init__(f"Level {level} is outside the supported range 1..4")


# ── Collaborator-degraded class ──────────────────────────────


class CollaboratorError(StoryEngineError):
    """The AI collaborator failed or returned an unusable result.

    Never surfaces past the Interaction Processor: every raise site is
    paired with a local fallback.
    """

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"Collaborator '{operation}' failed: {message}")
