"""Score aggregator — a session's final summary score on completion."""

from __future__ import annotations

import logging
import math
import time

from models.session import LearningSession

logger = logging.getLogger(__name__)


def compute_final_score(session: LearningSession) -> int:
    """Mean of the authoritative ``overall`` score, rounded half-up; 0 if no turns."""
    if not session.interactions:
        return 0
    total = sum(i.prompt_analysis.overall for i in session.interactions)
    return math.floor(total / len(session.interactions) + 0.5)


def finish(session: LearningSession) -> LearningSession:
    """Stamp the end time and recompute the final score.

    Recomputed on every call rather than cached, so a repeat call on an
    unchanged history yields the same score.
    """
    session.ended_at = time.time()
    session.final_score = compute_final_score(session)
    session.touch()
    logger.info(
        "Session finished: %s interactions=%d final_score=%d",
        session.id, len(session.interactions), session.final_score,
    )
    return session
