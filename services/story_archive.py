"""Story archive — best-effort persistence of completed stories.

``append`` is keyed by participant id and template id and carries the
stage-ordered story reconstructed from a linear session.  Archive failures
are logged and swallowed: the turn response has already been decided.
"""

from __future__ import annotations

import logging
import time
import uuid
from abc import ABC, abstractmethod

import httpx
from pydantic import Field

from models.base import CamelModel
from models.session import LearningSession, LinearState
from models.template import LinearTemplate
from services import stage_sequencer

logger = logging.getLogger(__name__)

UNTITLED_CHARACTER = "A story"


# ── Data Models ──────────────────────────────────────────────


class StoryStageRecord(CamelModel):
    stage_id: str
    stage_title: str
    user_input: str = ""
    image_url: str | None = None


class StoryRecord(CamelModel):
    """A completed story as stored in the archive."""

    id: str = Field(default_factory=lambda: f"story-{uuid.uuid4().hex[:12]}")
    participant_id: str
    template_id: str
    title: str
    stages: list[StoryStageRecord]
    final_image_url: str | None = None
    created_at: float = Field(default_factory=time.time)

    def to_row(self) -> dict:
        """Flat snake_case row for table-backed archives."""
        return {
            "id": self.id,
            "user_id": self.participant_id,
            "template_id": self.template_id,
            "title": self.title,
            "stages_data": [s.model_dump() for s in self.stages],
            "final_image_url": self.final_image_url,
        }

    @classmethod
    def from_row(cls, row: dict) -> StoryRecord:
        return cls(
            id=row["id"],
            participant_id=row["user_id"],
            template_id=row["template_id"],
            title=row["title"],
            stages=[StoryStageRecord.model_validate(s) for s in row.get("stages_data") or []],
            final_image_url=row.get("final_image_url"),
        )


def build_story_record(
    session: LearningSession,
    template: LinearTemplate,
    image_url: str | None = None,
    illustrated_stage_id: str | None = None,
) -> StoryRecord:
    """Reconstruct the whole story in template stage order.

    Stages without a recorded input appear with an empty input.
    """
    if not isinstance(session.state, LinearState):
        raise ValueError(f"Session {session.id} is not a linear story session")
    ordered = stage_sequencer.ordered_inputs(template, session.state)

    character = ordered[0][1].strip() or UNTITLED_CHARACTER
    stages = [
        StoryStageRecord(
            stage_id=stage.id,
            stage_title=stage.title,
            user_input=user_input,
            image_url=image_url if image_url and stage.id == illustrated_stage_id else None,
        )
        for stage, user_input in ordered
    ]
    return StoryRecord(
        participant_id=session.participant_id,
        template_id=template.id,
        title=f"{character} - {template.name}",
        stages=stages,
        final_image_url=image_url,
    )


# ── Abstract Interface ───────────────────────────────────────


class StoryArchive(ABC):
    """Abstract story archive — implement for different backends."""

    @abstractmethod
    async def append(self, record: StoryRecord) -> None:
        ...

    @abstractmethod
    async def list_for_participant(self, participant_id: str) -> list[StoryRecord]:
        """Stories for *participant_id*, newest first."""
        ...

    async def close(self) -> None:
        return None


class InMemoryStoryArchive(StoryArchive):
    def __init__(self) -> None:
        self._records: list[StoryRecord] = []

    async def append(self, record: StoryRecord) -> None:
        self._records.append(record)

    async def list_for_participant(self, participant_id: str) -> list[StoryRecord]:
        matches = [r for r in self._records if r.participant_id == participant_id]
        return sorted(matches, key=lambda r: r.created_at, reverse=True)


class HttpStoryArchive(StoryArchive):
    """PostgREST/Supabase table archive over ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        table: str = "stories",
        timeout: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._table = table
        self._http = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            timeout=httpx.Timeout(timeout),
            transport=transport,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    async def append(self, record: StoryRecord) -> None:
        resp = await self._http.post(
            f"/{self._table}",
            json=[record.to_row()],
            headers={"Prefer": "return=minimal"},
        )
        resp.raise_for_status()

    async def list_for_participant(self, participant_id: str) -> list[StoryRecord]:
        resp = await self._http.get(
            f"/{self._table}",
            params={
                "select": "*",
                "user_id": f"eq.{participant_id}",
                "order": "created_at.desc",
            },
        )
        resp.raise_for_status()
        return [StoryRecord.from_row(row) for row in resp.json()]

    async def close(self) -> None:
        await self._http.aclose()


async def archive_story_safely(archive: StoryArchive, record: StoryRecord) -> bool:
    """Append *record*, logging instead of raising.  Returns success."""
    try:
        await archive.append(record)
    except Exception:
        logger.exception(
            "Failed to archive story for participant=%s template=%s",
            record.participant_id, record.template_id,
        )
        return False
    logger.info("Story archived: %s (%s)", record.id, record.title)
    return True


# ── Module-level Singleton ───────────────────────────────────

_archive: StoryArchive | None = None


def get_story_archive() -> StoryArchive:
    global _archive
    if _archive is None:
        from config.settings import get_settings

        settings = get_settings()
        if settings.archive_store_type == "http" and settings.archive_url:
            _archive = HttpStoryArchive(
                base_url=settings.archive_url,
                api_key=settings.archive_api_key,
                table=settings.archive_table,
                timeout=settings.archive_timeout,
            )
            logger.info("Initialized HttpStoryArchive (table=%s)", settings.archive_table)
        else:
            _archive = InMemoryStoryArchive()
            logger.info("Initialized InMemoryStoryArchive")
    return _archive
