"""Interaction processor — the single entry point for one user turn.

Each turn:
1. resolves the session and its template (failing before any external call),
2. asks the AI collaborator for a quality analysis and guidance text,
3. applies the stage sequencer (linear templates) or the leveled
   progression policy (leveled templates),
4. appends exactly one Interaction and returns a structured turn result.

Turns on the same session are serialized by the store's per-session lock,
held across the collaborator call; other sessions proceed in parallel.
Collaborator failures never abort a turn — they are replaced by local
fallbacks before anything is recorded.
"""

from __future__ import annotations

import asyncio
import logging

from agents.story_coach import StoryCollaborator
from config.prompts.guidance import OPEN_PRACTICE_LABEL, fallback_guidance, scenario_context
from errors import ConsistencyError, SessionNotFound
from models.analysis import QualityAnalysis
from models.session import Interaction, LearningSession, LeveledState, LinearState
from models.template import LeveledTemplate, LinearTemplate, TemplateKind
from models.turn import LeveledTurnResult, LinearTurnResult
from services import progression, stage_sequencer
from services.heuristics import LexicalEstimator, LocalEstimator, estimate_quality
from services.score_aggregator import finish
from services.session_store import SessionStore

logger = logging.getLogger(__name__)

# Every completed stage counts as full progress
LINEAR_TURN_PROGRESS = 100


class InteractionProcessor:
    """Orchestrates sessions over an injected store and collaborator."""

    def __init__(
        self,
        store: SessionStore,
        collaborator: StoryCollaborator,
        estimator: LocalEstimator | None = None,
    ) -> None:
        self._store = store
        self._collaborator = collaborator
        self._estimator = estimator or LexicalEstimator()

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def collaborator(self) -> StoryCollaborator:
        return self._collaborator

    # ── Session lifecycle ────────────────────────────────────

    async def start_session(self, participant_id: str, template_id: str) -> LearningSession:
        """Create a session; raises :class:`TemplateNotFound`."""
        return await self._store.create(participant_id, template_id)

    async def get_session(self, session_id: str) -> LearningSession:
        """Return the session or raise :class:`SessionNotFound`."""
        session = await self._store.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    async def finish_session(self, session_id: str) -> LearningSession:
        """Stamp end time and final score; raises :class:`SessionNotFound`."""
        await self.get_session(session_id)
        async with self._store.lock(session_id):
            session = await self.get_session(session_id)
            finish(session)
            await self._store.save(session)
            return session

    # ── Turn processing ──────────────────────────────────────

    async def process_interaction(
        self,
        session_id: str,
        user_input: str,
        reference_id: str | None = None,
    ) -> LinearTurnResult | LeveledTurnResult:
        """Process one turn.

        Args:
            session_id: Session to advance.
            user_input: Raw text or choice from the user.
            reference_id: Stage id (linear) or scenario id (leveled), optional.

        Raises:
            SessionNotFound, TemplateNotFound: stale references.
            StageMismatch, InvalidStageIndex, InvalidLevel: desynchronized state.
        """
        await self.get_session(session_id)
        async with self._store.lock(session_id):
            session = await self.get_session(session_id)
            template = self._store.catalog.require_template(session.template_id)

            if isinstance(template, LinearTemplate):
                if not isinstance(session.state, LinearState):
                    raise ConsistencyError(f"Session {session_id} state does not match linear template")
                return await self._process_linear(session, session.state, template, user_input, reference_id)

            if not isinstance(session.state, LeveledState):
                raise ConsistencyError(f"Session {session_id} state does not match leveled template")
            return await self._process_leveled(session, session.state, template, user_input, reference_id)

    async def _process_linear(
        self,
        session: LearningSession,
        state: LinearState,
        template: LinearTemplate,
        user_input: str,
        stage_id: str | None,
    ) -> LinearTurnResult:
        stage = stage_sequencer.verify_stage(template, state, stage_id)

        analysis, guidance = await self._consult(
            user_input, state.stage_index, stage.title, TemplateKind.LINEAR,
        )
        interaction = Interaction(
            user_input=user_input,
            system_response=guidance,
            prompt_analysis=analysis,
            level_progress=LINEAR_TURN_PROGRESS,
            stage_id=stage.id,
        )

        # All values computed; mutate
        stage_sequencer.record_stage_input(state, stage, user_input)
        session.append_interaction(interaction)
        next_stage = stage_sequencer.advance(template, state)
        await self._store.save(session)

        is_complete = next_stage is None
        logger.info(
            "Linear turn: session=%s stage=%s complete=%s analysis=%s",
            session.id, stage.id, is_complete, analysis.source,
        )
        return LinearTurnResult(
            session_id=session.id,
            system_response=guidance,
            prompt_analysis=analysis,
            current_stage=stage,
            next_stage=next_stage,
            next_stage_prompt=(
                stage_sequencer.personalize_prompt(next_stage, state.stage_inputs)
                if next_stage is not None
                else None
            ),
            # Points one past the last stage on completion; never persisted
            stage_index=template.stage_count if is_complete else state.stage_index,
            is_complete=is_complete,
        )

    async def _process_leveled(
        self,
        session: LearningSession,
        state: LeveledState,
        template: LeveledTemplate,
        user_input: str,
        scenario_id: str | None,
    ) -> LeveledTurnResult:
        level = progression.check_level(state.level)
        context = self._scenario_context(template, scenario_id)

        analysis, guidance = await self._consult(user_input, level, context, TemplateKind.LEVELED)

        signals = self._estimator.detect(user_input)
        level_progress = progression.evaluate_progress(signals, level)
        skills = progression.credit_skills(analysis)
        criteria_met = progression.should_advance(level_progress, analysis, len(session.interactions))
        decision = progression.decide_advancement(level, criteria_met)
        hint = progression.next_step(level_progress, decision)

        interaction = Interaction(
            user_input=user_input,
            system_response=guidance,
            prompt_analysis=analysis,
            skills_learned=skills,
            level_progress=level_progress.progress,
            level=level,
        )

        # All values computed; mutate
        session.append_interaction(interaction)
        state.level = decision.new_level
        await self._store.save(session)

        logger.info(
            "Leveled turn: session=%s level=%d->%d progress=%d overall=%d analysis=%s",
            session.id, level, decision.new_level, level_progress.progress,
            analysis.overall, analysis.source,
        )
        return LeveledTurnResult(
            session_id=session.id,
            system_response=guidance,
            prompt_analysis=analysis,
            level_progress=level_progress,
            skills_learned=skills,
            next_step=hint,
            should_advance_level=decision.criteria_met,
            level_advanced=decision.level_advanced,
            is_complete=decision.completion_ready,
        )

    # ── Helpers ──────────────────────────────────────────────

    @staticmethod
    def _scenario_context(template: LeveledTemplate, scenario_id: str | None) -> str:
        if not scenario_id:
            return OPEN_PRACTICE_LABEL
        scenario = template.find_scenario(scenario_id)
        if scenario is None:
            logger.warning("Unknown scenario %s in template %s", scenario_id, template.id)
            return OPEN_PRACTICE_LABEL
        return scenario_context(scenario.title)

    async def _consult(
        self,
        text: str,
        position: int,
        context: str,
        mode: TemplateKind,
    ) -> tuple[QualityAnalysis, str]:
        """Run both collaborator calls concurrently, substituting local fallbacks.

        The collaborator is expected to degrade on its own; this is the
        last line that keeps a raised transport error out of the turn.
        """
        analysis, guidance = await asyncio.gather(
            self._collaborator.analyze_quality(text, position, mode),
            self._collaborator.generate_guidance(text, position, context, mode),
            return_exceptions=True,
        )

        if isinstance(analysis, BaseException):
            if not isinstance(analysis, Exception):
                raise analysis
            logger.warning("Collaborator analysis raised — using local estimate: %s", analysis)
            analysis = estimate_quality(self._estimator, text, mode)

        if isinstance(guidance, BaseException):
            if not isinstance(guidance, Exception):
                raise guidance
            logger.warning("Collaborator guidance raised — using canned text: %s", guidance)
            guidance = fallback_guidance(position, mode)
        elif not guidance or not guidance.strip():
            guidance = fallback_guidance(position, mode)

        return analysis, guidance


_processor: InteractionProcessor | None = None


def get_interaction_processor() -> InteractionProcessor:
    """Singleton processor wired to the default store and StoryCoach."""
    global _processor
    if _processor is None:
        from agents.story_coach import get_story_coach
        from services.session_store import get_session_store

        _processor = InteractionProcessor(
            store=get_session_store(),
            collaborator=get_story_coach(),
        )
    return _processor
