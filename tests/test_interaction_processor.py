"""Tests for turn processing across both progression modes."""

from __future__ import annotations

import asyncio

import pytest

from config.prompts.guidance import FALLBACK_LEVEL_GUIDANCE, FALLBACK_TODDLER_GUIDANCE, OPEN_PRACTICE_LABEL
from errors import ConsistencyError, InvalidLevel, SessionNotFound, StageMismatch, TemplateNotFound
from models.template import TemplateKind
from models.turn import LeveledTurnResult, LinearTurnResult
from services.interaction_processor import InteractionProcessor
from services.progression import NEXT_STEP_MASTERED
from tests.fakes import LEVELED_TEMPLATE_ID, LINEAR_TEMPLATE_ID, RICH_INPUT, FailingCollaborator

STORY_ANSWERS = {
    "character": "小兔子",
    "place": "公園",
    "activity": "盪鞦韆",
    "little_problem": "鞋子掉了",
    "happy_solution": "朋友幫忙找到了",
}


# ── Session lifecycle ────────────────────────────────────────


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_unknown_template(self, processor):
        with pytest.raises(TemplateNotFound):
            await processor.start_session("kid-1", "missing")

    @pytest.mark.asyncio
    async def test_get_unknown_session(self, processor):
        with pytest.raises(SessionNotFound):
            await processor.get_session("session-nope")

    @pytest.mark.asyncio
    async def test_interact_unknown_session(self, processor, collaborator):
        with pytest.raises(SessionNotFound):
            await processor.process_interaction("session-nope", "hello")
        assert collaborator.analysis_calls == []

    @pytest.mark.asyncio
    async def test_finish_without_interactions_scores_zero(self, processor):
        session = await processor.start_session("kid-1", LEVELED_TEMPLATE_ID)
        finished = await processor.finish_session(session.id)
        assert finished.final_score == 0
        assert finished.ended_at is not None

    @pytest.mark.asyncio
    async def test_finish_averages_overall(self, processor, collaborator):
        session = await processor.start_session("kid-1", LEVELED_TEMPLATE_ID)
        collaborator.overall = 80
        await processor.process_interaction(session.id, "a cat")
        collaborator.overall = 90
        await processor.process_interaction(session.id, "a dog")
        finished = await processor.finish_session(session.id)
        assert finished.final_score == 85

    @pytest.mark.asyncio
    async def test_finish_rounds_half_up(self, processor, collaborator):
        session = await processor.start_session("kid-1", LEVELED_TEMPLATE_ID)
        collaborator.overall = 80
        await processor.process_interaction(session.id, "a cat")
        collaborator.overall = 81
        await processor.process_interaction(session.id, "a dog")
        assert (await processor.finish_session(session.id)).final_score == 81

    @pytest.mark.asyncio
    async def test_finish_unknown_session(self, processor):
        with pytest.raises(SessionNotFound):
            await processor.finish_session("session-nope")


# ── Leveled mode ─────────────────────────────────────────────


class TestLeveled:
    @pytest.mark.asyncio
    async def test_first_two_turns_never_advance(self, processor):
        session = await processor.start_session("kid-1", LEVELED_TEMPLATE_ID)
        for _ in range(2):
            result = await processor.process_interaction(session.id, RICH_INPUT)
            assert isinstance(result, LeveledTurnResult)
            assert not result.should_advance_level
            assert not result.level_advanced
        assert (await processor.get_session(session.id)).current_level == 1

    @pytest.mark.asyncio
    async def test_third_strong_turn_advances(self, processor):
        session = await processor.start_session("kid-1", LEVELED_TEMPLATE_ID)
        await processor.process_interaction(session.id, RICH_INPUT)
        await processor.process_interaction(session.id, RICH_INPUT)
        result = await processor.process_interaction(session.id, RICH_INPUT)
        assert result.should_advance_level
        assert result.level_advanced
        assert "Level 2" in result.next_step
        assert not result.is_complete
        assert (await processor.get_session(session.id)).current_level == 2

    @pytest.mark.asyncio
    async def test_level_caps_at_four_and_completes(self, processor):
        session = await processor.start_session("kid-1", LEVELED_TEMPLATE_ID)
        results = [await processor.process_interaction(session.id, RICH_INPUT) for _ in range(8)]
        stored = await processor.get_session(session.id)
        assert stored.current_level == 4
        assert len(stored.interactions) == 8
        # Turn 5 reaches level 4; turn 6 meets the criteria again at the cap
        assert results[4].level_advanced and not results[4].is_complete
        assert results[4].next_step == NEXT_STEP_MASTERED
        assert results[5].is_complete
        assert not results[5].level_advanced
        assert results[5].next_step == NEXT_STEP_MASTERED

    @pytest.mark.asyncio
    async def test_low_overall_blocks_advancement(self, processor, collaborator):
        collaborator.overall = 60
        session = await processor.start_session("kid-1", LEVELED_TEMPLATE_ID)
        for _ in range(4):
            result = await processor.process_interaction(session.id, RICH_INPUT)
        assert not result.should_advance_level
        assert (await processor.get_session(session.id)).current_level == 1

    @pytest.mark.asyncio
    async def test_skills_credited_from_analysis(self, processor, collaborator):
        collaborator.overall = 70
        session = await processor.start_session("kid-1", LEVELED_TEMPLATE_ID)
        result = await processor.process_interaction(session.id, "a cat")
        assert len(result.skills_learned) == 5
        assert result.level_progress.current_level == 1

    @pytest.mark.asyncio
    async def test_interaction_records_level(self, processor):
        session = await processor.start_session("kid-1", LEVELED_TEMPLATE_ID)
        await processor.process_interaction(session.id, "a cat")
        interaction = (await processor.get_session(session.id)).interactions[0]
        assert interaction.level == 1
        assert interaction.stage_id is None
        assert interaction.system_response == "Nice work!"

    @pytest.mark.asyncio
    async def test_scenario_context_passed_to_guidance(self, processor, collaborator):
        session = await processor.start_session("kid-1", LEVELED_TEMPLATE_ID)
        await processor.process_interaction(session.id, "a cat", "morning")
        await processor.process_interaction(session.id, "a cat", "no-such-scenario")
        await processor.process_interaction(session.id, "a cat")
        contexts = [call[2] for call in collaborator.guidance_calls]
        assert contexts == ["當前情境：早晨起床", OPEN_PRACTICE_LABEL, OPEN_PRACTICE_LABEL]
        assert all(call[3] == TemplateKind.LEVELED for call in collaborator.guidance_calls)

    @pytest.mark.asyncio
    async def test_corrupted_level_rejected(self, processor, store):
        session = await processor.start_session("kid-1", LEVELED_TEMPLATE_ID)
        session.state.level = 9
        with pytest.raises(InvalidLevel):
            await processor.process_interaction(session.id, "a cat")
        assert session.interactions == []

    @pytest.mark.asyncio
    async def test_response_omits_linear_fields(self, processor):
        session = await processor.start_session("kid-1", LEVELED_TEMPLATE_ID)
        body = (await processor.process_interaction(session.id, "a cat")).to_response()
        assert body["mode"] == "leveled"
        assert "levelProgress" in body
        assert "currentStage" not in body
        assert "stageIndex" not in body


# ── Linear mode ──────────────────────────────────────────────


class TestLinear:
    @pytest.mark.asyncio
    async def test_first_stage_advances_and_personalizes(self, processor):
        session = await processor.start_session("kid-1", LINEAR_TEMPLATE_ID)
        result = await processor.process_interaction(session.id, "小兔子", "character")
        assert isinstance(result, LinearTurnResult)
        assert result.current_stage.id == "character"
        assert result.next_stage.id == "place"
        assert "小兔子" in result.next_stage_prompt
        assert result.stage_index == 1
        assert not result.is_complete

    @pytest.mark.asyncio
    async def test_full_story_round_trip(self, processor, collaborator):
        session = await processor.start_session("kid-1", LINEAR_TEMPLATE_ID)
        results = []
        for stage_id, answer in STORY_ANSWERS.items():
            results.append(await processor.process_interaction(session.id, answer, stage_id))

        final = results[-1]
        assert final.is_complete
        assert final.next_stage is None
        assert final.next_stage_prompt is None
        assert final.stage_index == 5
        assert all(not r.is_complete for r in results[:-1])

        stored = await processor.get_session(session.id)
        assert stored.state.stage_inputs == STORY_ANSWERS
        assert stored.state.stage_index == 4
        assert [i.stage_id for i in stored.interactions] == list(STORY_ANSWERS)
        assert all(i.level_progress == 100 and i.skills_learned == [] for i in stored.interactions)
        assert [call[1] for call in collaborator.analysis_calls] == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_stage_mismatch_leaves_session_untouched(self, processor, collaborator):
        session = await processor.start_session("kid-1", LINEAR_TEMPLATE_ID)
        await processor.process_interaction(session.id, "小兔子", "character")
        with pytest.raises(StageMismatch):
            await processor.process_interaction(session.id, "again", "character")
        stored = await processor.get_session(session.id)
        assert stored.state.stage_index == 1
        assert len(stored.interactions) == 1
        assert stored.state.stage_inputs == {"character": "小兔子"}
        # Rejected before the collaborator was consulted
        assert len(collaborator.analysis_calls) == 1

    @pytest.mark.asyncio
    async def test_missing_stage_id_uses_current_stage(self, processor):
        session = await processor.start_session("kid-1", LINEAR_TEMPLATE_ID)
        result = await processor.process_interaction(session.id, "小熊")
        assert result.current_stage.id == "character"

    @pytest.mark.asyncio
    async def test_guidance_gets_stage_title(self, processor, collaborator):
        session = await processor.start_session("kid-1", LINEAR_TEMPLATE_ID)
        await processor.process_interaction(session.id, "小兔子", "character")
        _, position, context, mode = collaborator.guidance_calls[0]
        assert (position, context, mode) == (0, "我們的主角", TemplateKind.LINEAR)

    @pytest.mark.asyncio
    async def test_state_kind_mismatch(self, processor, store):
        session = await processor.start_session("kid-1", LINEAR_TEMPLATE_ID)
        session.template_id = LEVELED_TEMPLATE_ID
        with pytest.raises(ConsistencyError):
            await processor.process_interaction(session.id, "a cat")


# ── Degraded collaborator ────────────────────────────────────


class TestDegraded:
    @pytest.fixture
    def failing_processor(self, store) -> InteractionProcessor:
        return InteractionProcessor(store=store, collaborator=FailingCollaborator())

    @pytest.mark.asyncio
    async def test_leveled_turn_completes_with_fallbacks(self, failing_processor):
        session = await failing_processor.start_session("kid-1", LEVELED_TEMPLATE_ID)
        result = await failing_processor.process_interaction(session.id, "a cat")
        assert result.system_response == FALLBACK_LEVEL_GUIDANCE[1]
        assert result.prompt_analysis.overall == 50
        assert result.prompt_analysis.source == "degraded"
        stored = await failing_processor.get_session(session.id)
        assert len(stored.interactions) == 1

    @pytest.mark.asyncio
    async def test_linear_turn_completes_with_fallbacks(self, failing_processor):
        session = await failing_processor.start_session("kid-1", LINEAR_TEMPLATE_ID)
        result = await failing_processor.process_interaction(session.id, "小兔子", "character")
        assert result.system_response == FALLBACK_TODDLER_GUIDANCE
        assert result.prompt_analysis.optimized_prompt == "小兔子"
        assert result.next_stage.id == "place"

    @pytest.mark.asyncio
    async def test_blank_guidance_replaced(self, processor, collaborator):
        collaborator.guidance = "   "
        session = await processor.start_session("kid-1", LEVELED_TEMPLATE_ID)
        result = await processor.process_interaction(session.id, "a cat")
        assert result.system_response == FALLBACK_LEVEL_GUIDANCE[1]


# ── Concurrency ──────────────────────────────────────────────


class SlowCollaborator(FailingCollaborator):
    """Yields to the loop mid-turn so concurrent turns would interleave."""

    async def analyze_quality(self, text, position, mode):
        await asyncio.sleep(0.01)
        return await super().analyze_quality(text, position, mode)


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_same_stage_submitted_twice_records_once(self, store):
        processor = InteractionProcessor(store=store, collaborator=SlowCollaborator())
        session = await processor.start_session("kid-1", LINEAR_TEMPLATE_ID)
        outcomes = await asyncio.gather(
            processor.process_interaction(session.id, "小兔子", "character"),
            processor.process_interaction(session.id, "小熊", "character"),
            return_exceptions=True,
        )
        assert sum(isinstance(o, StageMismatch) for o in outcomes) == 1
        stored = await processor.get_session(session.id)
        assert len(stored.interactions) == 1
        assert stored.state.stage_index == 1

    @pytest.mark.asyncio
    async def test_concurrent_turns_append_in_order(self, store):
        processor = InteractionProcessor(store=store, collaborator=SlowCollaborator())
        session = await processor.start_session("kid-1", LEVELED_TEMPLATE_ID)
        await asyncio.gather(*(processor.process_interaction(session.id, f"turn {n}") for n in range(5)))
        stored = await processor.get_session(session.id)
        assert len(stored.interactions) == 5
