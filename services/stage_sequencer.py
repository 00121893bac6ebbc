"""Stage sequencer — linear traversal of fixed-order story templates.

State is purely ``(template, LinearState.stage_index)``.  The sequencer
advances strictly by stage order, one step per completed stage, and never
moves backwards.
"""

from __future__ import annotations

from errors import InvalidStageIndex, StageMismatch
from models.session import LinearState
from models.template import LinearTemplate, Stage

# Child-prompt placeholder → stage whose recorded input fills it
PROMPT_PLACEHOLDERS: dict[str, str] = {
    "[主角名字]": "character",
    "[地點名稱]": "place",
    "[做什麼]": "activity",
    "[小麻煩]": "little_problem",
}


def current_stage(template: LinearTemplate, state: LinearState) -> Stage:
    """Return the stage at ``state.stage_index``; raise if out of range."""
    index = state.stage_index
    if not 0 <= index < template.stage_count:
        raise InvalidStageIndex(index, template.stage_count)
    return template.stages[index]


def is_final_stage(template: LinearTemplate, stage: Stage) -> bool:
    return stage.order == template.stage_count


def verify_stage(template: LinearTemplate, state: LinearState, stage_id: str | None) -> Stage:
    """Resolve the current stage and check it against the caller's stage id.

    ``None`` means "whatever stage the session is at".  A mismatch raises
    :class:`StageMismatch` instead of silently resyncing.
    """
    stage = current_stage(template, state)
    if stage_id is not None and stage_id != stage.id:
        raise StageMismatch(expected_stage_id=stage.id, received_stage_id=stage_id)
    return stage


def record_stage_input(state: LinearState, stage: Stage, user_input: str) -> None:
    """Record the raw input for *stage*; a retry overwrites (latest wins)."""
    state.stage_inputs[stage.id] = user_input


def advance(template: LinearTemplate, state: LinearState) -> Stage | None:
    """Move to the next stage and return it, or ``None`` on the final stage.

    On the final stage the index stays put and the caller treats the turn
    as the story's completion.
    """
    stage = current_stage(template, state)
    if is_final_stage(template, stage):
        return None
    state.stage_index += 1
    return template.stages[state.stage_index]


def personalize_prompt(stage: Stage, stage_inputs: dict[str, str]) -> str:
    """Fill ``[placeholders]`` in the child prompt with earlier answers.

    Placeholders whose stage has no recorded input are left as-is.
    """
    prompt = stage.child_prompt
    for placeholder, source_stage_id in PROMPT_PLACEHOLDERS.items():
        answer = stage_inputs.get(source_stage_id, "").strip()
        if answer:
            prompt = prompt.replace(placeholder, answer)
    return prompt


def ordered_inputs(template: LinearTemplate, state: LinearState) -> list[tuple[Stage, str]]:
    """Every stage in template order with its recorded input.

    Order does not depend on the order answers were given; stages without
    a recorded input pair with an empty string.
    """
    return [(stage, state.stage_inputs.get(stage.id, "")) for stage in template.stages]
