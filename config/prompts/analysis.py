"""Quality-analysis prompts — score a learner's description on five axes.

Two framings share one output schema (:class:`QualityAnalysis`):
- leveled: a parent/child practising descriptive prompts for image generation
- linear: a 3-6 year old's story idea or choice, scored leniently
"""

from __future__ import annotations

from models.template import TemplateKind

ANALYSIS_SYSTEM_PROMPT = """\
You are a warm, precise evaluator in a parent-child creative learning app.
You score one piece of user input and return ONLY the structured result.

## Scores (integers 0-100)

- clarity: is the description clear and understandable
- detail: does it contain enough concrete detail
- emotion: does it express feeling or atmosphere
- structure: is the description logically complete
- visual: does it help someone picture the scene
- overall: your overall judgement

## Constraints

1. suggestions: 1-3 short, encouraging, parent-friendly tips.
2. optimizedPrompt: a rewritten, improved version of the input.
3. Respond in the same language the user wrote in.
"""

LEVEL_DESCRIPTIONS: dict[int, str] = {
    1: "基礎描述 - 學習使用具體的形容詞描述事物",
    2: "環境感知 - 學習描述環境和氛圍",
    3: "情感表達 - 學習加入情感和動作描述",
    4: "創意整合 - 學習創造性地組合各種元素",
}


def build_analysis_prompt(user_input: str, position: int, mode: TemplateKind) -> str:
    """Build the per-turn analysis request.

    Args:
        user_input: The raw text (or choice) the user submitted.
        position: Skill level 1-4 (leveled) or 0-based stage index (linear).
        mode: Which framing to use.
    """
    if mode == TemplateKind.LINEAR:
        return (
            "You are analyzing a young child's story idea or choice. "
            "The child is likely 3-6 years old.\n"
            f'The input is: "{user_input}"\n'
            f"Story stage: {position + 1}\n"
            "Focus on whether the input is understandable and fits the current story stage.\n"
            "Score clarity (is it understandable?) and engagement (does it show enthusiasm?) "
            "generously; detail, emotion, structure and visual can stay minimal (0-30) "
            "unless clearly expressed.\n"
            "Offer one very simple suggestion the parent can use to help the child.\n"
            "optimizedPrompt must be the child's original input, unchanged."
        )

    level_desc = LEVEL_DESCRIPTIONS.get(position, "general creative task")
    return (
        "請分析以下用於AI圖片生成的prompt，評估其在各維度的表現（0-100分）。\n\n"
        f'用戶Prompt: "{user_input}"\n'
        f"目標學習等級: {position} ({level_desc})"
    )
