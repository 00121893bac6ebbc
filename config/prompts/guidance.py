"""Guidance prompts — the encouraging message shown after each turn.

Also holds the canned encouragements used when the guidance model is
unavailable, so a turn never returns empty guidance.
"""

from __future__ import annotations

from models.template import TemplateKind

GUIDANCE_SYSTEM_PROMPT = """\
You are a friendly AI teaching assistant guiding a parent and a young child.

## Your Personality

- Warm, playful, and encouraging
- Concise — 1-4 short sentences
- Always respond in the **same language** the user writes in

## Constraints

1. NEVER criticise the child.
2. NEVER output JSON, Markdown headings, or lists.
3. Plain text only.
"""

LEVEL_INFO: dict[int, tuple[str, list[str]]] = {
    1: ("基礎描述", ["具體化描述", "基礎形容詞使用"]),
    2: ("環境感知", ["環境描述", "感官細節", "氛圍營造"]),
    3: ("情感表達", ["情感表達", "動作描述", "關係互動"]),
    4: ("創意整合", ["創意想像", "多元素整合", "故事連貫性"]),
}

OPEN_PRACTICE_LABEL = "開放練習"

# Canned encouragements for degraded mode
FALLBACK_TODDLER_GUIDANCE = "好棒！那接下來呢？"
FALLBACK_LEVEL_GUIDANCE: dict[int, str] = {
    1: "很棒的嘗試！試著加入一個形容詞，像是顏色或大小，讓描述更生動吧！",
    2: "很棒的嘗試！說說看這是在哪裡發生的，周圍有什麼呢？",
    3: "很棒的嘗試！加入心情和動作，讓畫面動起來吧！",
    4: "很棒的嘗試！把人物、地點、心情和動作組合在一起，創造你自己的故事吧！",
}
FALLBACK_GUIDANCE = "很棒的嘗試！讓我們試著加入更多細節來讓描述更生動吧！"


def scenario_context(title: str) -> str:
    return f"當前情境：{title}"


def build_guidance_prompt(
    user_input: str,
    position: int,
    context: str,
    mode: TemplateKind,
) -> str:
    """Build the per-turn guidance request.

    Args:
        user_input: What the user said or chose.
        position: Skill level 1-4 (leveled) or 0-based stage index (linear).
        context: Stage title (linear) or scenario label (leveled).
        mode: Which framing to use.
    """
    if mode == TemplateKind.LINEAR:
        return (
            "You are helping a parent and a 3-6 year old child create a story together.\n"
            f'Current story stage: "{context}"\n'
            f'The child said/chose: "{user_input}"\n\n'
            "Write a warm, very simple message for the parent to say to the child "
            "to affirm the input and continue the story. Keep it to 1-2 playful sentences.\n"
            'Example: stage "Choose a character", child says "bunny!" -> '
            '"A bunny! That\'s a great choice! What color is our bunny?"'
        )

    name, skills = LEVEL_INFO.get(position, LEVEL_INFO[1])
    return (
        "你正在引導家長和孩子學習如何寫出好的圖片描述。\n\n"
        f"當前學習等級: {name} (Level {position})\n"
        f"要培養的技能: {', '.join(skills)}\n\n"
        f'用戶輸入: "{user_input}"\n'
        f"上下文: {context}\n\n"
        "請生成溫暖、鼓勵性的引導回應：肯定用戶的嘗試，指出一個可以改進的地方，"
        "並提供具體的改進建議。"
    )


def fallback_guidance(position: int, mode: TemplateKind) -> str:
    """Level/mode-appropriate canned encouragement; never empty."""
    if mode == TemplateKind.LINEAR:
        return FALLBACK_TODDLER_GUIDANCE
    return FALLBACK_LEVEL_GUIDANCE.get(position, FALLBACK_GUIDANCE)
