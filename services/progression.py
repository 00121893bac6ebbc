"""Leveled progression policy — per-level scoring and advancement.

Levels are integers 1–4.  Each level has its own progress formula over the
lexical signals; skills are credited from the authoritative quality
analysis; advancement requires heuristic progress ≥ 80, overall ≥ 75 and
at least two prior interactions.

All functions are pure: the Interaction Processor applies their results.
"""

from __future__ import annotations

from dataclasses import dataclass

from errors import InvalidLevel
from models.analysis import LevelProgress, QualityAnalysis
from models.session import MAX_LEVEL, MIN_LEVEL
from services.heuristics import LexicalSignals

ADVANCE_PROGRESS_THRESHOLD = 80
ADVANCE_OVERALL_THRESHOLD = 75
ADVANCE_MIN_PRIOR_INTERACTIONS = 2
SKILL_CREDIT_THRESHOLD = 70

# Sub-score → skill credited when it reaches SKILL_CREDIT_THRESHOLD
SKILL_BY_SCORE: dict[str, str] = {
    "clarity": "清晰表達",
    "detail": "細節描述",
    "emotion": "情感表達",
    "visual": "視覺化描述",
    "structure": "結構組織",
}

NEXT_STEP_MASTERED = "太棒了！你已經是prompt小專家了！準備挑戰更複雜的創作吧！"
NEXT_STEP_LEVEL_UP = "恭喜升級到 Level {level}！準備學習新技能了！"
NEXT_STEP_CONSOLIDATE = "很好！再練習一次來鞏固技能吧！"
NEXT_STEP_FOCUS = "讓我們專注練習：{skill}"
NEXT_STEP_FUNDAMENTALS = "不要著急，我們一步步來練習基礎技能！"
DEFAULT_FOCUS_SKILL = "描述技巧"


def check_level(level: int) -> int:
    if not MIN_LEVEL <= level <= MAX_LEVEL:
        raise InvalidLevel(level)
    return level


def evaluate_progress(signals: LexicalSignals, level: int) -> LevelProgress:
    """Compute the 0–100 heuristic progress and next-skill hints for *level*."""
    check_level(level)

    if level == 1:
        progress = 75 if signals.has_adjective else 25
        if signals.word_count >= 5:
            progress += 15
        next_skills = (
            ["環境描述", "感官細節"] if signals.has_adjective else ["具體形容詞", "豐富描述"]
        )
    elif level == 2:
        progress = (
            (25 if signals.has_adjective else 0)
            + (50 if signals.has_environment else 0)
            + (25 if signals.word_count >= 8 else 0)
        )
        next_skills = (
            ["情感表達", "動作描述"] if signals.has_environment else ["環境描述", "場景設定"]
        )
    elif level == 3:
        progress = (
            (20 if signals.has_adjective else 0)
            + (20 if signals.has_environment else 0)
            + (30 if signals.has_emotion else 0)
            + (30 if signals.has_action else 0)
        )
        next_skills = (
            ["創意想像", "多元素整合"]
            if signals.has_emotion and signals.has_action
            else ["情感表達", "動作描述"]
        )
    else:
        progress = 25 * signals.flag_count
        next_skills = ["創意突破", "master級描述"]

    return LevelProgress(
        current_level=level,
        progress=max(0, min(progress, 100)),
        next_skills=next_skills,
    )


def credit_skills(analysis: QualityAnalysis) -> list[str]:
    """Skills credited this turn from the authoritative analysis."""
    return [
        skill
        for score_name, skill in SKILL_BY_SCORE.items()
        if getattr(analysis, score_name) >= SKILL_CREDIT_THRESHOLD
    ]


def should_advance(
    progress: LevelProgress,
    analysis: QualityAnalysis,
    prior_interactions: int,
) -> bool:
    """Advancement criteria; evaluated every turn, including at the level cap."""
    return (
        progress.progress >= ADVANCE_PROGRESS_THRESHOLD
        and analysis.overall >= ADVANCE_OVERALL_THRESHOLD
        and prior_interactions >= ADVANCE_MIN_PRIOR_INTERACTIONS
    )


@dataclass(frozen=True)
class AdvancementDecision:
    """Outcome of applying the advancement rule at one level."""

    criteria_met: bool
    previous_level: int
    new_level: int

    @property
    def level_advanced(self) -> bool:
        return self.new_level > self.previous_level

    @property
    def completion_ready(self) -> bool:
        """Criteria met while already at the cap; signals session completion."""
        return self.criteria_met and self.previous_level == MAX_LEVEL


def decide_advancement(level: int, criteria_met: bool) -> AdvancementDecision:
    check_level(level)
    new_level = level + 1 if criteria_met and level < MAX_LEVEL else level
    return AdvancementDecision(criteria_met=criteria_met, previous_level=level, new_level=new_level)


def next_step(progress: LevelProgress, decision: AdvancementDecision) -> str:
    """Exactly one advisory hint, by priority: advance > consolidate > focus > basics.

    Any advance that lands on the top level uses the mastered text, so the
    3->4 turn reads the same as a completion turn at level 4.
    """
    if decision.criteria_met:
        if decision.new_level >= MAX_LEVEL:
            return NEXT_STEP_MASTERED
        return NEXT_STEP_LEVEL_UP.format(level=decision.new_level)
    if progress.progress >= 70:
        return NEXT_STEP_CONSOLIDATE
    if progress.progress >= 50:
        skill = progress.next_skills[0] if progress.next_skills else DEFAULT_FOCUS_SKILL
        return NEXT_STEP_FOCUS.format(skill=skill)
    return NEXT_STEP_FUNDAMENTALS
