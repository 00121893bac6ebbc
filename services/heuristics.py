"""Score heuristics — cheap lexical signals computed locally from raw text.

These are NOT the authoritative quality score.  They gate level
advancement and back the degraded-mode analysis used when the AI
collaborator is unavailable.

Word lists sit behind :class:`LocalEstimator` so they can be replaced or
localized without touching the progression policy.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from models.analysis import QualityAnalysis
from models.template import TemplateKind

# ── Lexicons ─────────────────────────────────────────────────
# CJK terms match as substrings (no word delimiters); ASCII terms match
# whole words, case-insensitively.

ADJECTIVES = (
    "美麗", "可愛", "溫暖", "明亮", "開心", "大", "小", "紅", "藍", "綠", "白", "黑",
    "beautiful", "cute", "warm", "bright", "happy", "big", "small", "little", "tiny",
    "huge", "soft", "fluffy", "red", "blue", "green", "yellow", "white", "black",
)
ENVIRONMENT = (
    "在", "裡", "中", "環境", "場景", "房間", "公園", "學校",
    "in", "at", "inside", "outside", "room", "bedroom", "kitchen", "park",
    "school", "garden", "beach", "forest", "playground",
)
EMOTIONS = (
    "開心", "快樂", "興奮", "溫暖", "愛", "喜歡", "難過", "生氣",
    "happy", "joyful", "excited", "warm", "love", "loves", "like", "likes",
    "sad", "angry", "scared", "glad",
)
ACTIONS = (
    "跳", "跑", "玩", "笑", "擁抱", "看", "聽", "唱", "畫", "哭", "吃", "睡",
    "jump", "jumps", "jumping", "run", "runs", "running", "play", "plays",
    "playing", "laugh", "laughs", "laughing", "hug", "hugs", "look", "looks",
    "listen", "listens", "sing", "sings", "draw", "draws", "eat", "eats",
    "sleep", "sleeps", "cry", "cries",
)
# Words a 3-6 year old typically offers in the story stages
FAMILIAR_TODDLER_WORDS = (
    "小兔子", "公園", "玩", "開心",
    "bunny", "park", "play", "happy",
)

DEGRADED_SUGGESTION = "嘗試加入更多具體的描述"
DEGRADED_TODDLER_SUGGESTION = "可以問問寶寶最喜歡什麼顏色！"


def _compile(terms: tuple[str, ...]) -> re.Pattern[str]:
    parts = [
        rf"\b{re.escape(t)}\b" if t.isascii() else re.escape(t)
        for t in terms
    ]
    return re.compile("|".join(parts), re.IGNORECASE)


@dataclass(frozen=True)
class LexicalSignals:
    """Presence flags and elaboration proxy for one piece of text."""

    word_count: int
    has_adjective: bool = False
    has_environment: bool = False
    has_emotion: bool = False
    has_action: bool = False

    @property
    def flag_count(self) -> int:
        return sum((self.has_adjective, self.has_environment, self.has_emotion, self.has_action))


class LocalEstimator(ABC):
    """Pluggable local signal detector."""

    @abstractmethod
    def detect(self, text: str) -> LexicalSignals:
        """Derive lexical signals from *text* only."""
        ...

    @abstractmethod
    def is_familiar(self, text: str) -> bool:
        """Whether *text* contains a word young children commonly offer."""
        ...


@dataclass
class LexicalEstimator(LocalEstimator):
    """Default estimator: fixed bilingual word lists + whitespace word count."""

    adjectives: tuple[str, ...] = ADJECTIVES
    environment: tuple[str, ...] = ENVIRONMENT
    emotions: tuple[str, ...] = EMOTIONS
    actions: tuple[str, ...] = ACTIONS
    familiar: tuple[str, ...] = FAMILIAR_TODDLER_WORDS
    _patterns: dict[str, re.Pattern[str]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._patterns = {
            "adjective": _compile(self.adjectives),
            "environment": _compile(self.environment),
            "emotion": _compile(self.emotions),
            "action": _compile(self.actions),
            "familiar": _compile(self.familiar),
        }

    def detect(self, text: str) -> LexicalSignals:
        return LexicalSignals(
            word_count=count_words(text),
            has_adjective=bool(self._patterns["adjective"].search(text)),
            has_environment=bool(self._patterns["environment"].search(text)),
            has_emotion=bool(self._patterns["emotion"].search(text)),
            has_action=bool(self._patterns["action"].search(text)),
        )

    def is_familiar(self, text: str) -> bool:
        return bool(self._patterns["familiar"].search(text))


def count_words(text: str) -> int:
    """Whitespace-delimited token count (unsegmented CJK text counts as one)."""
    return len(text.split())


# ── Degraded-mode quality analysis ───────────────────────────


def estimate_quality(
    estimator: LocalEstimator,
    text: str,
    mode: TemplateKind,
) -> QualityAnalysis:
    """Build a complete, schema-valid analysis without the AI collaborator.

    The result is tagged ``degraded`` internally; its public shape is
    identical to a live analysis.
    """
    if mode == TemplateKind.LINEAR:
        clarity = 70 if estimator.is_familiar(text) else 40
        engagement = 60 if len(text.strip()) > 2 else 30
        analysis = QualityAnalysis(
            clarity=clarity,
            detail=20,
            emotion=20,
            structure=30,
            visual=20,
            overall=round((clarity + engagement) / 2),
            suggestions=[DEGRADED_TODDLER_SUGGESTION],
            optimized_prompt=text,
        )
        return analysis.mark_degraded()

    signals = estimator.detect(text)
    base = min(40 + signals.word_count * 5, 70)
    base += 10 * sum((signals.has_adjective, signals.has_action, signals.has_emotion))

    analysis = QualityAnalysis(
        clarity=min(base + 5, 85),
        detail=min(base, 80),
        emotion=min(base + 15, 90) if signals.has_emotion else max(base - 20, 30),
        structure=min(base + 5, 75),
        visual=min(base + 10, 85) if signals.has_adjective else max(base - 15, 35),
        overall=base,
        suggestions=[DEGRADED_SUGGESTION],
        optimized_prompt=text,
    )
    return analysis.mark_degraded()
