"""Story illustration — Volcengine Ark Seedream image generation.

Uses ``volcenginesdkarkruntime.AsyncArk`` with ARK_API_KEY authentication.
The progression engine never calls this; the story API decides the
cadence from the stage data and completion flag exposed by a turn.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from models.template import Stage

logger = logging.getLogger(__name__)

# Stages that always get a picture (when they carry visual cues)
ILLUSTRATED_STAGE_IDS = frozenset({"character", "place", "happy_solution"})


def should_illustrate(stage: Stage, is_complete: bool) -> bool:
    """Whether the stage just completed warrants an illustration."""
    if not stage.visual_cues:
        return False
    return stage.id in ILLUSTRATED_STAGE_IDS or is_complete


def build_image_prompt(stage: Stage, user_input: str) -> str:
    """Storybook-style prompt from the stage's cues and the child's answer."""
    parts = ["Vibrant storybook illustration for a young child."]
    if stage.visual_cues:
        parts.append(", ".join(stage.visual_cues) + ".")
    parts.append(f'The child described or chose: "{user_input}".')
    if stage.simple_title:
        parts.append(f'This is for the story stage: "{stage.simple_title}".')
    return " ".join(parts)


# ── Singleton AsyncArk client ─────────────────────────────


@lru_cache
def _get_ark_client():
    """Lazy-init singleton AsyncArk client.  Raises RuntimeError if ARK_API_KEY unset."""
    from volcenginesdkarkruntime import AsyncArk
    from config.settings import get_settings

    s = get_settings()
    if not s.ark_api_key:
        raise RuntimeError("ARK_API_KEY is not configured — set it in .env")
    return AsyncArk(base_url=s.ark_base_url, api_key=s.ark_api_key)


async def generate_image(*, prompt: str, size: str = "", seed: int = -1) -> str | None:
    """Generate an illustration and return its URL, or ``None`` on failure.

    Failures are logged, never raised: a missing picture must not fail
    the turn that asked for it.
    """
    if not prompt or not prompt.strip():
        return None

    from config.settings import get_settings
    settings = get_settings()

    try:
        client = _get_ark_client()

        kwargs: dict[str, Any] = {
            "model": settings.ark_image_model,
            "prompt": prompt.strip(),
            "size": size or settings.image_size,
        }
        if seed >= 0:
            kwargs["seed"] = seed

        response = await client.images.generate(**kwargs)
        image_url = response.data[0].url
        logger.info("Illustration generated (%d chars prompt)", len(prompt))
        return image_url
    except RuntimeError as exc:
        # ARK_API_KEY not configured
        logger.warning("Illustration skipped: %s", exc)
        return None
    except Exception as exc:
        logger.exception("Seedream image generation failed: %s", exc)
        return None
