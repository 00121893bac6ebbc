"""Template catalog — static registry of progression templates.

Templates are loaded once from ``data/templates/*.json`` and never mutated.
Lookups have no side effects; ``require_template`` turns a miss into an
explicit :class:`TemplateNotFound`.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Iterable

from pydantic import TypeAdapter, ValidationError

from errors import TemplateNotFound
from models.template import LeveledTemplate, LinearTemplate, Scenario, Stage, Template

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "data" / "templates"

_template_adapter: TypeAdapter[LeveledTemplate | LinearTemplate] = TypeAdapter(Template)


class TemplateCatalog:
    """Read-only, insertion-ordered registry of templates keyed by id."""

    def __init__(self, templates: Iterable[LeveledTemplate | LinearTemplate] = ()) -> None:
        self._templates: dict[str, LeveledTemplate | LinearTemplate] = {}
        for template in templates:
            if template.id in self._templates:
                raise ValueError(f"Duplicate template id: {template.id}")
            self._templates[template.id] = template

    def get_template(self, template_id: str) -> LeveledTemplate | LinearTemplate | None:
        return self._templates.get(template_id)

    def require_template(self, template_id: str) -> LeveledTemplate | LinearTemplate:
        """Return the template or raise :class:`TemplateNotFound`."""
        template = self._templates.get(template_id)
        if template is None:
            raise TemplateNotFound(template_id)
        return template

    def list_templates(self) -> list[LeveledTemplate | LinearTemplate]:
        return list(self._templates.values())

    def __len__(self) -> int:
        return len(self._templates)


def load_templates(directory: Path = TEMPLATE_DIR) -> list[LeveledTemplate | LinearTemplate]:
    """Parse every template JSON file in *directory*, sorted by filename.

    Malformed files are logged and skipped so one bad file does not take
    the whole catalog down.
    """
    if not directory.exists():
        logger.warning("Template directory does not exist: %s", directory)
        return []

    templates: list[LeveledTemplate | LinearTemplate] = []
    for file_path in sorted(directory.glob("*.json")):
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            templates.append(_template_adapter.validate_python(data))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error("Failed to load template %s: %s", file_path.name, e)
    logger.info("Loaded %d templates from %s", len(templates), directory)
    return templates


@lru_cache
def get_template_catalog() -> TemplateCatalog:
    """Singleton catalog built from the bundled template files."""
    return TemplateCatalog(load_templates())


# ── Catalog view projection ──────────────────────────────────


def project_stage(stage: Stage) -> Scenario:
    """Present a linear stage in the open-scenario shape (pure, no mutation)."""
    return Scenario(
        id=stage.id,
        title=stage.title,
        description=stage.description,
        prompt=stage.child_prompt,
        expected_elements=list(stage.visual_cues),
    )


def list_scenarios(template: LeveledTemplate | LinearTemplate) -> list[Scenario]:
    """Shared scenario view of either template kind."""
    if isinstance(template, LinearTemplate):
        return [project_stage(stage) for stage in template.stages]
    return list(template.scenarios)
