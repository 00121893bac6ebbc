"""Template catalog endpoints — read-only."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from api.deps import catalog_dep
from services.template_catalog import TemplateCatalog, list_scenarios

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/templates", tags=["Templates"])


@router.get("")
async def list_templates(catalog: TemplateCatalog = Depends(catalog_dep)) -> list[dict[str, Any]]:
    """Summaries of every loaded template."""
    return [
        {
            "id": t.id,
            "kind": t.kind,
            "name": t.name,
            "description": t.description,
        }
        for t in catalog.list_templates()
    ]


@router.get("/{template_id}")
async def get_template(
    template_id: str,
    catalog: TemplateCatalog = Depends(catalog_dep),
) -> dict[str, Any]:
    """Full template plus its scenario list.

    Linear templates expose their stages as scenarios too, so a client can
    render either kind with one list.
    """
    template = catalog.get_template(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail=f"Template '{template_id}' not found")

    body = template.model_dump(by_alias=True, mode="json")
    body["scenarioList"] = [s.model_dump(by_alias=True, mode="json") for s in list_scenarios(template)]
    return body
