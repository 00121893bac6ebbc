"""Health check endpoint."""

from fastapi import APIRouter

from services.session_store import InMemorySessionStore, get_session_store
from services.template_catalog import get_template_catalog

router = APIRouter(tags=["Health"])


@router.get("/api/health")
async def health():
    store = get_session_store()
    body = {
        "status": "healthy",
        "templates": len(get_template_catalog()),
    }
    if isinstance(store, InMemorySessionStore):
        body["sessions"] = store.size
    return body
