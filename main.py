"""FastAPI entry point for the Little Storyteller service."""

import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import get_settings
from services.middleware import RequestIdMiddleware
from services.session_store import get_session_store, periodic_cleanup
from services.story_archive import get_story_archive
from services.template_catalog import get_template_catalog

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle — start/stop shared resources."""
    catalog = get_template_catalog()
    logger.info("Template catalog ready (%d templates)", len(catalog))

    store = get_session_store()
    cleanup_task = asyncio.create_task(
        periodic_cleanup(store, interval_seconds=settings.session_cleanup_interval)
    )
    archive = get_story_archive()

    yield

    cleanup_task.cancel()
    try:
        await cleanup_task
    except asyncio.CancelledError:
        pass

    await archive.close()


app = FastAPI(
    title="Little Storyteller",
    description="Parent/child storytelling and descriptive-prompting practice",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Middleware stack (outermost first) ─────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)

# ── Register routers ────────────────────────────────────────
from api.health import router as health_router  # noqa: E402
from api.learning import router as learning_router  # noqa: E402
from api.story import router as story_router  # noqa: E402
from api.templates import router as templates_router  # noqa: E402

app.include_router(health_router)
app.include_router(templates_router)
app.include_router(learning_router)
app.include_router(story_router)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.service_port,
        reload=settings.debug,
    )
