"""Shared pytest fixtures for the progression engine tests.

Provides:
- ``catalog``: the bundled template catalog (daily-life, toddler_adventure)
- ``store``: fresh InMemorySessionStore per test
- ``collaborator``: scripted in-process StoryCollaborator
- ``processor``: InteractionProcessor wired to the two above
"""

from __future__ import annotations

import pytest

from services.interaction_processor import InteractionProcessor
from services.session_store import InMemorySessionStore
from services.template_catalog import TemplateCatalog, load_templates
from tests.fakes import FakeCollaborator


@pytest.fixture(scope="session")
def catalog() -> TemplateCatalog:
    return TemplateCatalog(load_templates())


@pytest.fixture
def store(catalog) -> InMemorySessionStore:
    """Fresh session store — isolated per test."""
    return InMemorySessionStore(catalog, ttl_seconds=3600, max_sessions=100)


@pytest.fixture
def collaborator() -> FakeCollaborator:
    return FakeCollaborator()


@pytest.fixture
def processor(store, collaborator) -> InteractionProcessor:
    return InteractionProcessor(store=store, collaborator=collaborator)
