"""FastAPI endpoint tests using httpx.AsyncClient."""

import pytest
from httpx import ASGITransport, AsyncClient

from api.deps import archive_dep, processor_dep
from main import app
from services.story_archive import InMemoryStoryArchive
from tests.fakes import LEVELED_TEMPLATE_ID, LINEAR_TEMPLATE_ID, RICH_INPUT

STORY_ANSWERS = [
    ("character", "小兔子"),
    ("place", "公園"),
    ("activity", "盪鞦韆"),
    ("little_problem", "鞋子掉了"),
    ("happy_solution", "朋友幫忙找到了"),
]


@pytest.fixture
def archive() -> InMemoryStoryArchive:
    return InMemoryStoryArchive()


@pytest.fixture
async def client(processor, archive):
    app.dependency_overrides[processor_dep] = lambda: processor
    app.dependency_overrides[archive_dep] = lambda: archive
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _start(client, template_id=LEVELED_TEMPLATE_ID) -> str:
    resp = await client.post(
        "/api/learning/sessions",
        json={"participantId": "kid-1", "templateId": template_id},
    )
    assert resp.status_code == 201
    return resp.json()["id"]


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["templates"] >= 2


@pytest.mark.asyncio
async def test_request_id_echoed(client):
    resp = await client.get("/api/health", headers={"X-Request-ID": "abc123"})
    assert resp.headers["x-request-id"] == "abc123"


# ── Templates ─────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_templates(client):
    resp = await client.get("/api/templates")
    assert resp.status_code == 200
    kinds = {t["id"]: t["kind"] for t in resp.json()}
    assert kinds[LEVELED_TEMPLATE_ID] == "leveled"
    assert kinds[LINEAR_TEMPLATE_ID] == "linear"


@pytest.mark.asyncio
async def test_get_linear_template_projects_stages(client):
    resp = await client.get(f"/api/templates/{LINEAR_TEMPLATE_ID}")
    assert resp.status_code == 200
    data = resp.json()
    assert [s["id"] for s in data["scenarioList"]] == [s for s, _ in STORY_ANSWERS]
    assert "childPrompt" in data["stages"][0]


@pytest.mark.asyncio
async def test_get_unknown_template(client):
    resp = await client.get("/api/templates/nope")
    assert resp.status_code == 404


# ── Learning sessions ─────────────────────────────────────────


@pytest.mark.asyncio
async def test_start_session_validation(client):
    resp = await client.post("/api/learning/sessions", json={})
    assert resp.status_code == 422  # FastAPI validation error


@pytest.mark.asyncio
async def test_start_session_unknown_template(client):
    resp = await client.post(
        "/api/learning/sessions",
        json={"participantId": "kid-1", "templateId": "missing"},
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_session_roundtrip(client):
    session_id = await _start(client)

    resp = await client.get(f"/api/learning/sessions/{session_id}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["currentLevel"] == 1
    assert data["state"]["kind"] == "leveled"

    resp = await client.post(
        f"/api/learning/sessions/{session_id}/interactions",
        json={"userInput": RICH_INPUT, "scenarioId": "play"},
    )
    assert resp.status_code == 200
    turn = resp.json()
    assert turn["mode"] == "leveled"
    assert turn["levelProgress"]["progress"] == 90
    assert turn["shouldAdvanceLevel"] is False
    assert "currentStage" not in turn

    resp = await client.post(f"/api/learning/sessions/{session_id}/finish")
    assert resp.status_code == 200
    finished = resp.json()
    assert finished["finalScore"] == 80
    assert finished["endedAt"] is not None
    assert len(finished["interactions"]) == 1


@pytest.mark.asyncio
async def test_unknown_session_is_404(client):
    resp = await client.get("/api/learning/sessions/session-nope")
    assert resp.status_code == 404
    resp = await client.post(
        "/api/learning/sessions/session-nope/interactions",
        json={"userInput": "hi"},
    )
    assert resp.status_code == 404
    resp = await client.post("/api/learning/sessions/session-nope/finish")
    assert resp.status_code == 404


# ── Story flow ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_story_create(client):
    resp = await client.post("/api/story/create", json={"userId": "kid-1"})
    assert resp.status_code == 201
    data = resp.json()
    assert data["currentStage"]["id"] == "character"
    assert data["session"]["templateId"] == LINEAR_TEMPLATE_ID


@pytest.mark.asyncio
async def test_story_stage_mismatch_is_409(client):
    resp = await client.post("/api/story/create", json={"userId": "kid-1"})
    session_id = resp.json()["session"]["id"]
    resp = await client.post(
        "/api/story/interact",
        json={"sessionId": session_id, "userInput": "公園", "stageId": "place"},
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_story_on_leveled_session_is_409(client):
    session_id = await _start(client)
    resp = await client.post(
        "/api/story/interact",
        json={"sessionId": session_id, "userInput": "小兔子", "stageId": "character"},
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_story_full_flow(client, collaborator, archive):
    resp = await client.post("/api/story/create", json={"userId": "kid-1"})
    session_id = resp.json()["session"]["id"]

    turns = []
    for stage_id, answer in STORY_ANSWERS:
        resp = await client.post(
            "/api/story/interact",
            json={"sessionId": session_id, "userInput": answer, "stageId": stage_id},
        )
        assert resp.status_code == 200
        turns.append(resp.json())

    first, second, third, *_, last = turns
    assert "小兔子" in first["nextStagePrompt"]
    assert first["imageUrl"] == collaborator.image_url
    assert "imageUrl" in second
    assert "imageUrl" not in third and "imageError" not in third

    assert last["isComplete"] is True
    assert last["stageIndex"] == 5
    assert last["archived"] is True
    assert "nextStage" not in last

    resp = await client.get("/api/story/archive", params={"userId": "kid-1"})
    assert resp.status_code == 200
    stories = resp.json()
    assert len(stories) == 1
    assert stories[0]["title"].startswith("小兔子 - ")
    assert [s["userInput"] for s in stories[0]["stages"]] == [a for _, a in STORY_ANSWERS]
    assert stories[0]["finalImageUrl"] == collaborator.image_url


@pytest.mark.asyncio
async def test_story_completion_survives_evicted_session(client, processor, archive, monkeypatch):
    resp = await client.post("/api/story/create", json={"userId": "kid-1"})
    session_id = resp.json()["session"]["id"]
    for stage_id, answer in STORY_ANSWERS[:-1]:
        resp = await client.post(
            "/api/story/interact",
            json={"sessionId": session_id, "userInput": answer, "stageId": stage_id},
        )
        assert resp.status_code == 200

    original = processor.process_interaction

    async def process_then_evict(*args, **kwargs):
        result = await original(*args, **kwargs)
        await processor.store.delete(session_id)
        return result

    monkeypatch.setattr(processor, "process_interaction", process_then_evict)
    stage_id, answer = STORY_ANSWERS[-1]
    resp = await client.post(
        "/api/story/interact",
        json={"sessionId": session_id, "userInput": answer, "stageId": stage_id},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["isComplete"] is True
    assert data["archived"] is False
    assert await archive.list_for_participant("kid-1") == []


@pytest.mark.asyncio
async def test_story_image_failure_does_not_fail_turn(client, collaborator):
    collaborator.image_url = None
    resp = await client.post("/api/story/create", json={"userId": "kid-1"})
    session_id = resp.json()["session"]["id"]
    resp = await client.post(
        "/api/story/interact",
        json={"sessionId": session_id, "userInput": "小兔子", "stageId": "character"},
    )
    assert resp.status_code == 200
    assert "imageError" in resp.json()
    assert "imageUrl" not in resp.json()


@pytest.mark.asyncio
async def test_story_archive_requires_user(client):
    resp = await client.get("/api/story/archive")
    assert resp.status_code == 422
