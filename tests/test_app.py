import uuid

from sqlalchemy import select

from conftest import OWNER
from storyframe.errors import (
    AuthenticationError,
    NotFoundError,
    PersistenceError,
    ProviderError,
    ValidationError,
)
from storyframe.models import GenerationJob, JobStatus
from storyframe.services.job_status import INTERRUPTED_ERROR, recover_interrupted_jobs


async def test_root_and_health(client):
    root = await client.get("/")
    health = await client.get("/health")
    assert root.json()["status"] == "running"
    assert health.json()["status"] == "healthy"


async def test_malformed_body_is_400_with_reason(client, auth):
    resp = await client.post("/api/scene-generation", json={"prompt": "x"}, headers=auth())
    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert "scene_id" in body["reason"]


async def test_unknown_provider_in_request_is_400(client, auth, create_character, create_scene):
    character = await create_character()
    scene = await create_scene()
    resp = await client.post(
        "/api/scene-continuation",
        json={"scene_id": scene.id, "character_id": character.id, "prompt": "x", "provider": "dalle-mini"},
        headers=auth(),
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Unknown provider: dalle-mini"


def test_error_bodies():
    assert ValidationError("bad", reason="why").to_dict() == {
        "error": "bad", "code": "VALIDATION_ERROR", "reason": "why",
    }
    assert AuthenticationError("Token expired").status_code == 401
    assert NotFoundError("Scene").message == "Scene not found or access denied"
    err = ProviderError("openai", "quota", extra={"job_id": "j1", "status": "failed"})
    assert err.status_code == 502
    assert err.to_dict() == {"error": "[openai] quota", "code": "PROVIDER_ERROR", "job_id": "j1", "status": "failed"}
    assert PersistenceError("disk full").status_code == 500


async def test_recovery_fails_processing_jobs_only(session_factory, create_scene):
    scene = await create_scene()
    stuck = GenerationJob(
        id=uuid.uuid4().hex, owner_id=OWNER, scene_id=scene.id, provider="placeholder",
        prompt="stuck", status=JobStatus.PROCESSING.value,
    )
    done = GenerationJob(
        id=uuid.uuid4().hex, owner_id=OWNER, scene_id=scene.id, provider="placeholder",
        prompt="done", status=JobStatus.SUCCEEDED.value,
    )
    async with session_factory() as session:
        session.add_all([stuck, done])
        await session.commit()

    assert await recover_interrupted_jobs(session_factory) == 1
    assert await recover_interrupted_jobs(session_factory) == 0

    async with session_factory() as session:
        jobs = {j.prompt: j for j in (await session.execute(select(GenerationJob))).scalars().all()}
    assert jobs["stuck"].status == "failed"
    assert jobs["stuck"].error == INTERRUPTED_ERROR
    assert jobs["done"].status == "succeeded"
    assert jobs["done"].error is None
