import httpx
import pytest
from sqlalchemy import select

from conftest import OTHER, OWNER
from storyframe.models import Character, CharacterPose
from storyframe.services.providers.placeholder import PlaceholderProvider
from storyframe.services.storage_paths import parse_storage_pointer

RUN_AND_IDLE = [
    {"label": "Run", "description": "sprinting forward"},
    {"label": "Idle", "description": "standing relaxed"},
]


async def test_keep_top_one_breaks_ties_by_request_order(client, auth, create_character, db):
    character = await create_character()
    resp = await client.post(
        "/api/pose-generation",
        json={"character_id": character.id, "poses": RUN_AND_IDLE, "keep_top": 1},
        headers=auth(),
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["provider"] == "placeholder"
    assert len(body["poses"]) == 2

    approved = [p for p in body["poses"] if p["approved_for_scene"]]
    assert [p["pose_label"] for p in approved] == ["Run"]
    for pose in body["poses"]:
        assert pose["score"] >= 0.05
        assert pose["generated_image_url"].startswith(f"story-refs/character-poses/{OWNER}/{character.id}/")
        assert pose["signed_url"].startswith("http://testserver/storage/story-refs/")

    rows = (await db.execute(select(CharacterPose).where(CharacterPose.character_id == character.id))).scalars().all()
    assert len(rows) == 2
    assert sum(r.approved_for_scene for r in rows) == 1
    refreshed = await db.get(Character, character.id)
    assert refreshed.has_pose_library is True


class SummarizingProvider(PlaceholderProvider):
    """Attaches a canned provider summary keyed on the pose label in the prompt."""

    summaries = {
        "Wave": "figure waving both hands overhead",
        "Sit": "person sitting on a chair",
    }

    async def _render(self, prompt, images, options, count):
        results = await super()._render(prompt, images, options, count)
        for label, summary in self.summaries.items():
            if f"Pose: {label}." in prompt:
                results[0].metadata["summary"] = summary
        return results


async def test_later_poses_outrank_earlier_ones(client, auth, create_character, monkeypatch):
    monkeypatch.setattr(
        "storyframe.services.pose_pipeline.resolve_provider",
        lambda settings, requested, http_client: SummarizingProvider(),
    )
    character = await create_character()
    poses = [
        {"label": "Crouch", "description": "crouching low behind cover", "long_description": "ducking down"},
        {"label": "Sit", "description": "sitting on a bench", "long_description": "resting"},
        {"label": "Wave", "description": "waving both hands", "long_description": "greeting the crowd"},
    ]
    resp = await client.post(
        "/api/pose-generation",
        json={"character_id": character.id, "poses": poses, "keep_top": 2},
        headers=auth(),
    )
    assert resp.status_code == 201
    scores = {p["pose_label"]: p["score"] for p in resp.json()["poses"]}
    assert scores == {
        "Crouch": pytest.approx(0.05),
        "Sit": pytest.approx(0.75),
        "Wave": pytest.approx(1.0),
    }
    approved = {p["pose_label"] for p in resp.json()["poses"] if p["approved_for_scene"]}
    assert approved == {"Sit", "Wave"}


async def test_generated_images_are_stored(client, auth, create_character, storage):
    character = await create_character()
    resp = await client.post(
        "/api/pose-generation",
        json={"character_id": character.id, "poses": RUN_AND_IDLE[:1]},
        headers=auth(),
    )
    pose = resp.json()["poses"][0]
    stored = await storage.download(parse_storage_pointer(pose["generated_image_url"]))
    assert stored.startswith(b"\x89PNG")


async def test_keep_top_is_clamped(client, auth, create_character):
    character = await create_character()
    poses = [{"label": f"Pose {i}", "description": f"variation {i}"} for i in range(7)]

    resp = await client.post(
        "/api/pose-generation",
        json={"character_id": character.id, "poses": poses, "keep_top": 40},
        headers=auth(),
    )
    assert sum(p["approved_for_scene"] for p in resp.json()["poses"]) == 5

    resp = await client.post(
        "/api/pose-generation",
        json={"character_id": character.id, "poses": poses, "keep_top": 0},
        headers=auth(),
    )
    assert sum(p["approved_for_scene"] for p in resp.json()["poses"]) == 1


async def test_default_keep_top_is_three(client, auth, create_character):
    character = await create_character()
    poses = [{"label": f"Pose {i}", "description": f"variation {i}"} for i in range(5)]
    resp = await client.post(
        "/api/pose-generation", json={"character_id": character.id, "poses": poses}, headers=auth(),
    )
    assert sum(p["approved_for_scene"] for p in resp.json()["poses"]) == 3


async def test_invalid_pose_specs_are_skipped(client, auth, create_character):
    character = await create_character()
    poses = [{"label": "Run"}, {"description": "no label"}, {"label": "Jump", "description": "leaping up"}]
    resp = await client.post(
        "/api/pose-generation", json={"character_id": character.id, "poses": poses}, headers=auth(),
    )
    assert resp.status_code == 201
    assert [p["pose_label"] for p in resp.json()["poses"]] == ["Jump"]


async def test_no_valid_poses_is_rejected(client, auth, create_character):
    character = await create_character()
    resp = await client.post(
        "/api/pose-generation",
        json={"character_id": character.id, "poses": [{"label": " ", "description": "x"}]},
        headers=auth(),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


async def test_foreign_character_is_not_found(client, auth, create_character, db):
    character = await create_character(owner_id=OTHER)
    resp = await client.post(
        "/api/pose-generation",
        json={"character_id": character.id, "poses": RUN_AND_IDLE},
        headers=auth(OWNER),
    )
    assert resp.status_code == 404
    assert resp.json()["error"] == "Character not found or access denied"
    rows = (await db.execute(select(CharacterPose))).scalars().all()
    assert rows == []


async def test_missing_base_image_is_rejected(client, auth, create_character):
    character = await create_character(with_base=False)
    resp = await client.post(
        "/api/pose-generation",
        json={"character_id": character.id, "poses": RUN_AND_IDLE},
        headers=auth(),
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Character base image not found"


async def test_provider_outage_still_persists_placeholders(
    client, auth, create_character, settings, http_client_override, db,
):
    settings.OPENAI_API_KEY = "sk-test"
    http_client_override.client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(503, text="unavailable"))
    )
    character = await create_character()
    try:
        resp = await client.post(
            "/api/pose-generation",
            json={"character_id": character.id, "poses": RUN_AND_IDLE, "keep_top": 1},
            headers=auth(),
        )
    finally:
        await http_client_override.client.aclose()

    assert resp.status_code == 201
    body = resp.json()
    assert body["provider"] == "openai"
    assert len(body["poses"]) == 2
    assert all(p["score"] >= 0.05 for p in body["poses"])

    rows = (await db.execute(select(CharacterPose))).scalars().all()
    assert len(rows) == 2
    assert all(r.meta["fallback"] for r in rows)
    assert all("503" in r.meta["provider_metadata"]["error"] for r in rows)


async def test_pose_library_listing(client, auth, create_character):
    character = await create_character()
    await client.post(
        "/api/pose-generation",
        json={"character_id": character.id, "poses": RUN_AND_IDLE, "keep_top": 1},
        headers=auth(),
    )
    resp = await client.get(f"/api/characters/{character.id}/poses?approved_only=true", headers=auth())
    assert resp.status_code == 200
    assert [p["pose_label"] for p in resp.json()] == ["Run"]
