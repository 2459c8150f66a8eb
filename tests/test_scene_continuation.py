from sqlalchemy import select

from conftest import OTHER
from storyframe.models import Asset, GenerationJob, SceneFrame


async def test_continuation_returns_five_variants_one_selected(client, auth, create_character, create_scene, db):
    character = await create_character()
    scene = await create_scene()

    resp = await client.post(
        "/api/scene-continuation",
        json={"scene_id": scene.id, "character_id": character.id, "prompt": "she turns toward the door"},
        headers=auth(),
    )
    assert resp.status_code == 201
    body = resp.json()
    frames = body["frames"]
    assert len(frames) == 5
    assert [f["variant_index"] for f in frames] == [0, 1, 2, 3, 4]
    assert [f["selected"] for f in frames] == [True, False, False, False, False]
    assert len({f["id"] for f in frames}) == 5
    assert {f["variant_group_id"] for f in frames} == {body["variant_group_id"]}
    assert all(f["signed_url"] for f in frames)

    rows = (await db.execute(
        select(SceneFrame).where(SceneFrame.variant_group_id == body["variant_group_id"])
    )).scalars().all()
    assert len(rows) == 5
    assert sum(r.selected for r in rows) == 1
    assert {r.frame_index for r in rows} == {1}
    assert len((await db.execute(select(Asset))).scalars().all()) == 5
    # continuation never creates a pollable job
    assert (await db.execute(select(GenerationJob))).scalars().all() == []


async def test_previous_frames_become_references(client, auth, create_character, create_scene, db):
    character = await create_character()
    scene = await create_scene()
    payload = {"scene_id": scene.id, "character_id": character.id, "prompt": "next beat"}

    for _ in range(3):
        await client.post("/api/scene-generation", json=payload, headers=auth())

    resp = await client.post("/api/scene-continuation", json={**payload, "variants": 2}, headers=auth())
    assert resp.status_code == 201
    frames = resp.json()["frames"]
    assert len(frames) == 2
    assert frames[0]["frame_index"] == 4

    row = await db.get(SceneFrame, frames[0]["id"])
    previous = [ref for ref in row.input_images if ref["role"] == "previous"]
    assert [ref["description"] for ref in previous] == ["Frame 3", "Frame 2"]
    assert "Continue the scene from the previous frames" in row.prompt_used


async def test_only_selected_variants_feed_the_next_continuation(client, auth, create_character, create_scene, db):
    character = await create_character()
    scene = await create_scene()
    payload = {"scene_id": scene.id, "character_id": character.id, "prompt": "beat"}

    first = await client.post("/api/scene-continuation", json={**payload, "variants": 3}, headers=auth())
    selected_id = first.json()["frames"][0]["id"]
    second = await client.post("/api/scene-continuation", json={**payload, "variants": 1}, headers=auth())

    row = await db.get(SceneFrame, second.json()["frames"][0]["id"])
    selected = await db.get(SceneFrame, selected_id)
    previous = [ref for ref in row.input_images if ref["role"] == "previous"]
    assert len(previous) == 1
    assert f"{previous[0]['bucket']}/{previous[0]['path']}" == selected.output_image_url


async def test_continuation_ownership(client, auth, create_character, create_scene):
    character = await create_character(owner_id=OTHER)
    scene = await create_scene()
    resp = await client.post(
        "/api/scene-continuation",
        json={"scene_id": scene.id, "character_id": character.id, "prompt": "x"},
        headers=auth(),
    )
    assert resp.status_code == 404
    assert resp.json()["error"] == "Character not found or access denied"


async def test_frames_listing_groups_variants(client, auth, create_character, create_scene):
    character = await create_character()
    scene = await create_scene()
    await client.post(
        "/api/scene-continuation",
        json={"scene_id": scene.id, "character_id": character.id, "prompt": "x", "variants": 3},
        headers=auth(),
    )
    resp = await client.get(f"/api/scenes/{scene.id}/frames", params={"selected_only": "true"}, headers=auth())
    assert [f["variant_index"] for f in resp.json()] == [0]
