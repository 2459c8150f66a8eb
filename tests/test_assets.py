import base64

from conftest import OTHER, png_image
from storyframe.models import SceneFrame


async def test_upload_reference_and_fetch(client, auth, create_scene, png_b64):
    scene = await create_scene()
    resp = await client.post(
        "/api/assets",
        json={"scene_id": scene.id, "kind": "reference", "image": png_b64, "metadata": {"description": "alley at dusk"}},
        headers=auth(),
    )
    assert resp.status_code == 201
    asset = resp.json()
    assert asset["kind"] == "reference"
    assert asset["storage_path"].startswith("scene-references/")
    assert asset["metadata"]["description"] == "alley at dusk"
    assert asset["metadata"]["bucket"] == "story-refs"

    fetched = await client.get(f"/api/assets/{asset['id']}", headers=auth())
    assert fetched.status_code == 200
    assert fetched.json()["id"] == asset["id"]

    hidden = await client.get(f"/api/assets/{asset['id']}", headers=auth(OTHER))
    assert hidden.status_code == 404


async def test_upload_to_foreign_scene_is_rejected(client, auth, create_scene, png_b64):
    scene = await create_scene(owner_id=OTHER)
    resp = await client.post(
        "/api/assets", json={"scene_id": scene.id, "kind": "mask", "image": png_b64}, headers=auth(),
    )
    assert resp.status_code == 404


async def test_render_kind_cannot_be_uploaded(client, auth, create_scene, png_b64):
    scene = await create_scene()
    resp = await client.post(
        "/api/assets", json={"scene_id": scene.id, "kind": "render", "image": png_b64}, headers=auth(),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


async def test_reference_and_mask_assets_feed_scene_generation(
    client, auth, create_character, create_scene, db,
):
    character = await create_character()
    scene = await create_scene()
    dark_png = base64.b64encode(png_image(16, 16, (10, 10, 10))).decode()
    reference = await client.post(
        "/api/assets",
        json={"scene_id": scene.id, "kind": "reference", "image": dark_png, "metadata": {"description": "skyline"}},
        headers=auth(),
    )
    mask = await client.post(
        "/api/assets", json={"scene_id": scene.id, "kind": "mask", "image": dark_png}, headers=auth(),
    )
    assert mask.json()["storage_path"].startswith("scene-masks/")

    resp = await client.post(
        "/api/scene-generation",
        json={
            "scene_id": scene.id,
            "character_id": character.id,
            "prompt": "lands on the ledge",
            "reference_asset_id": reference.json()["id"],
            "mask_asset_id": mask.json()["id"],
        },
        headers=auth(),
    )
    assert resp.status_code == 201
    frame = await db.get(SceneFrame, resp.json()["frame"]["id"])
    refs = [r for r in frame.input_images if r["role"] == "reference"]
    assert refs[0]["description"] == "skyline"


async def test_unknown_reference_asset_is_not_found(client, auth, create_character, create_scene):
    character = await create_character()
    scene = await create_scene()
    resp = await client.post(
        "/api/scene-generation",
        json={"scene_id": scene.id, "character_id": character.id, "prompt": "x", "reference_asset_id": "missing"},
        headers=auth(),
    )
    assert resp.status_code == 404
    assert resp.json()["error"] == "Asset not found or access denied"
