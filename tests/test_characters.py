import base64

from conftest import OTHER, OWNER, png_image
from storyframe.schemas.character import RefineParams
from storyframe.services.character_drafts import (
    NEGATIVE_SUPPRESSION,
    PREMIUM_ADDITIONS,
    archetype_prompt,
    compose_prompt,
    normalize_refine,
    refine_modifiers,
)
from storyframe.services.storage_paths import parse_storage_pointer


async def test_register_character_and_upload_base_image(client, auth, png_b64, storage):
    created = await client.post("/api/characters", json={"name": "Mira"}, headers=auth())
    assert created.status_code == 201
    character = created.json()
    assert character["has_pose_library"] is False
    assert character["base_image_url"] is None

    resp = await client.post(
        f"/api/characters/{character['id']}/base-image",
        json={"image": f"data:image/png;base64,{png_b64}"},
        headers=auth(),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["base_image_url"] == (
        f"story-refs/characters/{OWNER}/{character['id']}/character-{character['id']}-base.png"
    )
    assert body["signed_url"]
    stored = await storage.download(parse_storage_pointer(body["base_image_url"]))
    assert stored == base64.b64decode(png_b64)


async def test_new_base_image_resets_pose_library(client, auth, create_character, png_b64):
    character = await create_character()
    await client.post(
        "/api/pose-generation",
        json={"character_id": character.id, "poses": [{"label": "Run", "description": "sprinting"}]},
        headers=auth(),
    )
    assert (await client.get(f"/api/characters/{character.id}", headers=auth())).json()["has_pose_library"] is True

    resp = await client.post(
        f"/api/characters/{character.id}/base-image", json={"image": png_b64}, headers=auth(),
    )
    assert resp.json()["has_pose_library"] is False


async def test_base_image_rejects_non_images(client, auth, create_character):
    character = await create_character(with_base=False)
    not_base64 = await client.post(
        f"/api/characters/{character.id}/base-image", json={"image": "%%%not-base64%%%"}, headers=auth(),
    )
    not_image = await client.post(
        f"/api/characters/{character.id}/base-image",
        json={"image": base64.b64encode(b"plain text").decode()},
        headers=auth(),
    )
    assert not_base64.status_code == 400
    assert not_image.status_code == 400
    assert not_image.json()["error"] == "Image payload is not a supported image"


async def test_foreign_character_is_hidden(client, auth, create_character):
    character = await create_character(owner_id=OTHER)
    resp = await client.get(f"/api/characters/{character.id}", headers=auth())
    assert resp.status_code == 404


async def test_draft_uses_placeholder_without_credentials(client, auth, storage):
    resp = await client.post(
        "/api/characters/drafts", json={"archetype": "Hero", "tier": "premium"}, headers=auth(),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["provider"] == "placeholder"
    assert body["storage_path"] == f"story-refs/character-drafts/{OWNER}/unassigned/{body['draft_id']}.png"
    assert body["meta"]["detail"] == "pro"
    assert body["meta"]["action"] == "generate-character"
    assert "Cinematic quality" in body["prompt_used"]
    assert await storage.download(parse_storage_pointer(body["storage_path"]))


async def test_refine_draft_for_character(client, auth, create_character):
    character = await create_character()
    resp = await client.post(
        "/api/characters/drafts/refine",
        json={
            "archetype": "robot",
            "character_id": character.id,
            "base_storage_path": character.base_image_url,
            "refine": {"mood": "happy", "hairLength": "mohawk", "detail": "cheap"},
        },
        headers=auth(),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["character_id"] == character.id
    assert body["refine"] == {"mood": "happy", "detail": "cheap"}
    assert body["base_storage_path"] == character.base_image_url
    assert body["variant_id"].startswith(f"{body['draft_id']}-refine-")
    assert f"/character-drafts/{OWNER}/{character.id}/" in body["storage_path"]
    assert "with a happy, joyful expression" in body["prompt_used"]


async def test_draft_with_unsupported_model_is_rejected(client, auth, settings):
    settings.OPENAI_API_KEY = "sk-test"
    resp = await client.post(
        "/api/characters/drafts", json={"archetype": "hero", "model": "sdxl-turbo"}, headers=auth(),
    )
    assert resp.status_code == 400
    assert "Unsupported model" in resp.json()["error"]


async def test_draft_with_imagen_needs_vertex(client, auth, settings):
    settings.GOOGLE_API_KEY = "g-key"
    resp = await client.post(
        "/api/characters/drafts", json={"archetype": "hero", "model": "imagen-3.0"}, headers=auth(),
    )
    assert resp.status_code == 501


def test_archetype_prompt_falls_back_for_unknown_archetypes():
    assert archetype_prompt("Villain").startswith("A menacing villain")
    assert archetype_prompt("Pirate") == "A pirate character with distinctive features and clear visual identity."


def test_compose_prompt_orders_parts():
    prompt = compose_prompt("child", "standard", ["short hair"])
    assert prompt.index("short hair") < prompt.index("Full body character design")
    assert all(part in prompt for part in NEGATIVE_SUPPRESSION)
    assert not any(part in prompt for part in PREMIUM_ADDITIONS)
    assert prompt.endswith(".")


def test_normalize_refine_ignores_unknown_values():
    values = normalize_refine(RefineParams(age="older", style="claymation", detail="ultra"))
    assert values == {"age": "older", "detail": "standard"}
    assert refine_modifiers(values) == ["older-looking, experienced appearance"]


def test_png_helper_is_a_real_png():
    assert png_image().startswith(b"\x89PNG")
