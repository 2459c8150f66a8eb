from __future__ import annotations
"""Character drafts - prompt-only character images from an archetype.

Drafts are stored under the draft role and never touch the character row;
promoting a draft to a base image is a separate upload.
"""

import logging
import time
import uuid
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from storyframe.config import Settings
from storyframe.errors import PersistenceError
from storyframe.schemas.character import DraftRead, DraftRequest, RefineParams, RefineRequest
from storyframe.services.ownership import ensure_character
from storyframe.services.providers import GenerationOptions, build_provider, resolve_provider_name
from storyframe.services.providers.registry import DETAIL_SETTINGS, DETAIL_TIERS, resolve_model
from storyframe.services.storage import StorageBackend, StorageError
from storyframe.services.storage_paths import StorageRole, storage_target

logger = logging.getLogger(__name__)

ARCHETYPE_PROMPTS: dict[str, str] = {
    "hero": (
        "A heroic character with a confident stance, noble appearance, and strong presence. "
        "Expressive face with determined eyes. Dynamic pose suggesting readiness for action. "
        "Well-defined silhouette with balanced proportions."
    ),
    "villain": (
        "A menacing villain character with dramatic features and an imposing presence. "
        "Sharp, angular facial features with intense, calculating eyes. Dark or bold color "
        "palette. Powerful stance conveying authority and danger."
    ),
    "sci-fi": (
        "A futuristic sci-fi character with sleek technological elements and modern styling. "
        "Clean lines and metallic accents. Integrated tech elements like visors, holographic "
        "interfaces, or cybernetic enhancements. Streamlined silhouette."
    ),
    "fantasy": (
        "A fantasy character with mystical or medieval elements and magical aura. Ornate "
        "costume details with flowing fabrics. Ethereal glow or magical particles. Distinctive "
        "accessories like staffs, amulets, or enchanted weapons."
    ),
    "child": (
        "A young child character with innocent features and playful energy. Soft, rounded "
        "facial features with bright, curious eyes. Casual, age-appropriate clothing. Warm, "
        "approachable expression."
    ),
    "robot": (
        "A robotic character with mechanical features and technological design. Precise "
        "geometric shapes and articulated joints. Glowing elements like eyes or power cores. "
        "Mix of smooth panels and exposed mechanical components."
    ),
}

GLOBAL_ADDITIONS = [
    "Full body character design",
    "Clean edges suitable for compositing",
    "Professional character art",
    "Balanced lighting with subtle shadows",
    "Clear silhouette",
]
PREMIUM_ADDITIONS = ["Highly detailed", "Cinematic quality", "Studio lighting", "4K resolution"]

NEGATIVE_SUPPRESSION = [
    "No text",
    "No watermark",
    "Avoid distorted hands",
    "Avoid extra limbs",
    "Avoid blurry faces",
    "No cropped body parts",
    "Anatomically correct proportions",
]

REFINE_MODIFIERS: dict[str, dict[str, str]] = {
    "age": {
        "younger": "younger-looking, youthful features",
        "adult": "adult, mature features",
        "older": "older-looking, experienced appearance",
    },
    "mood": {
        "neutral": "with a neutral expression",
        "happy": "with a happy, joyful expression",
        "angry": "with an angry, fierce expression",
        "sad": "with a sad, melancholic expression",
    },
    "hairLength": {
        "short": "short hair",
        "medium": "shoulder-length hair",
        "long": "long flowing hair",
    },
    "eyebrowShape": {
        "soft": "soft, gentle eyebrows",
        "sharp": "sharply angled eyebrows",
        "thick": "thick, prominent eyebrows",
        "thin": "thin, delicate eyebrows",
    },
    "style": {
        "anime": "in an anime style",
        "realistic": "in a cinematic realistic style",
        "painterly": "in a painterly illustration style",
    },
}


def archetype_prompt(archetype: str) -> str:
    normalized = archetype.strip().lower()
    return ARCHETYPE_PROMPTS.get(
        normalized, f"A {normalized} character with distinctive features and clear visual identity."
    )


def global_additions(tier: str) -> list[str]:
    if tier == "premium":
        return GLOBAL_ADDITIONS + PREMIUM_ADDITIONS
    return list(GLOBAL_ADDITIONS)


def normalize_refine(refine: RefineParams) -> dict[str, str]:
    """Keep only recognised slider values; detail defaults to standard."""
    values: dict[str, str] = {}
    for key, table in REFINE_MODIFIERS.items():
        value = getattr(refine, key)
        if value in table:
            values[key] = value
    values["detail"] = refine.detail if refine.detail in DETAIL_TIERS else "standard"
    return values


def refine_modifiers(values: dict[str, str]) -> list[str]:
    return [REFINE_MODIFIERS[key][values[key]] for key in REFINE_MODIFIERS if key in values]


def compose_prompt(archetype: str, tier: str, modifiers: list[str] | None = None) -> str:
    parts = [archetype_prompt(archetype), *(modifiers or []), *global_additions(tier), *NEGATIVE_SUPPRESSION]
    return ". ".join(p.rstrip(".") for p in parts) + "."


def _size(size: str) -> tuple[int, int]:
    width, _, height = size.partition("x")
    return int(width), int(height)


async def generate_draft(
    db: AsyncSession,
    storage: StorageBackend,
    settings: Settings,
    owner_id: str,
    request: DraftRequest,
    http_client: httpx.AsyncClient | None = None,
) -> DraftRead:
    """Generate a new draft, or a refined variant when given a RefineRequest."""
    refining = isinstance(request, RefineRequest)
    character_id: str | None = None
    refine_values: dict[str, str] | None = None

    if refining:
        if request.character_id:
            character_id = (await ensure_character(db, owner_id, request.character_id)).id
        refine_values = normalize_refine(request.refine)
        detail = refine_values["detail"]
        prompt = compose_prompt(request.archetype, request.tier, refine_modifiers(refine_values))
    else:
        detail = "pro" if request.tier == "premium" else "standard"
        prompt = compose_prompt(request.archetype, request.tier)

    provider_name = resolve_provider_name(settings)
    model = resolve_model(provider_name, settings, request.model, detail)
    provider = build_provider(
        provider_name, settings, model=model.api_model if model else None, http_client=http_client,
    )
    detail_settings = DETAIL_SETTINGS[detail]
    width, height = _size(detail_settings.size)
    options = GenerationOptions(
        width=width,
        height=height,
        quality=detail_settings.quality if provider_name == "openai" else None,
    )

    result = await provider.generate_from_prompt(prompt, options)

    draft_id = uuid.uuid4().hex
    artifact_id = f"{draft_id}-refine-{int(time.time() * 1000)}" if refining else draft_id
    target = storage_target(
        StorageRole.CHARACTER_DRAFT, owner_id, character_id or "unassigned", artifact_id,
        ref_bucket=settings.REF_BUCKET, render_bucket=settings.RENDER_BUCKET,
    )
    try:
        await storage.upload(target, result.image, content_type=result.mime_type)
    except StorageError as e:
        raise PersistenceError(f"Failed to store character draft: {e}")

    metadata: dict[str, Any] = dict(result.metadata)
    if result.error:
        metadata["error"] = result.error
    metadata["fallback"] = result.fallback

    used_model = model.model if model else (request.model or provider_name)
    logger.info(
        "Character draft %s (%s, tier=%s, detail=%s) via %s/%s",
        draft_id[:8], request.archetype, request.tier, detail, provider.name, used_model,
    )
    return DraftRead(
        draft_id=draft_id,
        variant_id=artifact_id if refining else None,
        image_url=await storage.create_signed_url(target, settings.SIGNED_URL_TTL),
        storage_path=target.pointer,
        provider=provider.name,
        archetype=request.archetype,
        tier=request.tier,
        prompt_used=prompt,
        refine=refine_values,
        character_id=character_id,
        base_image_url=request.base_image_url if refining else None,
        base_storage_path=request.base_storage_path if refining else None,
        metadata=metadata,
        meta={
            "provider": provider.name,
            "model": used_model,
            "detail": detail,
            "archetype": request.archetype,
            "action": "refine-character" if refining else "generate-character",
        },
    )
