from __future__ import annotations
"""Pose generation - one provider call per requested pose, scored and ranked as a batch."""

import logging
import uuid
from dataclasses import dataclass

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from storyframe.config import Settings
from storyframe.errors import PersistenceError, ValidationError
from storyframe.models import CharacterPose
from storyframe.schemas.pose import PoseGenerationRequest, PoseGenerationResponse, PoseRead, PoseSpec
from storyframe.services.ownership import ensure_character
from storyframe.services.prompts import build_pose_prompt
from storyframe.services.providers import GenerationOptions, ImageReference, resolve_provider
from storyframe.services.references import load_base_image
from storyframe.services.scoring import keyword_score, select_top_k
from storyframe.services.storage import StorageBackend, StorageError
from storyframe.services.storage_paths import StorageRole, StorageTarget, storage_target

logger = logging.getLogger(__name__)


@dataclass
class _Candidate:
    id: str
    spec: PoseSpec
    target: StorageTarget
    score: float
    provider_metadata: dict
    prompt: str
    fallback: bool


async def generate_pose_batch(
    db: AsyncSession,
    storage: StorageBackend,
    settings: Settings,
    owner_id: str,
    request: PoseGenerationRequest,
    http_client: httpx.AsyncClient | None = None,
) -> PoseGenerationResponse:
    """Generate, store, score and persist a batch of poses for one character.

    Provider failures are absorbed as placeholder candidates; storage and
    database failures propagate.
    """
    specs = [p for p in request.poses if p.is_valid]
    if not specs:
        raise ValidationError("At least one pose with a label and description is required")

    character = await ensure_character(db, owner_id, request.character_id)
    base_target, base_image = await load_base_image(storage, settings, character)
    provider = resolve_provider(settings, request.provider, http_client)
    references = [
        ImageReference("character", base_target.bucket, base_target.path, f"{character.name} base image"),
    ]

    candidates: list[_Candidate] = []
    for spec in specs:
        label = spec.label.strip()
        description = spec.description.strip()
        long_description = (spec.long_description or "").strip() or description
        prompt = build_pose_prompt(character.name, label, long_description, spec.scene_use_case)

        result = await provider.generate_pose_from_character(
            base_image, prompt, references, GenerationOptions(transparent=True),
        )

        pose_id = uuid.uuid4().hex
        target = storage_target(
            StorageRole.CHARACTER_POSE, owner_id, character.id, pose_id,
            ref_bucket=settings.REF_BUCKET, render_bucket=settings.RENDER_BUCKET,
        )
        try:
            await storage.upload(target, result.image, content_type=result.mime_type)
        except StorageError as e:
            raise PersistenceError(f"Failed to store pose image: {e}")

        metadata = dict(result.metadata)
        if result.error:
            metadata["error"] = result.error
        candidates.append(_Candidate(
            id=pose_id,
            spec=spec.model_copy(update={"label": label, "description": long_description}),
            target=target,
            score=keyword_score(description, label, long_description, result.summary),
            provider_metadata=metadata,
            prompt=prompt,
            fallback=result.fallback,
        ))

    keep_top = request.keep_top if request.keep_top is not None else settings.DEFAULT_TOP_POSES
    approved = set(select_top_k(candidates, keep_top, key=lambda c: c.score))

    rows: list[CharacterPose] = []
    for index, candidate in enumerate(candidates):
        rows.append(CharacterPose(
            id=candidate.id,
            owner_id=owner_id,
            character_id=character.id,
            pose_label=candidate.spec.label,
            pose_description=candidate.spec.description,
            scene_use_case=candidate.spec.scene_use_case,
            input_image_url=base_target.pointer,
            generated_image_url=candidate.target.pointer,
            score=candidate.score,
            approved_for_scene=index in approved,
            meta={
                "provider": provider.name,
                "prompt": candidate.prompt,
                "fallback": candidate.fallback,
                "provider_metadata": candidate.provider_metadata,
            },
        ))
    db.add_all(rows)
    character.has_pose_library = True
    await db.flush()
    await db.commit()

    logger.info(
        "Pose batch for character %s: %d generated, %d approved (provider=%s)",
        character.id[:8], len(rows), len(approved), provider.name,
    )

    poses: list[PoseRead] = []
    for row, candidate in zip(rows, candidates):
        poses.append(PoseRead(
            id=row.id,
            pose_label=row.pose_label,
            pose_description=row.pose_description,
            scene_use_case=row.scene_use_case,
            score=row.score,
            approved_for_scene=row.approved_for_scene,
            generated_image_url=row.generated_image_url,
            signed_url=await storage.create_signed_url(candidate.target, settings.SIGNED_URL_TTL),
        ))
    return PoseGenerationResponse(character_id=character.id, provider=provider.name, poses=poses)
