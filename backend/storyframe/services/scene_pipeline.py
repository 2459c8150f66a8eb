from __future__ import annotations
"""Scene frame generation - tracked single frames and multi-variant continuations.

Single frames run under a GenerationJob: the job is committed as
``processing`` before the provider is called and then receives exactly one
terminal update. Continuations return their variants directly.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storyframe.config import Settings
from storyframe.errors import PersistenceError, ProviderError, ValidationError
from storyframe.models import (
    Asset,
    AssetKind,
    Character,
    CharacterPose,
    GenerationJob,
    JobStatus,
    Scene,
    SceneFrame,
    transition_sources,
)
from storyframe.schemas.scene import (
    FrameRead,
    SceneContinuationRequest,
    SceneContinuationResponse,
    SceneGenerationRequest,
    SceneGenerationResponse,
)
from storyframe.services.asset_store import asset_target
from storyframe.services.ownership import ensure_asset, ensure_character, ensure_pose, ensure_scene
from storyframe.services.prompts import build_scene_prompt
from storyframe.services.providers import (
    GenerationOptions,
    ImageProvider,
    ImageReference,
    ImageResult,
    resolve_provider,
)
from storyframe.services.references import load_base_image, load_optional, load_required
from storyframe.services.storage import StorageBackend, StorageError
from storyframe.services.storage_paths import (
    StorageRole,
    StorageTarget,
    parse_storage_pointer,
    storage_target,
)

logger = logging.getLogger(__name__)


@dataclass
class _SceneContext:
    scene: Scene
    character: Character
    base_image: bytes
    pose: CharacterPose | None = None
    pose_image: bytes | None = None
    references: list[ImageReference] = field(default_factory=list)


async def _prepare(
    db: AsyncSession,
    storage: StorageBackend,
    settings: Settings,
    owner_id: str,
    scene_id: str,
    character_id: str,
    pose_id: str | None,
) -> _SceneContext:
    """Validate ownership and load the character (and optional pose) images."""
    scene = await ensure_scene(db, owner_id, scene_id)
    character = await ensure_character(db, owner_id, character_id)
    if not character.base_image_url:
        raise ValidationError("Character base image not found")
    base_target, base_image = await load_base_image(storage, settings, character)

    ctx = _SceneContext(scene=scene, character=character, base_image=base_image)
    ctx.references.append(ImageReference(
        "character", base_target.bucket, base_target.path, f"{character.name} base image",
    ))

    if pose_id:
        pose = await ensure_pose(db, owner_id, pose_id, character.id)
        pose_target = parse_storage_pointer(pose.generated_image_url)
        if pose_target is None:
            raise ValidationError("Pose image not found")
        ctx.pose = pose
        ctx.pose_image = await load_required(storage, pose_target, "Pose")
        ctx.references.append(ImageReference(
            "pose", pose_target.bucket, pose_target.path,
            f"{pose.pose_label}: {pose.pose_description}",
        ))
    return ctx


async def next_frame_index(db: AsyncSession, scene_id: str) -> int:
    """Highest existing frame_index + 1. Not locked: concurrent callers may collide."""
    result = await db.execute(
        select(func.max(SceneFrame.frame_index)).where(SceneFrame.scene_id == scene_id)
    )
    current = result.scalar_one_or_none()
    return (current or 0) + 1


def _frame_target(settings: Settings, owner_id: str, scene_id: str, frame_id: str) -> StorageTarget:
    return storage_target(
        StorageRole.SCENE_FRAME, owner_id, scene_id, frame_id,
        ref_bucket=settings.REF_BUCKET, render_bucket=settings.RENDER_BUCKET,
    )


def _result_metadata(result: ImageResult) -> dict[str, Any]:
    metadata = dict(result.metadata)
    metadata["fallback"] = result.fallback
    if result.error:
        metadata["error"] = result.error
    return metadata


def _job_error(error: Exception) -> str:
    if isinstance(error, (StorageError, SQLAlchemyError)):
        return f"Persistence failed: {error}"
    return str(error) or type(error).__name__


# ---------------------------------------------------------------------------
# Single frame (job-tracked)
# ---------------------------------------------------------------------------

async def finish_job(
    db: AsyncSession,
    job_id: str,
    status: JobStatus,
    *,
    meta: dict[str, Any],
    error: str | None = None,
    asset_id: str | None = None,
    storage_path: str | None = None,
) -> bool:
    """Write the single terminal state of a job.

    The UPDATE only matches rows whose status may move to ``status`` under
    ``VALID_TRANSITIONS``, so a job can never leave a terminal state or
    receive a second one. Returns False if no row was updated.
    """
    result = await db.execute(
        update(GenerationJob)
        .where(GenerationJob.id == job_id, GenerationJob.status.in_(transition_sources(status)))
        .values({
            GenerationJob.status: status.value,
            GenerationJob.error: error,
            GenerationJob.asset_id: asset_id,
            GenerationJob.storage_path: storage_path,
            GenerationJob.meta: {**meta, "completed_at": datetime.now(timezone.utc).isoformat()},
            GenerationJob.updated_at: func.now(),
        })
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    if result.rowcount == 0:
        logger.warning("Job %s was already terminal; %s not applied", job_id[:8], status.value)
        return False
    logger.info("Job %s -> %s", job_id[:8], status.value)
    return True


async def generate_scene_frame(
    db: AsyncSession,
    storage: StorageBackend,
    settings: Settings,
    owner_id: str,
    request: SceneGenerationRequest,
    http_client: httpx.AsyncClient | None = None,
) -> SceneGenerationResponse:
    """Render one frame under a GenerationJob.

    Validation and reference loading happen before the job exists, so a
    rejected request leaves no job behind.
    """
    ctx = await _prepare(
        db, storage, settings, owner_id, request.scene_id, request.character_id, request.pose_id,
    )

    options = GenerationOptions(
        width=request.width,
        height=request.height,
        negative_prompt=request.negative_prompt,
        steps=request.steps,
        guidance=request.guidance,
        seed=request.seed,
    )
    extra_images: list[bytes] = []
    if request.reference_asset_id:
        ref_asset = await ensure_asset(db, owner_id, request.reference_asset_id)
        ref_target = asset_target(ref_asset, settings)
        extra_images.append(await load_required(storage, ref_target, "Reference"))
        ctx.references.append(ImageReference(
            "reference", ref_target.bucket, ref_target.path,
            (ref_asset.meta or {}).get("description") or "Additional reference",
        ))
    if request.mask_asset_id:
        mask_asset = await ensure_asset(db, owner_id, request.mask_asset_id)
        options.mask_image = await load_required(storage, asset_target(mask_asset, settings), "Mask")

    prompt = build_scene_prompt(
        ctx.character.name,
        request.prompt,
        pose_label=ctx.pose.pose_label if ctx.pose else None,
        pose_description=ctx.pose.pose_description if ctx.pose else None,
    )
    provider = resolve_provider(settings, request.provider, http_client)
    frame_index = request.frame_index or await next_frame_index(db, ctx.scene.id)

    scene_id = ctx.scene.id
    character_id = ctx.character.id
    pose_id = ctx.pose.id if ctx.pose else None
    job_meta: dict[str, Any] = {
        "character_id": character_id,
        "pose_id": pose_id,
        "frame_index": frame_index,
        "reference_asset_id": request.reference_asset_id,
        "mask_asset_id": request.mask_asset_id,
    }
    job = GenerationJob(
        id=uuid.uuid4().hex,
        owner_id=owner_id,
        scene_id=scene_id,
        provider=provider.name,
        prompt=prompt,
        negative_prompt=request.negative_prompt,
        width=request.width,
        height=request.height,
        steps=request.steps,
        guidance=request.guidance,
        seed=request.seed,
        status=JobStatus.PROCESSING.value,
        meta=job_meta,
    )
    db.add(job)
    await db.commit()
    job_id = job.id
    logger.info("Job %s created for scene %s (provider=%s)", job_id[:8], scene_id[:8], provider.name)

    frame_id = uuid.uuid4().hex
    target = _frame_target(settings, owner_id, scene_id, frame_id)
    input_images = [ref.to_dict() for ref in ctx.references]
    try:
        result = await provider.generate_scene_from_character(
            ctx.base_image, prompt, ctx.pose_image, ctx.references, options, extra_images=extra_images,
        )
        if result.error:
            raise ProviderError(
                provider.name, result.error,
                extra={"job_id": job_id, "status": JobStatus.FAILED.value},
            )

        await storage.upload(target, result.image, content_type=result.mime_type)
        asset = Asset(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            scene_id=scene_id,
            kind=AssetKind.RENDER.value,
            storage_path=target.path,
            meta={
                "bucket": target.bucket,
                "provider": provider.name,
                "character_id": character_id,
                "pose_id": pose_id,
                "prompt": prompt,
                "job_id": job_id,
                "frame_id": frame_id,
                "continuation": False,
                "source": "scene-generation",
            },
        )
        frame = SceneFrame(
            id=frame_id,
            owner_id=owner_id,
            scene_id=scene_id,
            frame_index=frame_index,
            character_id=character_id,
            pose_id=pose_id,
            input_images=input_images,
            prompt_used=prompt,
            output_image_url=target.pointer,
            selected=True,
            meta={**_result_metadata(result), "job_id": job_id, "asset_id": asset.id},
        )
        db.add_all([asset, frame])
        await db.flush()
        asset_id = asset.id
        await finish_job(
            db, job_id, JobStatus.SUCCEEDED,
            meta={**job_meta, "frame_id": frame_id},
            asset_id=asset_id,
            storage_path=target.pointer,
        )
    except Exception as e:
        await db.rollback()
        await finish_job(db, job_id, JobStatus.FAILED, meta=job_meta, error=_job_error(e))
        if isinstance(e, ProviderError):
            raise
        if isinstance(e, (StorageError, SQLAlchemyError)):
            raise PersistenceError(
                "Failed to persist generated frame",
                extra={"job_id": job_id, "status": JobStatus.FAILED.value},
            ) from e
        raise

    return SceneGenerationResponse(
        scene_id=scene_id,
        provider=provider.name,
        job_id=job_id,
        status=JobStatus.SUCCEEDED.value,
        frame=FrameRead(
            id=frame_id,
            frame_index=frame_index,
            output_image_url=target.pointer,
            signed_url=await storage.create_signed_url(target, settings.SIGNED_URL_TTL),
            selected=True,
        ),
    )


# ---------------------------------------------------------------------------
# Continuation (variant group)
# ---------------------------------------------------------------------------

async def _previous_frames(
    db: AsyncSession,
    storage: StorageBackend,
    owner_id: str,
    scene_id: str,
    limit: int,
) -> list[tuple[SceneFrame, StorageTarget, bytes]]:
    """Most recent selected frames of the scene, newest first."""
    result = await db.execute(
        select(SceneFrame)
        .where(
            SceneFrame.scene_id == scene_id,
            SceneFrame.owner_id == owner_id,
            SceneFrame.selected.is_(True),
        )
        .order_by(SceneFrame.frame_index.desc(), SceneFrame.created_at.desc())
        .limit(limit)
    )
    frames = []
    for frame in result.scalars().all():
        target = parse_storage_pointer(frame.output_image_url)
        if target is None:
            continue
        data = await load_optional(storage, target)
        if data is not None:
            frames.append((frame, target, data))
    return frames


async def generate_scene_continuation(
    db: AsyncSession,
    storage: StorageBackend,
    settings: Settings,
    owner_id: str,
    request: SceneContinuationRequest,
    http_client: httpx.AsyncClient | None = None,
) -> SceneContinuationResponse:
    """Render N variants continuing the scene; variant 0 is the selected one."""
    ctx = await _prepare(
        db, storage, settings, owner_id, request.scene_id, request.character_id, request.pose_id,
    )
    previous = await _previous_frames(
        db, storage, owner_id, ctx.scene.id, settings.PREVIOUS_FRAME_LIMIT,
    )
    for frame, target, _ in previous:
        ctx.references.append(ImageReference(
            "previous", target.bucket, target.path, f"Frame {frame.frame_index}",
        ))

    prompt = build_scene_prompt(
        ctx.character.name,
        request.prompt,
        pose_label=ctx.pose.pose_label if ctx.pose else None,
        pose_description=ctx.pose.pose_description if ctx.pose else None,
        continuation=True,
    )
    variants = request.variants or settings.CONTINUATION_VARIANTS
    frame_index = request.frame_index or await next_frame_index(db, ctx.scene.id)
    provider: ImageProvider = resolve_provider(settings, request.provider, http_client)

    results = await provider.generate_scene_continuation(
        ctx.base_image,
        prompt,
        previous_frames=[data for _, _, data in previous],
        pose_image=ctx.pose_image,
        references=ctx.references,
        options=GenerationOptions(
            width=request.width, height=request.height, negative_prompt=request.negative_prompt,
        ),
        variants=variants,
    )

    group_id = uuid.uuid4().hex
    input_images = [ref.to_dict() for ref in ctx.references]
    stored: list[tuple[SceneFrame, StorageTarget]] = []
    for variant_index, result in enumerate(results):
        frame_id = uuid.uuid4().hex
        target = _frame_target(settings, owner_id, ctx.scene.id, frame_id)
        try:
            await storage.upload(target, result.image, content_type=result.mime_type)
        except StorageError as e:
            raise PersistenceError(f"Failed to store continuation variant: {e}") from e

        asset = Asset(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            scene_id=ctx.scene.id,
            kind=AssetKind.RENDER.value,
            storage_path=target.path,
            meta={
                "bucket": target.bucket,
                "provider": provider.name,
                "character_id": ctx.character.id,
                "pose_id": ctx.pose.id if ctx.pose else None,
                "prompt": prompt,
                "frame_id": frame_id,
                "continuation": True,
                "variant_index": variant_index,
                "variant_group_id": group_id,
                "source": "scene-continuation",
            },
        )
        frame = SceneFrame(
            id=frame_id,
            owner_id=owner_id,
            scene_id=ctx.scene.id,
            frame_index=frame_index,
            character_id=ctx.character.id,
            pose_id=ctx.pose.id if ctx.pose else None,
            input_images=input_images,
            prompt_used=prompt,
            output_image_url=target.pointer,
            variant_group_id=group_id,
            variant_index=variant_index,
            selected=variant_index == 0,
            meta={**_result_metadata(result), "asset_id": asset.id},
        )
        db.add_all([asset, frame])
        stored.append((frame, target))

    await db.flush()
    await db.commit()
    logger.info(
        "Continuation for scene %s: %d variants in group %s (provider=%s, previous=%d)",
        ctx.scene.id[:8], len(stored), group_id[:8], provider.name, len(previous),
    )

    frames = [
        FrameRead(
            id=frame.id,
            frame_index=frame.frame_index,
            output_image_url=frame.output_image_url,
            signed_url=await storage.create_signed_url(target, settings.SIGNED_URL_TTL),
            selected=frame.selected,
            variant_index=frame.variant_index,
            variant_group_id=group_id,
        )
        for frame, target in stored
    ]
    return SceneContinuationResponse(
        scene_id=ctx.scene.id,
        provider=provider.name,
        variant_group_id=group_id,
        frames=frames,
    )
