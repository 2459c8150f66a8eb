from __future__ import annotations
"""Scene registration, frame generation and gallery endpoints."""

import uuid

import httpx
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storyframe.api.deps import get_current_user_id, get_http_client, get_storage
from storyframe.config import Settings, get_settings
from storyframe.database import get_db
from storyframe.models import Asset, Scene, SceneFrame
from storyframe.schemas.asset import AssetRead
from storyframe.schemas.scene import (
    FrameRead,
    SceneContinuationRequest,
    SceneContinuationResponse,
    SceneCreate,
    SceneGenerationRequest,
    SceneGenerationResponse,
    SceneRead,
)
from storyframe.services.asset_store import asset_read
from storyframe.services.ownership import ensure_scene
from storyframe.services.scene_pipeline import generate_scene_continuation, generate_scene_frame
from storyframe.services.storage import StorageBackend
from storyframe.services.storage_paths import parse_storage_pointer

router = APIRouter()


@router.post("/scenes", response_model=SceneRead, status_code=201)
async def create_scene(
    data: SceneCreate,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Register a scene owned by the caller."""
    scene = Scene(
        id=uuid.uuid4().hex,
        owner_id=owner_id,
        project_id=data.project_id,
        title=data.title,
        description=data.description,
    )
    db.add(scene)
    await db.flush()
    await db.refresh(scene)
    return scene


@router.get("/scenes/{scene_id}", response_model=SceneRead)
async def get_scene(
    scene_id: str,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await ensure_scene(db, owner_id, scene_id)


@router.get("/scenes/{scene_id}/assets", response_model=list[AssetRead])
async def list_scene_assets(
    scene_id: str,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """Newest assets of a scene, with signed URLs, for the gallery."""
    await ensure_scene(db, owner_id, scene_id)
    result = await db.execute(
        select(Asset)
        .where(Asset.scene_id == scene_id, Asset.owner_id == owner_id)
        .order_by(Asset.created_at.desc(), Asset.id.desc())
        .limit(settings.RECENT_ASSET_LIMIT)
    )
    return [await asset_read(a, storage, settings) for a in result.scalars().all()]


@router.get("/scenes/{scene_id}/frames", response_model=list[FrameRead])
async def list_scene_frames(
    scene_id: str,
    selected_only: bool = False,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """Frames in storyboard order; variants of one index grouped together."""
    await ensure_scene(db, owner_id, scene_id)
    query = select(SceneFrame).where(
        SceneFrame.scene_id == scene_id, SceneFrame.owner_id == owner_id,
    )
    if selected_only:
        query = query.where(SceneFrame.selected.is_(True))
    result = await db.execute(
        query.order_by(SceneFrame.frame_index, SceneFrame.variant_index, SceneFrame.created_at)
    )
    frames = []
    for frame in result.scalars().all():
        target = parse_storage_pointer(frame.output_image_url)
        frames.append(FrameRead(
            id=frame.id,
            frame_index=frame.frame_index,
            output_image_url=frame.output_image_url,
            signed_url=await storage.create_signed_url(target, settings.SIGNED_URL_TTL) if target else None,
            selected=frame.selected,
            variant_index=frame.variant_index,
            variant_group_id=frame.variant_group_id,
        ))
    return frames


@router.post("/scene-generation", response_model=SceneGenerationResponse, status_code=201)
async def create_scene_frame(
    data: SceneGenerationRequest,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient | None = Depends(get_http_client),
):
    """Render one frame under a pollable generation job."""
    return await generate_scene_frame(db, storage, settings, owner_id, data, http_client)


@router.post("/scene-continuation", response_model=SceneContinuationResponse, status_code=201)
async def create_scene_continuation(
    data: SceneContinuationRequest,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient | None = Depends(get_http_client),
):
    """Render N continuation variants; the first is selected."""
    return await generate_scene_continuation(db, storage, settings, owner_id, data, http_client)
