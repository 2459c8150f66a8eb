from __future__ import annotations
"""Character endpoints - registration, base image, pose library and drafts."""

import uuid

import httpx
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storyframe.api.deps import get_current_user_id, get_http_client, get_storage
from storyframe.config import Settings, get_settings
from storyframe.database import get_db
from storyframe.models import Character, CharacterPose
from storyframe.schemas.character import (
    BaseImageRead,
    BaseImageUpload,
    CharacterCreate,
    CharacterRead,
    DraftRead,
    DraftRequest,
    RefineRequest,
)
from storyframe.schemas.pose import PoseRead
from storyframe.services.character_drafts import generate_draft
from storyframe.services.characters import upload_base_image
from storyframe.services.ownership import ensure_character
from storyframe.services.storage import StorageBackend
from storyframe.services.storage_paths import parse_storage_pointer

router = APIRouter()


@router.post("", response_model=CharacterRead, status_code=201)
async def create_character(
    data: CharacterCreate,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Register a character. Its base image is uploaded separately."""
    character = Character(
        id=uuid.uuid4().hex,
        owner_id=owner_id,
        project_id=data.project_id,
        name=data.name,
        description=data.description,
        has_pose_library=False,
    )
    db.add(character)
    await db.flush()
    await db.refresh(character)
    return character


@router.post("/drafts", response_model=DraftRead)
async def create_draft(
    data: DraftRequest,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient | None = Depends(get_http_client),
):
    """Generate a character draft from an archetype."""
    return await generate_draft(db, storage, settings, owner_id, data, http_client)


@router.post("/drafts/refine", response_model=DraftRead)
async def refine_draft(
    data: RefineRequest,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient | None = Depends(get_http_client),
):
    """Generate a refined draft variant from slider values."""
    return await generate_draft(db, storage, settings, owner_id, data, http_client)


@router.get("/{character_id}", response_model=CharacterRead)
async def get_character(
    character_id: str,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await ensure_character(db, owner_id, character_id)


@router.post("/{character_id}/base-image", response_model=BaseImageRead)
async def put_base_image(
    character_id: str,
    data: BaseImageUpload,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """Upload (or replace) the character's base image."""
    character, target = await upload_base_image(
        db, storage, settings, owner_id, character_id, data.image,
    )
    return BaseImageRead(
        character_id=character.id,
        base_image_url=target.pointer,
        signed_url=await storage.create_signed_url(target, settings.SIGNED_URL_TTL),
        has_pose_library=character.has_pose_library,
    )


@router.get("/{character_id}/poses", response_model=list[PoseRead])
async def list_poses(
    character_id: str,
    approved_only: bool = False,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """The character's pose library, best scores first."""
    await ensure_character(db, owner_id, character_id)
    query = select(CharacterPose).where(
        CharacterPose.character_id == character_id, CharacterPose.owner_id == owner_id,
    )
    if approved_only:
        query = query.where(CharacterPose.approved_for_scene.is_(True))
    result = await db.execute(query.order_by(CharacterPose.score.desc(), CharacterPose.created_at))

    poses = []
    for pose in result.scalars().all():
        target = parse_storage_pointer(pose.generated_image_url)
        poses.append(PoseRead(
            id=pose.id,
            pose_label=pose.pose_label,
            pose_description=pose.pose_description,
            scene_use_case=pose.scene_use_case,
            score=pose.score,
            approved_for_scene=pose.approved_for_scene,
            generated_image_url=pose.generated_image_url,
            signed_url=await storage.create_signed_url(target, settings.SIGNED_URL_TTL) if target else None,
        ))
    return poses
