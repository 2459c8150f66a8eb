from __future__ import annotations
"""Owner-scoped entity lookups.

A row that exists but belongs to someone else is reported exactly like a
missing one, so callers cannot probe for other users' ids.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storyframe.errors import NotFoundError
from storyframe.models import Asset, Character, CharacterPose, Scene


async def ensure_character(db: AsyncSession, owner_id: str, character_id: str) -> Character:
    result = await db.execute(
        select(Character).where(Character.id == character_id, Character.owner_id == owner_id)
    )
    character = result.scalar_one_or_none()
    if character is None:
        raise NotFoundError("Character")
    return character


async def ensure_scene(db: AsyncSession, owner_id: str, scene_id: str) -> Scene:
    result = await db.execute(
        select(Scene).where(Scene.id == scene_id, Scene.owner_id == owner_id)
    )
    scene = result.scalar_one_or_none()
    if scene is None:
        raise NotFoundError("Scene")
    return scene


async def ensure_pose(
    db: AsyncSession, owner_id: str, pose_id: str, character_id: str,
) -> CharacterPose:
    """The pose must be the caller's and must belong to ``character_id``."""
    result = await db.execute(
        select(CharacterPose).where(
            CharacterPose.id == pose_id,
            CharacterPose.owner_id == owner_id,
            CharacterPose.character_id == character_id,
        )
    )
    pose = result.scalar_one_or_none()
    if pose is None:
        raise NotFoundError("Pose")
    return pose


async def ensure_asset(db: AsyncSession, owner_id: str, asset_id: str) -> Asset:
    result = await db.execute(
        select(Asset).where(Asset.id == asset_id, Asset.owner_id == owner_id)
    )
    asset = result.scalar_one_or_none()
    if asset is None:
        raise NotFoundError("Asset")
    return asset
