from __future__ import annotations
"""Reference and mask asset uploads."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storyframe.api.deps import get_current_user_id, get_storage
from storyframe.config import Settings, get_settings
from storyframe.database import get_db
from storyframe.schemas.asset import AssetCreate, AssetRead
from storyframe.services.asset_store import asset_read, create_scene_asset
from storyframe.services.ownership import ensure_asset
from storyframe.services.storage import StorageBackend

router = APIRouter()


@router.post("", response_model=AssetRead, status_code=201)
async def upload_asset(
    data: AssetCreate,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """Store a reference or mask image for later scene generation."""
    asset = await create_scene_asset(db, storage, settings, owner_id, data)
    return await asset_read(asset, storage, settings)


@router.get("/{asset_id}", response_model=AssetRead)
async def get_asset(
    asset_id: str,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    asset = await ensure_asset(db, owner_id, asset_id)
    return await asset_read(asset, storage, settings)
