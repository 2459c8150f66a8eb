from __future__ import annotations
"""Pose generation endpoint."""

import httpx
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storyframe.api.deps import get_current_user_id, get_http_client, get_storage
from storyframe.config import Settings, get_settings
from storyframe.database import get_db
from storyframe.schemas.pose import PoseGenerationRequest, PoseGenerationResponse
from storyframe.services.pose_pipeline import generate_pose_batch
from storyframe.services.storage import StorageBackend

router = APIRouter()


@router.post("/pose-generation", response_model=PoseGenerationResponse, status_code=201)
async def create_poses(
    data: PoseGenerationRequest,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient | None = Depends(get_http_client),
):
    """Generate a scored pose batch for a character; the top K are approved for scenes."""
    return await generate_pose_batch(db, storage, settings, owner_id, data, http_client)
