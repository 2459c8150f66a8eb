from __future__ import annotations
"""Job status polling endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storyframe.api.deps import get_current_user_id, get_storage
from storyframe.config import Settings, get_settings
from storyframe.database import get_db
from storyframe.schemas.status import JobStatusRead, StatusRequest
from storyframe.services.job_status import get_job_status
from storyframe.services.storage import StorageBackend

router = APIRouter()


@router.post("/status", response_model=JobStatusRead)
async def poll_status(
    data: StatusRequest,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    return await get_job_status(db, storage, settings, owner_id, data.job_id)


@router.get("/status", response_model=JobStatusRead)
async def poll_status_query(
    job_id: str | None = None,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    return await get_job_status(db, storage, settings, owner_id, job_id)


@router.get("/status/{job_id}", response_model=JobStatusRead)
async def get_status(
    job_id: str,
    owner_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """Read a job's state. Safe to call repeatedly."""
    return await get_job_status(db, storage, settings, owner_id, job_id)
