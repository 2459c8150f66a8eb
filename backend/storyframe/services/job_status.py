from __future__ import annotations
"""Job status lookup and restart recovery."""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storyframe.config import Settings
from storyframe.errors import AuthorizationError, NotFoundError, ValidationError
from storyframe.models import Asset, GenerationJob, JobStatus, transition_sources
from storyframe.schemas.status import JobStatusRead
from storyframe.services.asset_store import asset_read
from storyframe.services.storage import StorageBackend

logger = logging.getLogger(__name__)

INTERRUPTED_ERROR = "Generation interrupted by service restart"


async def get_job_status(
    db: AsyncSession,
    storage: StorageBackend,
    settings: Settings,
    owner_id: str,
    job_id: str | None,
) -> JobStatusRead:
    """Read-only view of a job plus the scene's recent assets.

    Polling never changes the job, so repeated calls return the same state
    until the job's single terminal write lands.
    """
    if not job_id or not job_id.strip():
        raise ValidationError("job_id is required")

    job = await db.get(GenerationJob, job_id.strip(), populate_existing=True)
    if job is None:
        raise NotFoundError("Job", "not found")
    if job.owner_id != owner_id:
        logger.info("Job %s requested by non-owner", job.id[:8])
        raise AuthorizationError()

    asset = None
    if job.asset_id:
        found = await db.get(Asset, job.asset_id)
        if found is not None and found.owner_id == owner_id:
            asset = await asset_read(found, storage, settings)

    result = await db.execute(
        select(Asset)
        .where(Asset.scene_id == job.scene_id, Asset.owner_id == owner_id)
        .order_by(Asset.created_at.desc(), Asset.id.desc())
        .limit(settings.RECENT_ASSET_LIMIT)
    )
    assets = [await asset_read(a, storage, settings) for a in result.scalars().all()]

    return JobStatusRead(
        job_id=job.id,
        scene_id=job.scene_id,
        status=job.status,
        provider=job.provider,
        prompt=job.prompt,
        error=job.error,
        storage_path=job.storage_path,
        asset=asset,
        assets=assets,
        metadata=job.meta,
        created_at=job.created_at,
        updated_at=job.updated_at,
    )


async def recover_interrupted_jobs(session_factory: async_sessionmaker) -> int:
    """Fail jobs left ``processing`` by a previous process.

    The provider call that owned them is gone, so they would otherwise poll
    as processing forever.
    """
    async with session_factory() as session:
        result = await session.execute(
            update(GenerationJob)
            .where(GenerationJob.status.in_(transition_sources(JobStatus.FAILED)))
            .values({
                GenerationJob.status: JobStatus.FAILED.value,
                GenerationJob.error: INTERRUPTED_ERROR,
                GenerationJob.updated_at: func.now(),
            })
            .execution_options(synchronize_session=False)
        )
        await session.commit()

    if result.rowcount > 0:
        logger.warning("Startup recovery: %d job(s) processing -> failed", result.rowcount)
    else:
        logger.info("Startup recovery: no interrupted jobs found")
    return result.rowcount
