from __future__ import annotations
"""Pydantic v2 schemas for job status polling."""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, Field

from storyframe.schemas.asset import AssetRead


class StatusRequest(BaseModel):
    job_id: str | None = Field(None, validation_alias=AliasChoices("job_id", "jobId"))


class JobStatusRead(BaseModel):
    job_id: str
    scene_id: str
    status: str
    provider: str
    prompt: str
    error: str | None = None
    storage_path: str | None = None
    asset: AssetRead | None = None
    assets: list[AssetRead] = Field(default_factory=list)
    metadata: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
