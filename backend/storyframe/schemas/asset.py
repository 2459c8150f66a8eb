from __future__ import annotations
"""Pydantic v2 schemas for assets."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class AssetCreate(BaseModel):
    """Upload a reference or mask image for a scene."""

    scene_id: str = Field(..., min_length=1)
    kind: Literal["reference", "mask"] = "reference"
    image: str = Field(..., min_length=1, description="base64 or data URI")
    metadata: dict[str, Any] | None = None


class AssetRead(BaseModel):
    id: str
    scene_id: str
    kind: str
    storage_path: str
    metadata: dict[str, Any] | None = None
    signed_url: str | None = None
    created_at: datetime | None = None
