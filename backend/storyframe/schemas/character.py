from __future__ import annotations
"""Pydantic v2 schemas for characters, base images and drafts."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class CharacterCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    project_id: str | None = None


class CharacterRead(BaseModel):
    id: str
    name: str
    description: str | None = None
    project_id: str | None = None
    base_image_url: str | None = None
    has_pose_library: bool = False
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class BaseImageUpload(BaseModel):
    image: str = Field(..., min_length=1, description="base64 or data URI")


class BaseImageRead(BaseModel):
    character_id: str
    base_image_url: str
    signed_url: str | None = None
    has_pose_library: bool


class RefineParams(BaseModel):
    """Slider values; unknown values are ignored rather than rejected."""

    age: str | None = None
    mood: str | None = None
    hairLength: str | None = None
    eyebrowShape: str | None = None
    style: str | None = None
    detail: str | None = None


class DraftRequest(BaseModel):
    archetype: str = Field(..., min_length=1)
    tier: Literal["standard", "premium"] = "standard"
    model: str | None = None


class RefineRequest(DraftRequest):
    character_id: str | None = None
    base_image_url: str | None = None
    base_storage_path: str | None = None
    refine: RefineParams = Field(default_factory=RefineParams)


class DraftRead(BaseModel):
    draft_id: str
    variant_id: str | None = None
    image_url: str | None = None
    storage_path: str
    provider: str
    archetype: str
    tier: str
    prompt_used: str
    refine: dict[str, Any] | None = None
    character_id: str | None = None
    base_image_url: str | None = None
    base_storage_path: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    meta: dict[str, Any] = Field(default_factory=dict)
