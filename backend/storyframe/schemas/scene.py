from __future__ import annotations
"""Pydantic v2 schemas for scenes, frames and continuation."""

from datetime import datetime

from pydantic import BaseModel, Field


class SceneCreate(BaseModel):
    title: str | None = Field(None, max_length=255)
    description: str | None = None
    project_id: str | None = None


class SceneRead(BaseModel):
    id: str
    title: str | None = None
    description: str | None = None
    project_id: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class SceneGenerationRequest(BaseModel):
    scene_id: str = Field(..., min_length=1)
    character_id: str = Field(..., min_length=1)
    prompt: str = Field(..., min_length=1)
    pose_id: str | None = None
    frame_index: int | None = Field(None, ge=1)
    width: int = Field(1024, ge=64, le=4096)
    height: int = Field(1024, ge=64, le=4096)
    negative_prompt: str | None = None
    steps: int = Field(30, ge=1, le=150)
    guidance: float = Field(7.0, ge=0, le=35)
    seed: int | None = None
    provider: str | None = None
    reference_asset_id: str | None = None
    mask_asset_id: str | None = None


class SceneContinuationRequest(BaseModel):
    scene_id: str = Field(..., min_length=1)
    character_id: str = Field(..., min_length=1)
    prompt: str = Field(..., min_length=1)
    pose_id: str | None = None
    frame_index: int | None = Field(None, ge=1)
    variants: int | None = Field(None, ge=1, le=10)
    width: int = Field(1024, ge=64, le=4096)
    height: int = Field(1024, ge=64, le=4096)
    negative_prompt: str | None = None
    provider: str | None = None


class FrameRead(BaseModel):
    id: str
    frame_index: int
    output_image_url: str
    signed_url: str | None = None
    selected: bool
    variant_index: int | None = None
    variant_group_id: str | None = None


class SceneGenerationResponse(BaseModel):
    scene_id: str
    provider: str
    job_id: str
    status: str
    frame: FrameRead


class SceneContinuationResponse(BaseModel):
    scene_id: str
    provider: str
    variant_group_id: str
    frames: list[FrameRead]
