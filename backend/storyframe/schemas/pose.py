from __future__ import annotations
"""Pydantic v2 schemas for pose generation."""

from pydantic import BaseModel, Field


class PoseSpec(BaseModel):
    """One requested pose. Entries without a label or description are skipped."""

    label: str | None = None
    description: str | None = None
    long_description: str | None = None
    scene_use_case: str | None = None

    @property
    def is_valid(self) -> bool:
        return bool((self.label or "").strip() and (self.description or "").strip())


class PoseGenerationRequest(BaseModel):
    character_id: str = Field(..., min_length=1)
    poses: list[PoseSpec] = Field(default_factory=list)
    keep_top: float | None = None
    provider: str | None = None


class PoseRead(BaseModel):
    id: str
    pose_label: str
    pose_description: str
    scene_use_case: str | None = None
    score: float
    approved_for_scene: bool
    generated_image_url: str
    signed_url: str | None = None

    model_config = {"from_attributes": True}


class PoseGenerationResponse(BaseModel):
    character_id: str
    provider: str
    poses: list[PoseRead]
