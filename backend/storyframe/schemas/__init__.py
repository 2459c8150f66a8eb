"""Pydantic v2 schemas package."""

from storyframe.schemas.asset import AssetCreate, AssetRead
from storyframe.schemas.character import (
    BaseImageRead,
    BaseImageUpload,
    CharacterCreate,
    CharacterRead,
    DraftRead,
    DraftRequest,
    RefineRequest,
)
from storyframe.schemas.pose import PoseGenerationRequest, PoseGenerationResponse, PoseRead, PoseSpec
from storyframe.schemas.scene import (
    FrameRead,
    SceneContinuationRequest,
    SceneContinuationResponse,
    SceneCreate,
    SceneGenerationRequest,
    SceneGenerationResponse,
    SceneRead,
)
from storyframe.schemas.status import JobStatusRead, StatusRequest

__all__ = [
    "AssetCreate",
    "AssetRead",
    "BaseImageRead",
    "BaseImageUpload",
    "CharacterCreate",
    "CharacterRead",
    "DraftRead",
    "DraftRequest",
    "RefineRequest",
    "PoseGenerationRequest",
    "PoseGenerationResponse",
    "PoseRead",
    "PoseSpec",
    "FrameRead",
    "SceneContinuationRequest",
    "SceneContinuationResponse",
    "SceneCreate",
    "SceneGenerationRequest",
    "SceneGenerationResponse",
    "SceneRead",
    "JobStatusRead",
    "StatusRequest",
]
