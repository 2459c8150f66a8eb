"""ORM model package - registers all models with Base.metadata."""

from storyframe.models.character import Character
from storyframe.models.pose import CharacterPose
from storyframe.models.scene import Scene, SceneFrame
from storyframe.models.asset import Asset, AssetKind
from storyframe.models.generation_job import (
    GenerationJob,
    JobStatus,
    transition_sources,
    VALID_TRANSITIONS,
)

__all__ = [
    "Character",
    "CharacterPose",
    "Scene",
    "SceneFrame",
    "Asset",
    "AssetKind",
    "GenerationJob",
    "JobStatus",
    "transition_sources",
    "VALID_TRANSITIONS",
]
