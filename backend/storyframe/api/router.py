from __future__ import annotations
"""Master API router - mounts all sub-routers."""

from fastapi import APIRouter

from storyframe.api.assets import router as assets_router
from storyframe.api.characters import router as characters_router
from storyframe.api.poses import router as poses_router
from storyframe.api.scenes import router as scenes_router
from storyframe.api.status import router as status_router

api_router = APIRouter(prefix="/api", redirect_slashes=False)

api_router.include_router(poses_router, tags=["Poses"])
api_router.include_router(scenes_router, tags=["Scenes"])
api_router.include_router(status_router, tags=["Status"])
api_router.include_router(characters_router, prefix="/characters", tags=["Characters"])
api_router.include_router(assets_router, prefix="/assets", tags=["Assets"])
