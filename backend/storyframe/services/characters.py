from __future__ import annotations
"""Character base image management."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from storyframe.config import Settings
from storyframe.errors import PersistenceError
from storyframe.models import Character
from storyframe.services.asset_store import decode_image_payload
from storyframe.services.ownership import ensure_character
from storyframe.services.storage import StorageBackend, StorageError
from storyframe.services.storage_paths import StorageTarget, character_base_target

logger = logging.getLogger(__name__)


async def upload_base_image(
    db: AsyncSession,
    storage: StorageBackend,
    settings: Settings,
    owner_id: str,
    character_id: str,
    image: str,
) -> tuple[Character, StorageTarget]:
    """Store the character's base image at its fixed location.

    A new base invalidates existing poses, so ``has_pose_library`` resets.
    """
    character = await ensure_character(db, owner_id, character_id)
    data, mime = decode_image_payload(image)

    target = character_base_target(
        owner_id, character.id,
        ref_bucket=settings.REF_BUCKET, render_bucket=settings.RENDER_BUCKET,
    )
    try:
        await storage.upload(target, data, content_type=mime)
    except StorageError as e:
        raise PersistenceError(f"Failed to store base image: {e}")

    character.base_image_url = target.pointer
    character.has_pose_library = False
    await db.flush()
    await db.refresh(character)
    logger.info("Base image stored for character %s (%d bytes)", character.id[:8], len(data))
    return character, target
