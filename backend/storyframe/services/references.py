from __future__ import annotations
"""Loading stored reference images for provider calls."""

import logging

from storyframe.config import Settings
from storyframe.errors import PersistenceError, ValidationError
from storyframe.models import Character
from storyframe.services.storage import StorageBackend, StorageError, StorageObjectMissing
from storyframe.services.storage_paths import (
    StorageTarget,
    character_base_target,
    parse_storage_pointer,
)

logger = logging.getLogger(__name__)


def base_image_target(character: Character, settings: Settings) -> StorageTarget:
    """The character's base image pointer, or its deterministic default location."""
    return parse_storage_pointer(character.base_image_url) or character_base_target(
        character.owner_id, character.id,
        ref_bucket=settings.REF_BUCKET, render_bucket=settings.RENDER_BUCKET,
    )


async def load_base_image(
    storage: StorageBackend, settings: Settings, character: Character,
) -> tuple[StorageTarget, bytes]:
    target = base_image_target(character, settings)
    try:
        return target, await storage.download(target)
    except StorageObjectMissing:
        raise ValidationError("Character base image not found")
    except StorageError as e:
        raise PersistenceError(f"Failed to read character base image: {e}")


async def load_required(storage: StorageBackend, target: StorageTarget, what: str) -> bytes:
    """Download an object the request cannot proceed without."""
    try:
        return await storage.download(target)
    except StorageObjectMissing:
        raise ValidationError(f"{what} image not found")
    except StorageError as e:
        raise PersistenceError(f"Failed to read {what.lower()} image: {e}")


async def load_optional(storage: StorageBackend, target: StorageTarget) -> bytes | None:
    """Download an object whose absence only weakens continuity."""
    try:
        return await storage.download(target)
    except StorageObjectMissing:
        logger.warning("Reference %s missing, skipping", target.pointer)
        return None
