"""Deterministic storage addressing.

Maps (role, owner, entity, artifact) to a bucket and object path. The same
inputs always produce the same target, so writes to it are idempotent
upserts. Pointers persisted in the database are ``"<bucket>/<path>"``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

DEFAULT_REF_BUCKET = "story-refs"
DEFAULT_RENDER_BUCKET = "story-renders"


class StorageRole(str, enum.Enum):
    CHARACTER_BASE = "character_base"
    CHARACTER_POSE = "character_pose"
    CHARACTER_DRAFT = "character_draft"
    SCENE_REFERENCE = "scene_reference"
    SCENE_MASK = "scene_mask"
    SCENE_FRAME = "scene_frame"


_ROLE_PREFIX: dict[StorageRole, str] = {
    StorageRole.CHARACTER_BASE: "characters",
    StorageRole.CHARACTER_POSE: "character-poses",
    StorageRole.CHARACTER_DRAFT: "character-drafts",
    StorageRole.SCENE_REFERENCE: "scene-references",
    StorageRole.SCENE_MASK: "scene-masks",
    StorageRole.SCENE_FRAME: "scene-frames",
}

_RENDER_ROLES = {StorageRole.SCENE_FRAME}


@dataclass(frozen=True)
class StorageTarget:
    bucket: str
    path: str

    @property
    def pointer(self) -> str:
        return format_storage_pointer(self.bucket, self.path)


def bucket_for_role(
    role: StorageRole,
    ref_bucket: str = DEFAULT_REF_BUCKET,
    render_bucket: str = DEFAULT_RENDER_BUCKET,
) -> str:
    return render_bucket if role in _RENDER_ROLES else ref_bucket


def storage_target(
    role: StorageRole,
    owner_id: str,
    entity_id: str,
    artifact_id: str,
    *,
    ref_bucket: str = DEFAULT_REF_BUCKET,
    render_bucket: str = DEFAULT_RENDER_BUCKET,
    extension: str = "png",
) -> StorageTarget:
    """Compute where an artifact lives.

    >>> storage_target(StorageRole.CHARACTER_POSE, "u1", "c1", "p1").path
    'character-poses/u1/c1/p1.png'
    """
    for name, value in (("owner_id", owner_id), ("entity_id", entity_id), ("artifact_id", artifact_id)):
        if not value or "/" in value:
            raise ValueError(f"Invalid {name} for storage path: {value!r}")
    prefix = _ROLE_PREFIX[StorageRole(role)]
    return StorageTarget(
        bucket=bucket_for_role(StorageRole(role), ref_bucket, render_bucket),
        path=f"{prefix}/{owner_id}/{entity_id}/{artifact_id}.{extension}",
    )


def character_base_target(owner_id: str, character_id: str, **buckets: str) -> StorageTarget:
    return storage_target(
        StorageRole.CHARACTER_BASE, owner_id, character_id,
        f"character-{character_id}-base", **buckets,
    )


def format_storage_pointer(bucket: str, path: str) -> str:
    return f"{bucket}/{path.lstrip('/')}"


def parse_storage_pointer(pointer: str | None) -> StorageTarget | None:
    """Split a ``bucket/path`` pointer at its first slash.

    Returns None for empty or malformed values.
    """
    if not pointer:
        return None
    bucket, sep, path = pointer.strip().lstrip("/").partition("/")
    if not sep or not bucket or not path:
        return None
    return StorageTarget(bucket=bucket, path=path)
