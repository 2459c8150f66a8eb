from __future__ import annotations
"""Asset addressing, image payload decoding and scene asset uploads."""

import base64
import binascii
import io
import logging
import uuid

from PIL import Image, UnidentifiedImageError
from sqlalchemy.ext.asyncio import AsyncSession

from storyframe.config import Settings
from storyframe.errors import PersistenceError, ValidationError
from storyframe.models import Asset, AssetKind
from storyframe.schemas.asset import AssetCreate, AssetRead
from storyframe.services.ownership import ensure_scene
from storyframe.services.storage import StorageBackend, StorageError
from storyframe.services.storage_paths import StorageRole, StorageTarget, storage_target

logger = logging.getLogger(__name__)

_MIME_BY_FORMAT = {"PNG": "image/png", "JPEG": "image/jpeg", "WEBP": "image/webp", "GIF": "image/gif"}
_EXT_BY_MIME = {"image/png": "png", "image/jpeg": "jpg", "image/webp": "webp", "image/gif": "gif"}


def asset_target(asset: Asset, settings: Settings) -> StorageTarget:
    """Bucket from the asset metadata, else implied by its kind."""
    bucket = (asset.meta or {}).get("bucket")
    if not bucket:
        bucket = settings.RENDER_BUCKET if asset.kind == AssetKind.RENDER.value else settings.REF_BUCKET
    return StorageTarget(bucket=bucket, path=asset.storage_path)


async def asset_read(asset: Asset, storage: StorageBackend, settings: Settings) -> AssetRead:
    target = asset_target(asset, settings)
    return AssetRead(
        id=asset.id,
        scene_id=asset.scene_id,
        kind=asset.kind,
        storage_path=asset.storage_path,
        metadata=asset.meta,
        signed_url=await storage.create_signed_url(target, settings.SIGNED_URL_TTL),
        created_at=asset.created_at,
    )


def decode_image_payload(value: str) -> tuple[bytes, str]:
    """Decode a base64 string or data URI and check it is a real image.

    Returns (bytes, mime type).
    """
    payload = value.strip()
    if payload.startswith("data:"):
        _, _, payload = payload.partition(",")
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Image must be base64 encoded")
    if not data:
        raise ValidationError("Image is empty")
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise ValidationError("Image payload is not a supported image")
    mime = _MIME_BY_FORMAT.get(fmt or "")
    if mime is None:
        raise ValidationError(f"Unsupported image format: {fmt}")
    return data, mime


async def create_scene_asset(
    db: AsyncSession,
    storage: StorageBackend,
    settings: Settings,
    owner_id: str,
    data: AssetCreate,
) -> Asset:
    """Store an uploaded reference or mask image and record it."""
    await ensure_scene(db, owner_id, data.scene_id)
    image, mime = decode_image_payload(data.image)

    asset_id = uuid.uuid4().hex
    role = StorageRole.SCENE_MASK if data.kind == AssetKind.MASK.value else StorageRole.SCENE_REFERENCE
    target = storage_target(
        role, owner_id, data.scene_id, asset_id,
        ref_bucket=settings.REF_BUCKET, render_bucket=settings.RENDER_BUCKET,
        extension=_EXT_BY_MIME[mime],
    )
    try:
        await storage.upload(target, image, content_type=mime)
    except StorageError as e:
        raise PersistenceError(f"Failed to store {data.kind} image: {e}")

    asset = Asset(
        id=asset_id,
        owner_id=owner_id,
        scene_id=data.scene_id,
        kind=data.kind,
        storage_path=target.path,
        meta={**(data.metadata or {}), "bucket": target.bucket, "content_type": mime, "source": "upload"},
    )
    db.add(asset)
    await db.flush()
    await db.refresh(asset)
    logger.info("Stored %s asset %s for scene %s", data.kind, asset_id[:8], data.scene_id[:8])
    return asset
