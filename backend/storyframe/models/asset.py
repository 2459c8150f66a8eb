from __future__ import annotations
"""Asset ORM model - every uploaded or generated scene image."""

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from storyframe.database import Base


class AssetKind(str, enum.Enum):
    REFERENCE = "reference"
    MASK = "mask"
    RENDER = "render"


class Asset(Base):
    """A stored image tied to a scene.

    ``storage_path`` is the object path inside its bucket; the bucket is read
    from ``meta["bucket"]`` and otherwise implied by ``kind``.
    """

    __tablename__ = "assets"
    __table_args__ = {
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: uuid.uuid4().hex,
    )
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    scene_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("scenes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False, default=AssetKind.RENDER.value)
    storage_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    meta: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True, default=dict)

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, server_default=func.now()
    )
