from __future__ import annotations
"""Scene and SceneFrame ORM models."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from storyframe.database import Base


class Scene(Base):
    """Ownership anchor for frames, generation jobs and assets."""

    __tablename__ = "scenes"
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
    project_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, server_default=func.now(), onupdate=func.now()
    )


class SceneFrame(Base):
    """One rendered frame of a scene.

    Frames produced by a continuation share ``variant_group_id``; exactly one
    frame per group is ``selected``. Frames are never modified after insert.
    """

    __tablename__ = "scene_frames"
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
    frame_index: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    character_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("characters.id", ondelete="SET NULL"), nullable=True,
    )
    pose_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("character_poses.id", ondelete="SET NULL"), nullable=True,
    )
    # Ordered [{role, bucket, path, description}] fed to the provider
    input_images: Mapped[Optional[list]] = mapped_column(JSON, nullable=True, default=list)
    prompt_used: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    output_image_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    variant_group_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    variant_index: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    selected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    meta: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True, default=dict)

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, server_default=func.now()
    )
