from __future__ import annotations
"""CharacterPose ORM model - one scored candidate from a pose batch."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from storyframe.database import Base


class CharacterPose(Base):
    """A generated pose image.

    Rows are created once per batch and never updated; ``approved_for_scene``
    reflects the ranking inside the batch that produced them.
    """

    __tablename__ = "character_poses"
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
    character_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("characters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    pose_label: Mapped[str] = mapped_column(String(255), nullable=False)
    pose_description: Mapped[str] = mapped_column(Text, nullable=False)
    scene_use_case: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    input_image_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    generated_image_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    approved_for_scene: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    meta: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True, default=dict)

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, server_default=func.now()
    )
