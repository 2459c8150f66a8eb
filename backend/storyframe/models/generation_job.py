from __future__ import annotations
"""GenerationJob ORM model - single-frame render job with a one-way state machine."""

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from storyframe.database import Base


class JobStatus(str, enum.Enum):
    """Job lifecycle statuses. Terminal states never change again."""

    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


VALID_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.PROCESSING: {JobStatus.SUCCEEDED, JobStatus.FAILED},
    JobStatus.SUCCEEDED: set(),  # terminal state
    JobStatus.FAILED: set(),  # terminal state
}


def transition_sources(target: JobStatus) -> list[str]:
    """Statuses a job may hold immediately before moving to ``target``."""
    return [
        current.value
        for current, allowed in VALID_TRANSITIONS.items()
        if target in allowed
    ]


class GenerationJob(Base):
    """A tracked render of one scene frame."""

    __tablename__ = "image_generations"
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
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    negative_prompt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    width: Mapped[int] = mapped_column(Integer, nullable=False, default=1024)
    height: Mapped[int] = mapped_column(Integer, nullable=False, default=1024)
    steps: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    guidance: Mapped[float] = mapped_column(Float, nullable=False, default=7.0)
    seed: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=JobStatus.PROCESSING.value, index=True
    )
    storage_path: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    asset_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    meta: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True, default=dict)

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, server_default=func.now(), onupdate=func.now()
    )

