"""Initial schema - characters, scenes, poses, frames, generation jobs, assets

Revision ID: 0001
Revises: None
Create Date: 2026-10-19 09:00:00
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_MYSQL = {"mysql_charset": "utf8mb4", "mysql_collate": "utf8mb4_unicode_ci"}


def upgrade() -> None:
    op.create_table(
        "characters",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("project_id", sa.String(36), nullable=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("base_image_url", sa.String(1024), nullable=True),
        sa.Column("has_pose_library", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime, nullable=True, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, nullable=True, server_default=sa.func.now()),
        **_MYSQL,
    )
    op.create_index("ix_characters_owner_id", "characters", ["owner_id"])
    op.create_index("ix_characters_project_id", "characters", ["project_id"])

    op.create_table(
        "scenes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("project_id", sa.String(36), nullable=True),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=True, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, nullable=True, server_default=sa.func.now()),
        **_MYSQL,
    )
    op.create_index("ix_scenes_owner_id", "scenes", ["owner_id"])
    op.create_index("ix_scenes_project_id", "scenes", ["project_id"])

    op.create_table(
        "character_poses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("character_id", sa.String(36), sa.ForeignKey("characters.id", ondelete="CASCADE"), nullable=False),
        sa.Column("pose_label", sa.String(255), nullable=False),
        sa.Column("pose_description", sa.Text, nullable=False),
        sa.Column("scene_use_case", sa.Text, nullable=True),
        sa.Column("input_image_url", sa.String(1024), nullable=True),
        sa.Column("generated_image_url", sa.String(1024), nullable=False),
        sa.Column("score", sa.Float, nullable=False, server_default="0"),
        sa.Column("approved_for_scene", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("metadata", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=True, server_default=sa.func.now()),
        **_MYSQL,
    )
    op.create_index("ix_character_poses_owner_id", "character_poses", ["owner_id"])
    op.create_index("ix_character_poses_character_id", "character_poses", ["character_id"])

    op.create_table(
        "scene_frames",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("scene_id", sa.String(36), sa.ForeignKey("scenes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("frame_index", sa.Integer, nullable=False, server_default="1"),
        sa.Column("character_id", sa.String(36), sa.ForeignKey("characters.id", ondelete="SET NULL"), nullable=True),
        sa.Column("pose_id", sa.String(36), sa.ForeignKey("character_poses.id", ondelete="SET NULL"), nullable=True),
        sa.Column("input_images", sa.JSON, nullable=True),
        sa.Column("prompt_used", sa.Text, nullable=True),
        sa.Column("output_image_url", sa.String(1024), nullable=False),
        sa.Column("variant_group_id", sa.String(36), nullable=True),
        sa.Column("variant_index", sa.Integer, nullable=True),
        sa.Column("selected", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("metadata", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=True, server_default=sa.func.now()),
        **_MYSQL,
    )
    op.create_index("ix_scene_frames_owner_id", "scene_frames", ["owner_id"])
    op.create_index("ix_scene_frames_scene_id", "scene_frames", ["scene_id"])
    op.create_index("ix_scene_frames_variant_group_id", "scene_frames", ["variant_group_id"])
    op.create_index("ix_scene_frames_scene_selected", "scene_frames", ["scene_id", "selected", "frame_index"])

    op.create_table(
        "image_generations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("scene_id", sa.String(36), sa.ForeignKey("scenes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("prompt", sa.Text, nullable=False),
        sa.Column("negative_prompt", sa.Text, nullable=True),
        sa.Column("width", sa.Integer, nullable=False, server_default="1024"),
        sa.Column("height", sa.Integer, nullable=False, server_default="1024"),
        sa.Column("steps", sa.Integer, nullable=False, server_default="30"),
        sa.Column("guidance", sa.Float, nullable=False, server_default="7"),
        sa.Column("seed", sa.Integer, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="processing",
                  comment="processing | succeeded | failed"),
        sa.Column("storage_path", sa.String(1024), nullable=True),
        sa.Column("asset_id", sa.String(36), nullable=True),
        sa.Column("error", sa.Text, nullable=True),
        sa.Column("metadata", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=True, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, nullable=True, server_default=sa.func.now()),
        **_MYSQL,
    )
    op.create_index("ix_image_generations_owner_id", "image_generations", ["owner_id"])
    op.create_index("ix_image_generations_scene_id", "image_generations", ["scene_id"])
    op.create_index("ix_image_generations_status", "image_generations", ["status"])

    op.create_table(
        "assets",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("scene_id", sa.String(36), sa.ForeignKey("scenes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False, server_default="render",
                  comment="reference | mask | render"),
        sa.Column("storage_path", sa.String(1024), nullable=False),
        sa.Column("metadata", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=True, server_default=sa.func.now()),
        **_MYSQL,
    )
    op.create_index("ix_assets_owner_id", "assets", ["owner_id"])
    op.create_index("ix_assets_scene_id", "assets", ["scene_id"])
    op.create_index("ix_assets_scene_created", "assets", ["scene_id", "created_at"])


def downgrade() -> None:
    op.drop_table("assets")
    op.drop_table("image_generations")
    op.drop_table("scene_frames")
    op.drop_table("character_poses")
    op.drop_table("scenes")
    op.drop_table("characters")
