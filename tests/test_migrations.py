from argparse import Namespace
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

BACKEND = Path(__file__).resolve().parents[1] / "backend"


def _alembic_config(db_url: str) -> Config:
    config = Config(cmd_opts=Namespace(x=[f"db_url={db_url}"]))
    config.set_main_option("script_location", str(BACKEND / "alembic"))
    return config


def test_upgrade_head_builds_schema(tmp_path):
    db_file = tmp_path / "migrated.db"
    command.upgrade(_alembic_config(f"sqlite+aiosqlite:///{db_file}"), "head")

    engine = create_engine(f"sqlite:///{db_file}")
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        job_columns = {c["name"] for c in inspector.get_columns("image_generations")}
    finally:
        engine.dispose()

    assert {
        "characters",
        "scenes",
        "character_poses",
        "scene_frames",
        "image_generations",
        "assets",
        "alembic_version",
    } <= tables
    assert {"status", "storage_path", "asset_id", "error", "metadata"} <= job_columns
