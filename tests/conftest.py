"""Shared pytest fixtures.

Environment defaults are set before ``storyframe`` is imported, because the
module-level engine and settings are built at import time. Every test gets
its own SQLite file, media volume and Settings instance; the FastAPI app is
driven in-process through ``httpx.ASGITransport`` with its dependencies
overridden.
"""
import base64
import io
import os
import time
import uuid

os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTH_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("STORAGE_BACKEND", "local")

import httpx
import jwt
import pytest
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storyframe.api.deps import get_http_client, get_storage
from storyframe.config import Settings, get_settings
from storyframe.database import Base, build_engine, get_db
from storyframe.models import Character, Scene
from storyframe.services.storage import LocalStorage
from storyframe.services.storage_paths import character_base_target

JWT_SECRET = "test-jwt-secret"
OWNER = "user-owner"
OTHER = "user-other"

get_settings.cache_clear()


def make_token(sub: str = OWNER, secret: str = JWT_SECRET, expires_in: int = 3600, **claims) -> str:
    payload = {"sub": sub, "exp": int(time.time()) + expires_in, "role": "authenticated"}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


def png_image(width: int = 32, height: int = 32, colour=(200, 40, 40)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=colour).save(buf, "PNG")
    return buf.getvalue()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        DB_URL=f"sqlite+aiosqlite:///{tmp_path / 'storyframe.db'}",
        MEDIA_VOLUME=str(tmp_path / "media"),
        STORAGE_BACKEND="local",
        STORAGE_SIGNING_SECRET="test-signing-secret",
        PUBLIC_BASE_URL="http://testserver",
        AUTH_JWT_SECRET=JWT_SECRET,
        AUTH_JWT_ISSUER="",
        AUTH_JWT_AUDIENCE="",
        AI_IMAGE_PROVIDER="auto",
        AI_IMAGE_MODEL="",
        OPENAI_API_KEY="",
        GOOGLE_API_KEY="",
        STABILITY_API_KEY="",
        OPENROUTER_API_KEY="",
        PROVIDER_MAX_RETRIES=0,
        PROVIDER_RETRY_DELAY=0,
        PROVIDER_TIMEOUT=5,
    )


@pytest.fixture
async def engine(settings):
    engine = build_engine(settings.DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage(settings) -> LocalStorage:
    return LocalStorage(
        settings.MEDIA_VOLUME,
        signing_secret=settings.STORAGE_SIGNING_SECRET,
        public_base_url=settings.PUBLIC_BASE_URL,
    )


@pytest.fixture
def png_bytes() -> bytes:
    return png_image()


@pytest.fixture
def png_b64(png_bytes) -> str:
    return base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture
def http_client_override():
    """Set ``.client`` to route provider HTTP calls through a MockTransport."""

    class _Holder:
        client: httpx.AsyncClient | None = None

    return _Holder()


@pytest.fixture
async def client(settings, session_factory, storage, http_client_override):
    from storyframe.main import app

    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_http_client] = lambda: http_client_override.client

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    """Build request headers for a given user id."""

    def _headers(sub: str = OWNER) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(sub)}"}

    return _headers


@pytest.fixture
def create_character(session_factory, storage, settings, png_bytes):
    async def _create(owner_id: str = OWNER, name: str = "Mira", with_base: bool = True) -> Character:
        character = Character(id=uuid.uuid4().hex, owner_id=owner_id, name=name, has_pose_library=False)
        if with_base:
            target = character_base_target(
                owner_id, character.id,
                ref_bucket=settings.REF_BUCKET, render_bucket=settings.RENDER_BUCKET,
            )
            await storage.upload(target, png_bytes)
            character.base_image_url = target.pointer
        async with session_factory() as session:
            session.add(character)
            await session.commit()
        return character

    return _create


@pytest.fixture
def create_scene(session_factory):
    async def _create(owner_id: str = OWNER, title: str = "Rooftop chase") -> Scene:
        scene = Scene(id=uuid.uuid4().hex, owner_id=owner_id, title=title)
        async with session_factory() as session:
            session.add(scene)
            await session.commit()
        return scene

    return _create
