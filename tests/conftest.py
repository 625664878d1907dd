"""Shared fixtures: in-memory database, mock settings, media host and API client."""

import base64
import itertools
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker

from vortexstream.api import (
    comments_router,
    dashboard_router,
    health_router,
    likes_router,
    playlists_router,
    subscriptions_router,
    tweets_router,
    users_router,
    videos_router,
)
from vortexstream.api.dependencies import get_media_client
from vortexstream.auth.security import hash_password
from vortexstream.auth.tokens import create_access_token
from vortexstream.config import Settings, get_settings
from vortexstream.db import crud
from vortexstream.db.models import Base, User, Video
from vortexstream.db.session import build_engine, get_session
from vortexstream.errors import register_exception_handlers
from vortexstream.media import MediaAsset, MediaHostClient

PASSWORD = "secret123"
_PASSWORD_HASH = None


def password_hash() -> str:
    """scrypt is slow on purpose; hash the shared test password once."""
    global _PASSWORD_HASH
    if _PASSWORD_HASH is None:
        _PASSWORD_HASH = hash_password(PASSWORD)
    return _PASSWORD_HASH


@pytest_asyncio.fixture
async def test_db():
    """Create an in-memory test database with foreign keys enforced."""
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    sessionmaker = async_sessionmaker(engine, expire_on_commit=False)

    yield sessionmaker

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_db):
    async with test_db() as session:
        yield session


@pytest.fixture
def mock_settings(tmp_path):
    """Create mock settings."""
    settings = MagicMock(spec=Settings)
    settings.access_token_secret = "test-access-secret"
    settings.refresh_token_secret = "test-refresh-secret"
    settings.token_enc_key = base64.b64encode(b"0" * 32).decode()
    settings.access_token_ttl_seconds = 3600
    settings.refresh_token_ttl_seconds = 86400
    settings.cloudinary_cloud_name = "demo"
    settings.cloudinary_api_key = "test-api-key"
    settings.cloudinary_api_secret = "test-api-secret"
    settings.media_timeout_seconds = 5.0
    settings.upload_temp_dir = str(tmp_path / "temp")
    settings.max_image_bytes = 1024
    settings.max_video_bytes = 4096
    settings.page_size_default = 10
    settings.page_size_max = 100
    settings.frontend_origin = "http://localhost:5173"
    settings.env = "dev"
    return settings


@pytest.fixture
def media():
    """Media host double returning a fresh asset for every upload."""
    counter = itertools.count(1)

    async def _upload(path, resource_type="auto"):
        n = next(counter)
        return MediaAsset(
            public_id=f"asset-{n}",
            url=f"https://media.test/asset-{n}{path.suffix}",
            resource_type="video" if path.suffix in (".mp4", ".webm") else "image",
            duration=12.5 if path.suffix == ".mp4" else 0.0,
        )

    client = AsyncMock(spec=MediaHostClient)
    client.upload.side_effect = _upload
    client.destroy.return_value = True
    return client


@pytest.fixture
def make_user():
    """Factory inserting a user directly through the CRUD layer."""

    async def _make(db, username: str = "alice", **fields) -> User:
        return await crud.create_user(
            db,
            username=username,
            email=fields.pop("email", f"{username}@example.com"),
            password_hash=password_hash(),
            full_name=fields.pop("full_name", username.title()),
            avatar_public_id=f"avatar-{username}",
            avatar=f"https://media.test/avatar-{username}.png",
            **fields,
        )

    return _make


@pytest.fixture
def make_video():
    """Factory inserting a video owned by ``owner``."""
    counter = itertools.count(1)

    async def _make(db, owner: User, **fields) -> Video:
        n = next(counter)
        values = {
            "owner_id": owner.id,
            "title": f"Video {n}",
            "description": f"Description for video {n}",
            "video_file_public_id": f"video-{n}",
            "video_file": f"https://media.test/video-{n}.mp4",
            "thumbnail_public_id": f"thumb-{n}",
            "thumbnail": f"https://media.test/thumb-{n}.png",
            "duration": 60.0,
            "is_published": True,
        }
        values.update(fields)
        return await crud.create_video(db, **values)

    return _make


def override_get_session(sessionmaker):
    """Create a dependency override for get_session."""

    async def _override():
        async with sessionmaker() as session:
            yield session

    return _override


@pytest.fixture
def test_app(test_db, mock_settings, media):
    """FastAPI app with every router, wired to the test database and doubles."""
    app = FastAPI()
    register_exception_handlers(app)
    for router in (
        health_router,
        users_router,
        videos_router,
        comments_router,
        likes_router,
        subscriptions_router,
        playlists_router,
        tweets_router,
        dashboard_router,
    ):
        app.include_router(router)

    app.dependency_overrides[get_session] = override_get_session(test_db)
    app.dependency_overrides[get_settings] = lambda: mock_settings
    app.dependency_overrides[get_media_client] = lambda: media
    return app


@pytest_asyncio.fixture
async def client(test_app):
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers(mock_settings):
    """Build an Authorization header carrying an access token for ``user``."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(mock_settings, user)}"}

    return _headers


@pytest.fixture
def user_password() -> str:
    """Plain-text password of every user built by ``make_user``."""
    return PASSWORD
