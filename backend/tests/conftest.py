"""
Pytest Configuration and Test Fixtures for the Tubely Backend

This module provides shared fixtures:
- Test settings pointing staging and assets at per-test temporary directories
- An in-memory video store standing in for MongoDB
- A real StorageClient (offline presigning) whose put_object is mocked
- Stub classifier/remuxer collaborators so no ffmpeg binary is needed
- Bearer tokens for an owner and a second user
- A fully wired VideoUploadService

No test needs a running MongoDB, S3 or ffmpeg.
"""

import asyncio

from io import BytesIO
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from fastapi import UploadFile
from starlette.datastructures import Headers

from tubely.config import Settings
from tubely.core.auth import create_access_token
from tubely.core.storage import StorageClient
from tubely.exceptions import MetadataUpdateFailed, RecordNotFound
from tubely.models.video import Classification, Video
from tubely.services.link_signer import LinkSigner
from tubely.services.metadata_store import VideoStore
from tubely.services.storage_placer import StoragePlacer
from tubely.services.upload_service import VideoUploadService


TEST_SECRET_KEY = "test-secret-key-for-jwt-signing-minimum-32-chars"
TEST_BUCKET = "test-bucket"


# ==============================================================================
# Pytest Configuration
# ==============================================================================


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: isolated unit tests with no external services")
    config.addinivalue_line("markers", "integration: tests exercising several components together")


# ==============================================================================
# Settings Fixtures
# ==============================================================================


@pytest.fixture
def stage_root(tmp_path: Path) -> Path:
    """Parent directory for per-request temporary stages."""
    path = tmp_path / "stage"
    path.mkdir()
    return path


@pytest.fixture
def assets_root(tmp_path: Path) -> Path:
    return tmp_path / "assets"


@pytest.fixture
def test_settings(stage_root: Path, assets_root: Path) -> Settings:
    """
    Create a Settings instance with test-specific configuration values.

    S3 credentials are dummies: presigning is a local computation and
    object writes are mocked.
    """
    return Settings(
        app_env="testing",
        app_name="tubely-test",
        debug=True,
        secret_key=TEST_SECRET_KEY,
        jwt_algorithm="HS256",
        s3_endpoint_url=None,
        s3_access_key_id="test-access-key",
        s3_secret_access_key="test-secret-key",
        s3_bucket_name=TEST_BUCKET,
        s3_region="us-east-1",
        video_url_expiration_seconds=600,
        upload_tmp_dir=str(stage_root),
        assets_root=str(assets_root),
        public_base_url="http://localhost:8091",
        ffmpeg_bin="ffmpeg",
        ffprobe_bin="ffprobe",
    )


# ==============================================================================
# In-Memory Metadata Store
# ==============================================================================


class FakeVideoStore(VideoStore):
    """
    Dict-backed VideoStore.

    Records are copied in and out so that callers cannot mutate stored
    state without going through ``update``. Set ``fail_updates`` to make
    every update raise MetadataUpdateFailed.
    """

    def __init__(self) -> None:
        self.records: dict[str, Video] = {}
        self.fail_updates = False
        self.update_calls = 0

    async def get(self, video_id: str) -> Video:
        if video_id not in self.records:
            raise RecordNotFound("Couldn't find video", video_id=video_id)
        return self.records[video_id].model_copy(deep=True)

    async def update(self, video: Video) -> None:
        self.update_calls += 1
        if self.fail_updates:
            raise MetadataUpdateFailed("Couldn't update video", video_id=video.id)
        video.touch()
        self.records[video.id] = video.model_copy(deep=True)

    async def create(self, video: Video) -> Video:
        self.records[video.id] = video.model_copy(deep=True)
        return video

    async def list_for_user(self, user_id: str) -> list[Video]:
        owned = [v.model_copy(deep=True) for v in self.records.values() if v.user_id == user_id]
        return sorted(owned, key=lambda v: v.created_at, reverse=True)


@pytest.fixture
def fake_store() -> FakeVideoStore:
    return FakeVideoStore()


# ==============================================================================
# Users, Records and Tokens
# ==============================================================================


@pytest.fixture
def user_id() -> str:
    return "user-owner-123"


@pytest.fixture
def other_user_id() -> str:
    return "user-intruder-456"


@pytest.fixture
def video(fake_store: FakeVideoStore, user_id: str) -> Video:
    """A draft record owned by ``user_id`` already present in the store."""
    record = Video(user_id=user_id, title="Boots on the trail", description="Test clip")
    fake_store.records[record.id] = record.model_copy(deep=True)
    return record


@pytest.fixture
def auth_token(test_settings: Settings, user_id: str) -> str:
    return create_access_token(user_id, test_settings)


@pytest.fixture
def other_auth_token(test_settings: Settings, other_user_id: str) -> str:
    return create_access_token(other_user_id, test_settings)


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {auth_token}"}


# ==============================================================================
# Storage Fixtures
# ==============================================================================


@pytest.fixture
def storage_client(test_settings: Settings) -> StorageClient:
    """
    Real StorageClient with object writes mocked.

    ``presign_get`` runs for real (it needs no network); ``put_object`` is
    replaced so uploads can be inspected.
    """
    client = StorageClient(test_settings)
    client.s3_client.put_object = Mock(return_value={"ETag": '"d41d8cd98f00b204e9800998ecf8427e"'})
    return client


# ==============================================================================
# Pipeline Collaborators
# ==============================================================================


async def _copy_remux(input_path: Path) -> Path:
    output = input_path.with_name(input_path.name + ".processing")
    output.write_bytes(input_path.read_bytes())
    input_path.unlink()
    return output


@pytest.fixture
def stub_classifier() -> Mock:
    classifier = Mock()
    classifier.classify = AsyncMock(return_value=Classification.LANDSCAPE)
    return classifier


@pytest.fixture
def stub_remuxer() -> Mock:
    """Remuxer that copies the staged file to ``<name>.processing``."""
    remuxer = Mock()
    remuxer.remux = AsyncMock(side_effect=_copy_remux)
    return remuxer


@pytest.fixture
def upload_service(
    fake_store: FakeVideoStore,
    stub_classifier: Mock,
    stub_remuxer: Mock,
    storage_client: StorageClient,
    test_settings: Settings,
) -> VideoUploadService:
    return VideoUploadService(
        store=fake_store,
        classifier=stub_classifier,
        remuxer=stub_remuxer,
        placer=StoragePlacer(storage_client, test_settings.s3_bucket_name),
        signer=LinkSigner(storage_client, test_settings.video_url_expiration_seconds),
        settings=test_settings,
    )


# ==============================================================================
# Upload Helpers
# ==============================================================================


def make_upload(
    content: bytes = b"\x00\x00\x00\x18ftypmp42fake-mp4-body",
    filename: str = "clip.mp4",
    content_type: str | None = "video/mp4",
) -> UploadFile:
    headers: dict[str, Any] = {}
    if content_type is not None:
        headers["content-type"] = content_type
    return UploadFile(file=BytesIO(content), filename=filename, headers=Headers(headers))


class StalledUpload:
    """Upload whose stream delivers one chunk and then waits forever."""

    content_type = "video/mp4"
    filename = "clip.mp4"

    def __init__(self) -> None:
        self.first_chunk_sent = asyncio.Event()
        self._never = asyncio.Event()

    async def read(self, size: int = -1) -> bytes:
        if not self.first_chunk_sent.is_set():
            self.first_chunk_sent.set()
            return b"partial-body"
        await self._never.wait()
        return b""


@pytest.fixture
def png_bytes() -> bytes:
    """Smallest valid-looking PNG header plus padding; never decoded."""
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
