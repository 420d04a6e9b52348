"""
Tubely Storage Test Suite

Covers object placement and playback link signing:
- Object keys are ``{classification}/{video_id}.mp4``
- StoragePlacer uploads one object and returns the bucket/key reference
- Storage errors surface as StorageFailed
- LinkSigner presigns GET URLs valid for exactly 600 seconds
- Signing never mutates the record
"""

from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import Mock
from urllib.parse import parse_qs, urlparse

import pytest

from botocore.exceptions import ClientError, EndpointConnectionError

from tubely.core.storage import StorageClient
from tubely.exceptions import ProcessingFailed, StorageFailed
from tubely.models.video import Classification, StorageReference, Video
from tubely.services.link_signer import LinkSigner
from tubely.services.storage_placer import StoragePlacer, build_video_key


@pytest.fixture
def processed_file(tmp_path: Path) -> Path:
    path = tmp_path / "upload-abc.mp4.processing"
    path.write_bytes(b"remuxed-bytes")
    return path


class TestBuildVideoKey:
    """Tests for object key construction."""

    @pytest.mark.parametrize(
        "classification,expected",
        [
            (Classification.LANDSCAPE, "landscape/vid-1.mp4"),
            (Classification.PORTRAIT, "portrait/vid-1.mp4"),
            (Classification.OTHER, "other/vid-1.mp4"),
        ],
    )
    def test_key_layout(self, classification: Classification, expected: str) -> None:
        assert build_video_key(classification, "vid-1") == expected


class TestStorageClient:
    """Tests for the boto3 wrapper."""

    def test_put_file_sends_single_put_object(
        self, storage_client: StorageClient, processed_file: Path
    ) -> None:
        storage_client.put_file("test-bucket", "landscape/x.mp4", processed_file, "video/mp4")

        storage_client.s3_client.put_object.assert_called_once()
        kwargs = storage_client.s3_client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "test-bucket"
        assert kwargs["Key"] == "landscape/x.mp4"
        assert kwargs["ContentType"] == "video/mp4"

    def test_put_file_missing_file_raises_oserror(self, storage_client: StorageClient) -> None:
        with pytest.raises(OSError):
            storage_client.put_file("test-bucket", "k.mp4", "/nonexistent/file.mp4", "video/mp4")

        storage_client.s3_client.put_object.assert_not_called()

    def test_presign_get_is_offline_and_scoped(self, storage_client: StorageClient) -> None:
        url = storage_client.presign_get("test-bucket", "portrait/abc.mp4", 600)

        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        assert parsed.path.endswith("/test-bucket/portrait/abc.mp4")
        assert query["X-Amz-Expires"] == ["600"]
        assert "X-Amz-Signature" in query

    @pytest.mark.parametrize("expires_in", [0, -5, 8 * 24 * 3600])
    def test_presign_get_rejects_bad_expiry(
        self, storage_client: StorageClient, expires_in: int
    ) -> None:
        with pytest.raises(ValueError):
            storage_client.presign_get("test-bucket", "k.mp4", expires_in)

    def test_client_never_retries(self, storage_client: StorageClient) -> None:
        assert storage_client.s3_client.meta.config.retries["max_attempts"] == 1


class TestStoragePlacer:
    """Tests for placing processed files in the bucket."""

    @pytest.mark.asyncio
    async def test_place_returns_reference(
        self, storage_client: StorageClient, processed_file: Path
    ) -> None:
        placer = StoragePlacer(storage_client, "test-bucket")

        ref = await placer.place(processed_file, Classification.PORTRAIT, "vid-9", "video/mp4")

        assert ref == StorageReference(bucket="test-bucket", key="portrait/vid-9.mp4")
        assert ref.serialize() == "test-bucket,portrait/vid-9.mp4"
        storage_client.s3_client.put_object.assert_called_once()

    @pytest.mark.asyncio
    async def test_place_defaults_to_client_bucket(
        self, storage_client: StorageClient, processed_file: Path
    ) -> None:
        placer = StoragePlacer(storage_client)

        ref = await placer.place(processed_file, Classification.OTHER, "vid-9", "video/mp4")

        assert ref.bucket == storage_client.bucket_name

    @pytest.mark.asyncio
    async def test_client_error_becomes_storage_failed(
        self, storage_client: StorageClient, processed_file: Path
    ) -> None:
        storage_client.s3_client.put_object = Mock(
            side_effect=ClientError(
                {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "PutObject"
            )
        )
        placer = StoragePlacer(storage_client, "test-bucket")

        with pytest.raises(StorageFailed) as exc_info:
            await placer.place(processed_file, Classification.LANDSCAPE, "vid-1", "video/mp4")

        assert exc_info.value.details["key"] == "landscape/vid-1.mp4"

    @pytest.mark.asyncio
    async def test_transport_error_becomes_storage_failed(
        self, storage_client: StorageClient, processed_file: Path
    ) -> None:
        storage_client.s3_client.put_object = Mock(
            side_effect=EndpointConnectionError(endpoint_url="http://minio:9000")
        )
        placer = StoragePlacer(storage_client, "test-bucket")

        with pytest.raises(StorageFailed):
            await placer.place(processed_file, Classification.LANDSCAPE, "vid-1", "video/mp4")


class TestLinkSigner:
    """Tests for presigned playback URLs."""

    @pytest.mark.asyncio
    async def test_sign_expires_in_ten_minutes(self, storage_client: StorageClient) -> None:
        signer = LinkSigner(storage_client, 600)
        ref = StorageReference(bucket="test-bucket", key="landscape/vid-1.mp4")

        before = datetime.now(UTC)
        signed = await signer.sign(ref)
        after = datetime.now(UTC)

        assert "X-Amz-Expires=600" in signed.url
        assert before + timedelta(seconds=600) <= signed.expires_at <= after + timedelta(seconds=600)

    @pytest.mark.asyncio
    async def test_two_signings_address_same_object(self, storage_client: StorageClient) -> None:
        signer = LinkSigner(storage_client, 600)
        ref = StorageReference(bucket="test-bucket", key="landscape/vid-1.mp4")

        first = await signer.sign(ref)
        second = await signer.sign(ref)

        assert urlparse(first.url).path == urlparse(second.url).path
        assert second.expires_at >= first.expires_at

    @pytest.mark.asyncio
    async def test_signing_failure_is_processing_failed(self, storage_client: StorageClient) -> None:
        storage_client.presign_get = Mock(
            side_effect=ClientError({"Error": {"Code": "500", "Message": "boom"}}, "GetObject")
        )
        signer = LinkSigner(storage_client, 600)

        with pytest.raises(ProcessingFailed):
            await signer.sign(StorageReference(bucket="b", key="k.mp4"))

    @pytest.mark.asyncio
    async def test_sign_video_does_not_mutate_record(self, storage_client: StorageClient) -> None:
        ref = StorageReference(bucket="test-bucket", key="portrait/vid-2.mp4")
        video = Video(user_id="u1", title="t", video_ref=ref)
        snapshot = video.model_dump()

        response = await LinkSigner(storage_client, 600).sign_video(video)

        assert response.video_url is not None
        assert "/test-bucket/portrait/vid-2.mp4" in response.video_url
        assert response.video_url_expires_at is not None
        assert video.model_dump() == snapshot
        assert video.video_ref == ref

    @pytest.mark.asyncio
    async def test_sign_video_without_reference(self, storage_client: StorageClient) -> None:
        storage_client.presign_get = Mock()
        video = Video(user_id="u1", title="draft")

        response = await LinkSigner(storage_client, 600).sign_video(video)

        assert response.video_url is None
        assert response.video_url_expires_at is None
        storage_client.presign_get.assert_not_called()
