"""
Tubely Metadata Store Test Suite

Covers:
- StorageReference parsing and serialization of the "bucket,key" form
- Document mapping in both directions
- MongoVideoStore behaviour against a mocked Motor collection
"""

from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest

from pydantic import ValidationError
from pymongo.errors import ServerSelectionTimeoutError

from tubely.exceptions import (
    MalformedReferenceError,
    MetadataUpdateFailed,
    ProcessingFailed,
    RecordNotFound,
    StorageFailed,
)
from tubely.models.video import StorageReference, Video
from tubely.services.metadata_store import MongoVideoStore, from_document, to_document


VIDEO_ID = "4f1c2a9e-4b57-4d0f-9d3e-0c6f7c2f1a11"


def make_document(**overrides: Any) -> dict[str, Any]:
    doc = {
        "_id": VIDEO_ID,
        "user_id": "user-1",
        "title": "Trail run",
        "description": "",
        "thumbnail_url": None,
        "video_url": f"tubely-videos,landscape/{VIDEO_ID}.mp4",
        "created_at": datetime(2024, 1, 15, 10, 30),
        "updated_at": datetime(2024, 1, 15, 10, 30),
    }
    doc.update(overrides)
    return doc


class AsyncCursor:
    """Async-iterable stand-in for a Motor cursor."""

    def __init__(self, docs: list[dict]) -> None:
        self.docs = docs
        self.sort = Mock(return_value=self)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for doc in self.docs:
            yield doc


# ==============================================================================
# StorageReference
# ==============================================================================


class TestStorageReference:
    """Tests for the persisted reference form."""

    def test_parse(self) -> None:
        ref = StorageReference.parse("tubely-videos,portrait/abc.mp4")

        assert ref.bucket == "tubely-videos"
        assert ref.key == "portrait/abc.mp4"
        assert ref.serialize() == "tubely-videos,portrait/abc.mp4"

    @pytest.mark.parametrize("raw", ["", "bucket", "bucket,", ",key", "a,b,c", ","])
    def test_malformed(self, raw: str) -> None:
        with pytest.raises(MalformedReferenceError):
            StorageReference.parse(raw)

    def test_malformed_is_processing_failure(self) -> None:
        with pytest.raises(ProcessingFailed) as exc_info:
            StorageReference.parse("no-separator")

        assert exc_info.value.status_code == 422

    def test_components_cannot_contain_separator(self) -> None:
        with pytest.raises(ValidationError):
            StorageReference(bucket="a,b", key="k.mp4")

    def test_frozen(self) -> None:
        ref = StorageReference(bucket="b", key="k.mp4")

        with pytest.raises(ValidationError):
            ref.key = "other.mp4"


# ==============================================================================
# Document mapping
# ==============================================================================


class TestDocumentMapping:
    """Tests for to_document / from_document."""

    def test_from_document(self) -> None:
        video = from_document(make_document())

        assert video.id == VIDEO_ID
        assert video.video_ref == StorageReference(
            bucket="tubely-videos", key=f"landscape/{VIDEO_ID}.mp4"
        )
        assert video.created_at.tzinfo is UTC

    def test_from_document_without_reference(self) -> None:
        assert from_document(make_document(video_url=None)).video_ref is None

    def test_from_document_malformed_reference(self) -> None:
        with pytest.raises(MalformedReferenceError):
            from_document(make_document(video_url="just-a-bucket"))

    def test_to_document_flattens_reference(self) -> None:
        video = Video(
            _id=VIDEO_ID,
            user_id="user-1",
            title="t",
            video_ref=StorageReference(bucket="b", key="other/x.mp4"),
        )

        doc = to_document(video)

        assert doc["_id"] == VIDEO_ID
        assert doc["video_url"] == "b,other/x.mp4"

    def test_to_document_without_reference(self) -> None:
        assert to_document(Video(user_id="u", title="t"))["video_url"] is None


# ==============================================================================
# MongoVideoStore
# ==============================================================================


class TestMongoVideoStore:
    """Tests for MongoVideoStore with a mocked collection."""

    @pytest.mark.asyncio
    async def test_get(self) -> None:
        collection = MagicMock()
        collection.find_one = AsyncMock(return_value=make_document())

        video = await MongoVideoStore(collection).get(VIDEO_ID)

        assert video.id == VIDEO_ID
        collection.find_one.assert_awaited_once_with({"_id": VIDEO_ID})

    @pytest.mark.asyncio
    async def test_get_missing(self) -> None:
        collection = MagicMock()
        collection.find_one = AsyncMock(return_value=None)

        with pytest.raises(RecordNotFound):
            await MongoVideoStore(collection).get(VIDEO_ID)

    @pytest.mark.asyncio
    async def test_get_database_error(self) -> None:
        collection = MagicMock()
        collection.find_one = AsyncMock(side_effect=ServerSelectionTimeoutError("no servers"))

        with pytest.raises(StorageFailed):
            await MongoVideoStore(collection).get(VIDEO_ID)

    @pytest.mark.asyncio
    async def test_update_sets_fields(self) -> None:
        collection = MagicMock()
        collection.update_one = AsyncMock(return_value=Mock(matched_count=1))
        video = from_document(make_document())
        previous = video.updated_at

        await MongoVideoStore(collection).update(video)

        filter_, update = collection.update_one.await_args.args
        assert filter_ == {"_id": VIDEO_ID}
        assert "_id" not in update["$set"]
        assert "created_at" not in update["$set"]
        assert update["$set"]["video_url"] == f"tubely-videos,landscape/{VIDEO_ID}.mp4"
        assert video.updated_at > previous

    @pytest.mark.asyncio
    async def test_update_missing_record(self) -> None:
        collection = MagicMock()
        collection.update_one = AsyncMock(return_value=Mock(matched_count=0))

        with pytest.raises(MetadataUpdateFailed):
            await MongoVideoStore(collection).update(from_document(make_document()))

    @pytest.mark.asyncio
    async def test_update_database_error(self) -> None:
        collection = MagicMock()
        collection.update_one = AsyncMock(side_effect=ServerSelectionTimeoutError("no servers"))

        with pytest.raises(MetadataUpdateFailed):
            await MongoVideoStore(collection).update(from_document(make_document()))

    @pytest.mark.asyncio
    async def test_create(self) -> None:
        collection = MagicMock()
        collection.insert_one = AsyncMock()
        video = Video(user_id="user-1", title="t")

        assert await MongoVideoStore(collection).create(video) is video
        assert collection.insert_one.await_args.args[0]["_id"] == video.id

    @pytest.mark.asyncio
    async def test_list_for_user(self) -> None:
        cursor = AsyncCursor([make_document(), make_document(_id="second", video_url=None)])
        collection = MagicMock()
        collection.find = Mock(return_value=cursor)

        videos = await MongoVideoStore(collection).list_for_user("user-1")

        assert [v.id for v in videos] == [VIDEO_ID, "second"]
        collection.find.assert_called_once_with({"user_id": "user-1"})
        cursor.sort.assert_called_once_with("created_at", -1)
