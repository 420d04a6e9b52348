"""
Video metadata store backed by MongoDB.

Documents in the ``videos`` collection look like::

    {
        "_id": "4f1c2a9e-...",
        "user_id": "user-123",
        "title": "...",
        "description": "...",
        "thumbnail_url": null,
        "video_url": "tubely-videos,landscape/4f1c2a9e-....mp4",
        "created_at": ISODate(...),
        "updated_at": ISODate(...)
    }

``video_url`` is the only place the storage reference exists as a flat
string; it is decoded into a ``StorageReference`` as soon as a document is
read and encoded again only when a record is written.
"""

import logging

from abc import ABC, abstractmethod
from datetime import UTC
from typing import Any

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from tubely.exceptions import MetadataUpdateFailed, RecordNotFound, StorageFailed
from tubely.models.video import StorageReference, Video


logger = logging.getLogger(__name__)


def to_document(video: Video) -> dict[str, Any]:
    return {
        "_id": video.id,
        "user_id": video.user_id,
        "title": video.title,
        "description": video.description,
        "thumbnail_url": video.thumbnail_url,
        "video_url": video.video_ref.serialize() if video.video_ref else None,
        "created_at": video.created_at,
        "updated_at": video.updated_at,
    }


def from_document(doc: dict[str, Any]) -> Video:
    """
    Build a Video from a stored document.

    Raises:
        MalformedReferenceError: If ``video_url`` is present but malformed.
    """
    raw_ref = doc.get("video_url")
    video = Video(
        _id=str(doc["_id"]),
        user_id=doc["user_id"],
        title=doc["title"],
        description=doc.get("description") or "",
        thumbnail_url=doc.get("thumbnail_url"),
        video_ref=StorageReference.parse(raw_ref) if raw_ref else None,
        created_at=doc["created_at"],
        updated_at=doc["updated_at"],
    )
    # Mongo hands back naive datetimes unless the client is tz_aware
    for field in ("created_at", "updated_at"):
        value = getattr(video, field)
        if value.tzinfo is None:
            setattr(video, field, value.replace(tzinfo=UTC))
    return video


class VideoStore(ABC):
    """Persistence interface for video records."""

    @abstractmethod
    async def get(self, video_id: str) -> Video:
        """Raises RecordNotFound if no record has ``video_id``."""

    @abstractmethod
    async def update(self, video: Video) -> None:
        """Raises MetadataUpdateFailed if the record could not be written."""

    @abstractmethod
    async def create(self, video: Video) -> Video: ...

    @abstractmethod
    async def list_for_user(self, user_id: str) -> list[Video]:
        """Return the user's records, newest first."""


class MongoVideoStore(VideoStore):
    """VideoStore over a Motor collection."""

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self.collection = collection

    async def get(self, video_id: str) -> Video:
        try:
            doc = await self.collection.find_one({"_id": video_id})
        except PyMongoError as e:
            logger.exception("Failed to read video record", extra={"video_id": video_id})
            raise StorageFailed("Couldn't read video record", video_id=video_id) from e

        if doc is None:
            raise RecordNotFound("Couldn't find video", video_id=video_id)
        return from_document(doc)

    async def update(self, video: Video) -> None:
        video.touch()
        doc = to_document(video)
        del doc["_id"]
        del doc["created_at"]

        try:
            result = await self.collection.update_one({"_id": video.id}, {"$set": doc})
        except PyMongoError as e:
            raise MetadataUpdateFailed("Couldn't update video", video_id=video.id) from e

        if result.matched_count == 0:
            raise MetadataUpdateFailed("Video record no longer exists", video_id=video.id)

    async def create(self, video: Video) -> Video:
        try:
            await self.collection.insert_one(to_document(video))
        except PyMongoError as e:
            logger.exception("Failed to create video record", extra={"video_id": video.id})
            raise StorageFailed("Couldn't create video", video_id=video.id) from e
        return video

    async def list_for_user(self, user_id: str) -> list[Video]:
        try:
            cursor = self.collection.find({"user_id": user_id}).sort("created_at", DESCENDING)
            return [from_document(doc) async for doc in cursor]
        except PyMongoError as e:
            logger.exception("Failed to list videos", extra={"user_id": user_id})
            raise StorageFailed("Couldn't retrieve videos") from e
