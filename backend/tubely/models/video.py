"""
Video Pydantic models for Tubely.

This module defines the video metadata record, the typed storage reference
that points at an uploaded object, the geometry classification used to
build object keys, and the request/response shapes of the videos API.

The storage reference is a typed ``(bucket, key)`` value everywhere inside
the service. It is flattened to the single string ``"{bucket},{key}"`` only
when a record is written to or read from the metadata store.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tubely.exceptions import MalformedReferenceError


# =============================================================================
# CONSTANTS
# =============================================================================

REFERENCE_SEPARATOR = ","

VIDEO_CONTENT_TYPE = "video/mp4"

# Accepted thumbnail media types and the file extension each is saved with
THUMBNAIL_EXTENSIONS: dict[str, str] = {
    "image/jpeg": "jpeg",
    "image/png": "png",
}


# =============================================================================
# ENUMS
# =============================================================================


class Classification(str, Enum):
    """
    Orientation bucket derived from a video's encoded geometry.

    Only used as the prefix of the object key; never persisted on its own.
    """

    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


# =============================================================================
# VALUE TYPES
# =============================================================================


class StorageReference(BaseModel):
    """
    Location of an uploaded object: the bucket and the key inside it.

    Example:
        ```python
        ref = StorageReference(bucket="tubely-videos", key="landscape/abc.mp4")
        ref.serialize()  # "tubely-videos,landscape/abc.mp4"
        StorageReference.parse("tubely-videos,landscape/abc.mp4") == ref  # True
        ```
    """

    model_config = ConfigDict(frozen=True)

    bucket: str = Field(..., min_length=1, description="Object storage bucket name")
    key: str = Field(..., min_length=1, description="Object key inside the bucket")

    @field_validator("bucket", "key")
    @classmethod
    def reject_separator(cls, v: str) -> str:
        if REFERENCE_SEPARATOR in v:
            raise ValueError(f"must not contain '{REFERENCE_SEPARATOR}'")
        return v

    @classmethod
    def parse(cls, raw: str) -> "StorageReference":
        """
        Decode a persisted ``"{bucket},{key}"`` string.

        Args:
            raw: The stored reference string.

        Returns:
            StorageReference: The decoded reference.

        Raises:
            MalformedReferenceError: If the string does not split into exactly
                two non-empty components.
        """
        parts = raw.split(REFERENCE_SEPARATOR)
        if len(parts) != 2 or not all(parts):
            raise MalformedReferenceError(
                "Stored video reference is malformed", reference=raw
            )
        return cls(bucket=parts[0], key=parts[1])

    def serialize(self) -> str:
        return f"{self.bucket}{REFERENCE_SEPARATOR}{self.key}"


class SignedURL(BaseModel):
    """A time-limited playback URL. Never persisted."""

    url: str
    expires_at: datetime


class VideoGeometry(BaseModel):
    """Encoded dimensions of the first video stream, as reported by ffprobe."""

    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    display_aspect_ratio: str = ""


class ProbeStream(BaseModel):
    """One entry of ffprobe's ``streams`` array; unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    codec_type: str | None = None
    width: int | None = None
    height: int | None = None
    display_aspect_ratio: str | None = None


class ProbeOutput(BaseModel):
    """Top-level ffprobe ``-print_format json -show_streams`` document."""

    model_config = ConfigDict(extra="ignore")

    streams: list[ProbeStream] = Field(default_factory=list)


# =============================================================================
# RECORD
# =============================================================================


class Video(BaseModel):
    """
    Video metadata record.

    Records are created before any upload happens. The upload pipeline only
    ever changes ``video_ref`` (and the thumbnail flow only ``thumbnail_url``).

    Attributes:
        id: UUID string, stored as the MongoDB ``_id``
        user_id: Owner of the record
        title: Display title
        description: Free-form description
        thumbnail_url: Public URL of the thumbnail image, if any
        video_ref: Where the processed video lives in object storage, if uploaded
        created_at: Creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid4()), alias="_id")
    user_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)
    thumbnail_url: str | None = None
    video_ref: StorageReference | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def is_owned_by(self, user_id: str) -> bool:
        return self.user_id == user_id

    def touch(self) -> None:
        self.updated_at = datetime.now(UTC)


# =============================================================================
# API SHAPES
# =============================================================================


class VideoCreate(BaseModel):
    """Request body for creating a draft video record."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be blank")
        return v


class VideoResponse(BaseModel):
    """
    Video record as returned by the API.

    ``video_url`` is a freshly signed playback URL (never the stored
    reference) and ``video_url_expires_at`` is when that URL stops working.
    """

    id: str
    user_id: str
    title: str
    description: str
    thumbnail_url: str | None = None
    video_url: str | None = None
    video_url_expires_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "4f1c2a9e-4b57-4d0f-9d3e-0c6f7c2f1a11",
                "user_id": "user-123",
                "title": "Boots on the trail",
                "description": "",
                "thumbnail_url": "http://localhost:8091/assets/3q2-7w.png",
                "video_url": "https://s3.amazonaws.com/tubely-videos/landscape/4f1c.mp4?X-Amz-Expires=600",
                "video_url_expires_at": "2024-01-15T10:40:00Z",
                "created_at": "2024-01-15T10:30:00Z",
                "updated_at": "2024-01-15T10:30:00Z",
            }
        }
    )

    @classmethod
    def from_video(cls, video: Video, signed: SignedURL | None = None) -> "VideoResponse":
        data: dict[str, Any] = {
            "id": video.id,
            "user_id": video.user_id,
            "title": video.title,
            "description": video.description,
            "thumbnail_url": video.thumbnail_url,
            "created_at": video.created_at,
            "updated_at": video.updated_at,
        }
        if signed is not None:
            data["video_url"] = signed.url
            data["video_url_expires_at"] = signed.expires_at
        return cls(**data)
