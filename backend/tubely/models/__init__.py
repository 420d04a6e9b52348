"""
Models Package for Tubely.

Pydantic models for video metadata records, storage references, signed
playback links, probe output and API request/response bodies.

Example Usage:
    ```python
    from tubely.models import Classification, StorageReference, Video

    video = Video(user_id="user-123", title="Trail run")
    video.video_ref = StorageReference(bucket="tubely-videos", key="landscape/x.mp4")
    ```
"""

from tubely.models.video import (
    REFERENCE_SEPARATOR,
    THUMBNAIL_EXTENSIONS,
    VIDEO_CONTENT_TYPE,
    Classification,
    ProbeOutput,
    ProbeStream,
    SignedURL,
    StorageReference,
    Video,
    VideoCreate,
    VideoGeometry,
    VideoResponse,
)


__all__ = [
    "REFERENCE_SEPARATOR",
    "THUMBNAIL_EXTENSIONS",
    "VIDEO_CONTENT_TYPE",
    "Classification",
    "ProbeOutput",
    "ProbeStream",
    "SignedURL",
    "StorageReference",
    "Video",
    "VideoCreate",
    "VideoGeometry",
    "VideoResponse",
]
