"""
Presigned playback links for stored videos.

Each call produces a brand new URL valid for ``video_url_expiration_seconds``
(10 minutes by default) from the moment it was generated. URLs are never
cached or persisted.
"""

import asyncio
import logging

from datetime import UTC, datetime, timedelta

from botocore.exceptions import BotoCoreError, ClientError

from tubely.core.storage import StorageClient
from tubely.exceptions import ProcessingFailed
from tubely.models.video import SignedURL, StorageReference, Video, VideoResponse


logger = logging.getLogger(__name__)


class LinkSigner:
    """Expands storage references into time-limited GET URLs."""

    def __init__(self, storage: StorageClient, expires_in: int = 600) -> None:
        self.storage = storage
        self.expires_in = expires_in

    async def sign(self, reference: StorageReference) -> SignedURL:
        """
        Presign a GET URL for ``reference``.

        Raises:
            ProcessingFailed: If the storage client cannot sign the request.
        """
        generated_at = datetime.now(UTC)
        try:
            url = await asyncio.to_thread(
                self.storage.presign_get, reference.bucket, reference.key, self.expires_in
            )
        except (ClientError, BotoCoreError, ValueError) as e:
            raise ProcessingFailed(
                "Couldn't generate presigned URL",
                bucket=reference.bucket,
                key=reference.key,
            ) from e

        return SignedURL(url=url, expires_at=generated_at + timedelta(seconds=self.expires_in))

    async def sign_video(self, video: Video) -> VideoResponse:
        """
        Build the API view of ``video`` with a fresh playback URL.

        The record itself is not modified; records without an uploaded video
        get a null ``video_url``.
        """
        if video.video_ref is None:
            return VideoResponse.from_video(video)

        signed = await self.sign(video.video_ref)
        return VideoResponse.from_video(video, signed)
