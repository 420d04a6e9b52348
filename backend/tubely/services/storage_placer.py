"""
Placement of processed videos in object storage.

Objects are keyed ``{classification}/{video_id}.mp4`` in the configured
bucket. Uploading again for the same video and classification overwrites
the same object.
"""

import asyncio
import logging

from pathlib import Path

from botocore.exceptions import BotoCoreError, ClientError

from tubely.core.storage import StorageClient
from tubely.exceptions import StorageFailed
from tubely.models.video import Classification, StorageReference


logger = logging.getLogger(__name__)


def build_video_key(classification: Classification, video_id: str) -> str:
    """
    Example:
        >>> build_video_key(Classification.PORTRAIT, "4f1c2a9e")
        'portrait/4f1c2a9e.mp4'
    """
    return f"{Classification(classification).value}/{video_id}.mp4"


class StoragePlacer:
    """Uploads processed files and returns where they landed."""

    def __init__(self, storage: StorageClient, bucket: str | None = None) -> None:
        self.storage = storage
        self.bucket = bucket or storage.bucket_name

    async def place(
        self,
        file_path: Path,
        classification: Classification,
        video_id: str,
        content_type: str,
    ) -> StorageReference:
        """
        Upload ``file_path`` as a single object.

        Args:
            file_path: The processed file.
            classification: Orientation used as the key prefix.
            video_id: Record identifier used as the object name.
            content_type: Content-Type stored with the object.

        Returns:
            StorageReference: The bucket and key written.

        Raises:
            StorageFailed: If the object could not be written.
        """
        key = build_video_key(classification, video_id)

        try:
            await asyncio.to_thread(
                self.storage.put_file, self.bucket, key, file_path, content_type
            )
        except (ClientError, BotoCoreError, OSError) as e:
            raise StorageFailed(
                "Couldn't upload video to storage", bucket=self.bucket, key=key
            ) from e

        return StorageReference(bucket=self.bucket, key=key)
