"""
Tubely Upload Orchestration Service

This module coordinates the video ingestion pipeline for an existing video
record:

1. Load the record and confirm the caller owns it
2. Require the declared media type to be exactly ``video/mp4``
3. Stream the body into a private temporary stage (bounded at 1 GiB)
4. Probe and classify the encoded geometry (landscape / portrait / other)
5. Remux for fast-start playback
6. Upload the remuxed file to ``{classification}/{video_id}.mp4``
7. Store ``"{bucket},{key}"`` on the record
8. Return the record with a freshly signed 10-minute playback URL

Nothing is retried. Client errors (bad type, not owner, unknown record) are
detected before anything is written. A processing failure means no object
is written and the record is unchanged. If the object is written but the
record update fails, the object is left orphaned and reported as such.

The module also handles thumbnail images, which are written to the local
assets directory and served statically.
"""

import logging
import secrets

from pathlib import Path

import aiofiles

from fastapi import UploadFile

from tubely.config import Settings, get_settings
from tubely.exceptions import (
    InvalidInput,
    MetadataUpdateFailed,
    OrphanedObjectError,
    PayloadTooLarge,
    StorageFailed,
    Unauthorized,
)
from tubely.models.video import (
    THUMBNAIL_EXTENSIONS,
    VIDEO_CONTENT_TYPE,
    Video,
    VideoCreate,
    VideoResponse,
)
from tubely.services.classifier import GeometryClassifier
from tubely.services.link_signer import LinkSigner
from tubely.services.metadata_store import VideoStore
from tubely.services.remuxer import FastStartRemuxer
from tubely.services.storage_placer import StoragePlacer
from tubely.services.temp_stage import temporary_stage
from tubely.utils.file_validator import format_file_size, require_media_type
from tubely.utils.logger import add_log_context


logger = logging.getLogger(__name__)

THUMBNAIL_TOKEN_BYTES = 32


class VideoUploadService:
    """
    Orchestrates uploads and reads of video records.

    Attributes:
        store: Metadata store holding video records
        classifier: Probes staged files and classifies their geometry
        remuxer: Rewrites staged files for fast-start playback
        placer: Uploads processed files to object storage
        signer: Expands storage references into playback URLs
        settings: Application settings

    Example:
        ```python
        service = VideoUploadService(store, classifier, remuxer, placer, signer)
        response = await service.upload_video(user_id, video_id, upload_file)
        print(response.video_url)
        ```
    """

    def __init__(
        self,
        store: VideoStore,
        classifier: GeometryClassifier,
        remuxer: FastStartRemuxer,
        placer: StoragePlacer,
        signer: LinkSigner,
        settings: Settings | None = None,
    ) -> None:
        self.store = store
        self.classifier = classifier
        self.remuxer = remuxer
        self.placer = placer
        self.signer = signer
        self.settings = settings or get_settings()

    # =========================================================================
    # Record access
    # =========================================================================

    async def _get_owned(self, user_id: str, video_id: str) -> Video:
        video = await self.store.get(video_id)
        if not video.is_owned_by(user_id):
            logger.warning(
                "User attempted to access a video they do not own",
                extra={"user_id": user_id, "video_id": video_id},
            )
            raise Unauthorized("Not authorized to modify this video", video_id=video_id)
        return video

    async def create_video(self, user_id: str, body: VideoCreate) -> VideoResponse:
        video = Video(user_id=user_id, title=body.title, description=body.description)
        await self.store.create(video)
        logger.info("Created video record", extra={"user_id": user_id, "video_id": video.id})
        return VideoResponse.from_video(video)

    async def get_video(self, user_id: str, video_id: str) -> VideoResponse:
        video = await self._get_owned(user_id, video_id)
        return await self.signer.sign_video(video)

    async def list_videos(self, user_id: str) -> list[VideoResponse]:
        videos = await self.store.list_for_user(user_id)
        return [await self.signer.sign_video(video) for video in videos]

    # =========================================================================
    # Video upload
    # =========================================================================

    async def upload_video(self, user_id: str, video_id: str, upload: UploadFile) -> VideoResponse:
        """
        Run the ingestion pipeline for one upload.

        Args:
            user_id: Authenticated caller.
            video_id: Target record.
            upload: The multipart ``video`` part.

        Returns:
            VideoResponse: The updated record with a freshly signed URL.

        Raises:
            RecordNotFound: If the record does not exist.
            Unauthorized: If the caller does not own the record.
            InvalidInput: If the declared media type is not ``video/mp4``.
            PayloadTooLarge: If the body exceeds ``max_upload_size_bytes``.
            ProcessingFailed: If probing or remuxing fails.
            StorageFailed: If the object could not be written.
            OrphanedObjectError: If the object was written but the record
                could not be updated.
        """
        log = add_log_context(logger, user_id=user_id, video_id=video_id)

        video = await self._get_owned(user_id, video_id)
        require_media_type(upload.content_type, {VIDEO_CONTENT_TYPE})

        log.info("Uploading video", extra={"upload_filename": upload.filename})

        async with temporary_stage(self.settings.upload_tmp_dir) as stage:
            staged = await stage.write_stream(
                upload,
                max_bytes=self.settings.max_upload_size_bytes,
                chunk_size=self.settings.upload_chunk_size,
                suffix=".mp4",
            )
            classification = await self.classifier.classify(staged)
            processed = await self.remuxer.remux(staged)
            reference = await self.placer.place(
                processed, classification, video_id, VIDEO_CONTENT_TYPE
            )

        updated = video.model_copy(update={"video_ref": reference})
        try:
            await self.store.update(updated)
        except MetadataUpdateFailed as e:
            log.error(
                "Video object written but record update failed",
                extra={"bucket": reference.bucket, "key": reference.key},
            )
            raise OrphanedObjectError(
                "Video was stored but the record could not be updated",
                bucket=reference.bucket,
                key=reference.key,
            ) from e

        log.info(
            "Video upload complete",
            extra={"bucket": reference.bucket, "key": reference.key},
        )
        return await self.signer.sign_video(updated)

    # =========================================================================
    # Thumbnail upload
    # =========================================================================

    async def upload_thumbnail(
        self, user_id: str, video_id: str, upload: UploadFile
    ) -> VideoResponse:
        """
        Save a JPEG or PNG thumbnail and point the record at it.

        The image is written to ``assets_root`` under a random URL-safe name
        and exposed at ``{public_base_url}/assets/{name}``.

        Raises:
            RecordNotFound: If the record does not exist.
            Unauthorized: If the caller does not own the record.
            InvalidInput: If the type is not ``image/jpeg`` or ``image/png``.
            PayloadTooLarge: If the image exceeds ``max_thumbnail_size_bytes``.
            StorageFailed: If the image could not be saved or the record
                could not be updated.
        """
        log = add_log_context(logger, user_id=user_id, video_id=video_id)

        video = await self._get_owned(user_id, video_id)
        media_type = require_media_type(upload.content_type, set(THUMBNAIL_EXTENSIONS))

        limit = self.settings.max_thumbnail_size_bytes
        data = await upload.read(limit + 1)
        if len(data) > limit:
            raise PayloadTooLarge(
                f"Thumbnail exceeds maximum size of {format_file_size(limit)}",
                max_bytes=limit,
            )
        if not data:
            raise InvalidInput("Thumbnail is empty")

        filename = f"{secrets.token_urlsafe(THUMBNAIL_TOKEN_BYTES)}.{THUMBNAIL_EXTENSIONS[media_type]}"
        assets_root = Path(self.settings.assets_root)
        try:
            assets_root.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(assets_root / filename, "wb") as out:
                await out.write(data)
        except OSError as e:
            log.exception("Failed to write thumbnail", extra={"thumbnail_file": filename})
            raise StorageFailed("Couldn't save thumbnail") from e

        thumbnail_url = f"{self.settings.public_base_url}/assets/{filename}"
        updated = video.model_copy(update={"thumbnail_url": thumbnail_url})
        await self.store.update(updated)

        log.info("Thumbnail saved", extra={"thumbnail_url": thumbnail_url})
        return await self.signer.sign_video(updated)
