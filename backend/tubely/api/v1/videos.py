"""
FastAPI Videos Router for Tubely

Endpoints (all require a Bearer token):
- POST /videos - Create a draft video record owned by the caller
- GET /videos - List the caller's videos, newest first
- GET /videos/{video_id} - Fetch one of the caller's videos
- POST /videos/{video_id}/video - Upload the video file (multipart field ``video``)
- POST /videos/{video_id}/thumbnail - Upload a thumbnail (multipart field ``thumbnail``)

Every response that includes a video carries a freshly signed playback URL
in ``video_url`` that expires 10 minutes after the request.

Errors are raised as ``TubelyError`` subclasses and rendered by the
application-level exception handler.
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile, status
from pydantic import BaseModel

from tubely.config import Settings, get_settings
from tubely.core.auth import get_current_user_id
from tubely.core.database import get_db_client
from tubely.core.storage import StorageClient, get_storage_client
from tubely.exceptions import InvalidInput
from tubely.models.video import VideoCreate, VideoResponse
from tubely.services.classifier import GeometryClassifier
from tubely.services.link_signer import LinkSigner
from tubely.services.media_probe import MediaProber
from tubely.services.metadata_store import MongoVideoStore, VideoStore
from tubely.services.remuxer import FastStartRemuxer
from tubely.services.storage_placer import StoragePlacer
from tubely.services.upload_service import VideoUploadService
from tubely.utils.file_validator import validate_video_id


logger = logging.getLogger(__name__)

router = APIRouter()


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: dict | None = None


ERROR_RESPONSES: dict[int | str, dict] = {
    400: {"model": ErrorResponse, "description": "Invalid ID, content type or form"},
    401: {"model": ErrorResponse, "description": "Missing/invalid token or not the owner"},
    404: {"model": ErrorResponse, "description": "Video not found"},
}


# ============================================================================
# Dependency Injection Functions
# ============================================================================


def get_video_store() -> VideoStore:
    return MongoVideoStore(get_db_client().get_videos_collection())


def get_storage() -> StorageClient:
    return get_storage_client()


def get_upload_service(
    store: VideoStore = Depends(get_video_store),
    storage: StorageClient = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> VideoUploadService:
    """
    Assemble the upload pipeline for one request.

    Returns:
        VideoUploadService: Service wired to MongoDB, S3 and ffmpeg/ffprobe.
    """
    return VideoUploadService(
        store=store,
        classifier=GeometryClassifier(MediaProber(settings)),
        remuxer=FastStartRemuxer(settings),
        placer=StoragePlacer(storage, settings.s3_bucket_name),
        signer=LinkSigner(storage, settings.video_url_expiration_seconds),
        settings=settings,
    )


# ============================================================================
# Record Endpoints
# ============================================================================


@router.post(
    "",
    response_model=VideoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create video",
    responses={401: ERROR_RESPONSES[401]},
)
async def create_video(
    body: VideoCreate,
    user_id: str = Depends(get_current_user_id),
    service: VideoUploadService = Depends(get_upload_service),
) -> VideoResponse:
    """Create a draft video record with no uploaded media yet."""
    return await service.create_video(user_id, body)


@router.get(
    "",
    response_model=list[VideoResponse],
    summary="List videos",
    responses={401: ERROR_RESPONSES[401]},
)
async def list_videos(
    user_id: str = Depends(get_current_user_id),
    service: VideoUploadService = Depends(get_upload_service),
) -> list[VideoResponse]:
    return await service.list_videos(user_id)


@router.get(
    "/{video_id}",
    response_model=VideoResponse,
    summary="Get video",
    responses=ERROR_RESPONSES,
)
async def get_video(
    video_id: str,
    user_id: str = Depends(get_current_user_id),
    service: VideoUploadService = Depends(get_upload_service),
) -> VideoResponse:
    return await service.get_video(user_id, validate_video_id(video_id))


# ============================================================================
# Upload Endpoints
# ============================================================================


@router.post(
    "/{video_id}/video",
    response_model=VideoResponse,
    summary="Upload video file",
    description=(
        "Upload an MP4 (``video/mp4`` only, max 1 GiB). The file is classified by "
        "orientation, remuxed for fast start and stored under "
        "``{classification}/{video_id}.mp4``."
    ),
    responses={
        **ERROR_RESPONSES,
        413: {"model": ErrorResponse, "description": "Upload too large"},
        422: {"model": ErrorResponse, "description": "Video could not be processed"},
        502: {"model": ErrorResponse, "description": "Storage failure"},
    },
)
async def upload_video(
    video_id: str,
    video: UploadFile | None = File(None, description="MP4 video file"),
    user_id: str = Depends(get_current_user_id),
    service: VideoUploadService = Depends(get_upload_service),
) -> VideoResponse:
    video_id = validate_video_id(video_id)
    if video is None:
        raise InvalidInput("Unable to parse form file 'video'")

    return await service.upload_video(user_id, video_id, video)


@router.post(
    "/{video_id}/thumbnail",
    response_model=VideoResponse,
    summary="Upload thumbnail",
    description="Upload a JPEG or PNG thumbnail (max 10 MiB).",
    responses={
        **ERROR_RESPONSES,
        413: {"model": ErrorResponse, "description": "Thumbnail too large"},
        502: {"model": ErrorResponse, "description": "Storage failure"},
    },
)
async def upload_thumbnail(
    video_id: str,
    thumbnail: UploadFile | None = File(None, description="JPEG or PNG image"),
    user_id: str = Depends(get_current_user_id),
    service: VideoUploadService = Depends(get_upload_service),
) -> VideoResponse:
    video_id = validate_video_id(video_id)
    if thumbnail is None:
        raise InvalidInput("Unable to parse form file 'thumbnail'")

    return await service.upload_thumbnail(user_id, video_id, thumbnail)
