"""
Tubely Backend Application Package

This package contains the Tubely FastAPI application for video ingestion and
delivery. The platform provides:

- Owner-checked video uploads tied to pre-existing video records
- Orientation classification (landscape, portrait, other) via ffprobe
- Fast-start remuxing via ffmpeg for progressive playback
- S3/MinIO placement under classification-derived keys
- Short-lived presigned playback links generated on every read
- Thumbnail uploads served from local assets storage

Package Structure:
- api/: REST API endpoints organized by version (v1)
- core/: Core infrastructure (database, storage, auth)
- middleware/: ASGI middleware (request body size guard)
- models/: Pydantic data models for video records and references
- services/: The ingestion pipeline and its collaborators
- utils/: Logging and upload validation helpers
"""

__version__ = "1.0.0"
__app_name__ = "tubely"
