"""
Utilities Package for the Tubely backend.

Modules:
--------
file_validator:
    Declared media type parsing and allow-listing, video ID validation
    and human-readable sizes.

logger:
    Structured logging configuration:
    - JSONFormatter for structured log output
    - StandardFormatter for human-readable development logs
    - setup_logging for application-wide configuration
    - add_log_context for per-upload context fields
"""

from tubely.utils.file_validator import (
    format_file_size,
    parse_media_type,
    require_media_type,
    validate_video_id,
)
from tubely.utils.logger import (
    ContextLoggerAdapter,
    JSONFormatter,
    StandardFormatter,
    add_log_context,
    setup_logging,
)


__all__ = [
    "format_file_size",
    "parse_media_type",
    "require_media_type",
    "validate_video_id",
    "ContextLoggerAdapter",
    "JSONFormatter",
    "StandardFormatter",
    "add_log_context",
    "setup_logging",
]
