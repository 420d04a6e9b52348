"""
Upload validation helpers for Tubely.

Declared media types are trusted as declared: the body is never sniffed.
A media type matches only when its ``type/subtype`` is exactly the one
expected, compared case-insensitively with parameters (``; charset=...``)
ignored.
"""

import re
import uuid

from tubely.exceptions import InvalidInput


# RFC 7231 token characters
_TOKEN = r"[!#$%&'*+.^_`|~0-9A-Za-z-]+"
_MEDIA_TYPE_RE = re.compile(rf"^({_TOKEN})/({_TOKEN})$")


# =============================================================================
# MEDIA TYPE VALIDATION
# =============================================================================


def parse_media_type(content_type: str | None) -> str:
    """
    Extract the bare ``type/subtype`` from a Content-Type header value.

    Args:
        content_type: Raw header value, e.g. ``"video/mp4; codecs=avc1"``.

    Returns:
        str: Lower-cased ``type/subtype``.

    Raises:
        InvalidInput: If the value is missing or not a syntactically valid
            media type.

    Example:
        >>> parse_media_type("Video/MP4; codecs=avc1")
        'video/mp4'
    """
    if not content_type:
        raise InvalidInput("Missing Content-Type")

    essence = content_type.split(";", 1)[0].strip()
    if not _MEDIA_TYPE_RE.match(essence):
        raise InvalidInput("Invalid Content-Type", content_type=content_type)

    return essence.lower()


def require_media_type(content_type: str | None, allowed: set[str] | frozenset[str]) -> str:
    """
    Parse ``content_type`` and require it to be one of ``allowed``.

    Returns:
        str: The matching media type.

    Raises:
        InvalidInput: If the type is malformed or not allowed.
    """
    media_type = parse_media_type(content_type)
    if media_type not in allowed:
        raise InvalidInput(
            f"Unsupported media type '{media_type}'. Allowed: {', '.join(sorted(allowed))}",
            content_type=media_type,
        )
    return media_type


# =============================================================================
# IDENTIFIER VALIDATION
# =============================================================================


def validate_video_id(raw: str) -> str:
    """
    Validate that ``raw`` is a UUID and return its canonical string form.

    Raises:
        InvalidInput: If ``raw`` is not a UUID.
    """
    try:
        return str(uuid.UUID(raw))
    except (ValueError, AttributeError, TypeError):
        raise InvalidInput("Invalid video ID", video_id=raw) from None


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def format_file_size(size_bytes: int) -> str:
    """
    Render a byte count for humans.

    Example:
        >>> format_file_size(1 << 30)
        '1.0 GB'
    """
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


__all__ = [
    "parse_media_type",
    "require_media_type",
    "validate_video_id",
    "format_file_size",
]
