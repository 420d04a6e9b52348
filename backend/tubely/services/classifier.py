"""
Geometry classification of uploaded videos.

A video is ``landscape``, ``portrait`` or ``other``. The display aspect
ratio reported by the container wins when it is exactly ``16:9`` or
``9:16``; otherwise the encoded width and height are checked for
divisibility by 16 and 9.
"""

import logging

from pathlib import Path

from tubely.exceptions import ProcessingFailed
from tubely.models.video import Classification
from tubely.services.media_probe import MediaProber


logger = logging.getLogger(__name__)

LANDSCAPE_RATIO = "16:9"
PORTRAIT_RATIO = "9:16"


def classify_geometry(width: int, height: int, display_aspect_ratio: str) -> Classification:
    """
    Classify encoded dimensions.

    Args:
        width: Encoded width in pixels.
        height: Encoded height in pixels.
        display_aspect_ratio: Container-reported ratio such as ``"16:9"``, or
            an empty string when absent.

    Returns:
        Classification: The orientation bucket.

    Raises:
        ProcessingFailed: If either dimension is not positive.

    Example:
        >>> classify_geometry(1920, 1080, "")
        <Classification.LANDSCAPE: 'landscape'>
        >>> classify_geometry(1000, 999, "")
        <Classification.OTHER: 'other'>
    """
    if width <= 0 or height <= 0:
        raise ProcessingFailed("Invalid video dimensions", width=width, height=height)

    if display_aspect_ratio == LANDSCAPE_RATIO:
        return Classification.LANDSCAPE
    if display_aspect_ratio == PORTRAIT_RATIO:
        return Classification.PORTRAIT

    if width % 16 == 0 and height % 9 == 0:
        return Classification.LANDSCAPE
    if width % 9 == 0 and height % 16 == 0:
        return Classification.PORTRAIT
    return Classification.OTHER


class GeometryClassifier:
    """Probes a staged file and classifies its first video stream."""

    def __init__(self, prober: MediaProber) -> None:
        self.prober = prober

    async def classify(self, path: Path) -> Classification:
        """
        Raises:
            ProcessingFailed: If probing fails; never falls back to ``other``.
        """
        geometry = await self.prober.probe(path)
        classification = classify_geometry(
            geometry.width, geometry.height, geometry.display_aspect_ratio
        )
        logger.info(
            "Classified video as %s",
            classification.value,
            extra={
                "width": geometry.width,
                "height": geometry.height,
                "display_aspect_ratio": geometry.display_aspect_ratio,
            },
        )
        return classification
