"""
ffprobe-backed media prober.

Runs ``ffprobe -v error -print_format json -show_streams <file>`` and reads
the encoded geometry of the first video stream from its JSON output.
"""

import asyncio
import logging

from pathlib import Path

from pydantic import ValidationError

from tubely.config import Settings, get_settings
from tubely.exceptions import ProcessingFailed
from tubely.models.video import ProbeOutput, VideoGeometry
from tubely.utils.process import run_process


logger = logging.getLogger(__name__)


class MediaProber:
    """Reads stream geometry from a media file with ffprobe."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def build_command(self, path: Path) -> list[str]:
        return [
            self.settings.ffprobe_bin,
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_streams",
            str(path),
        ]

    async def probe(self, path: Path) -> VideoGeometry:
        """
        Probe ``path`` and return the first video stream's geometry.

        Raises:
            ProcessingFailed: If ffprobe cannot run, exits non-zero, times
                out, prints unparseable output, or reports no video stream
                with positive dimensions.
        """
        cmd = self.build_command(path)
        try:
            result = await run_process(cmd, timeout=self.settings.probe_timeout_seconds)
        except OSError as e:
            raise ProcessingFailed("ffprobe is not available", binary=cmd[0]) from e
        except asyncio.TimeoutError as e:
            raise ProcessingFailed("ffprobe timed out") from e

        if result.returncode != 0:
            logger.warning(
                "ffprobe exited with status %d",
                result.returncode,
                extra={"stderr": result.stderr_tail},
            )
            raise ProcessingFailed("Could not probe video", stderr=result.stderr_tail)

        return parse_probe_output(result.stdout)


def parse_probe_output(raw: bytes | str) -> VideoGeometry:
    """
    Extract the geometry of the first video stream from ffprobe JSON.

    Streams that declare a non-video ``codec_type`` (audio, subtitles, data)
    are skipped.

    Raises:
        ProcessingFailed: If the document is malformed or has no usable
            video stream.
    """
    try:
        output = ProbeOutput.model_validate_json(raw)
    except ValidationError as e:
        raise ProcessingFailed("Malformed ffprobe output") from e

    stream = next(
        (s for s in output.streams if s.codec_type in (None, "video")),
        None,
    )
    if stream is None:
        raise ProcessingFailed("No video stream found")

    try:
        return VideoGeometry(
            width=stream.width,
            height=stream.height,
            display_aspect_ratio=stream.display_aspect_ratio or "",
        )
    except ValidationError as e:
        raise ProcessingFailed(
            "Video stream has missing or invalid dimensions",
            width=stream.width,
            height=stream.height,
        ) from e
