"""
Fast-start remuxing with ffmpeg.

The MP4 ``moov`` atom is moved to the front of the file so playback can
begin before the whole object is downloaded. Streams are copied as-is;
nothing is re-encoded.
"""

import asyncio
import logging

from pathlib import Path

from tubely.config import Settings, get_settings
from tubely.exceptions import ProcessingFailed
from tubely.utils.process import run_process


logger = logging.getLogger(__name__)

OUTPUT_SUFFIX = ".processing"


class FastStartRemuxer:
    """Rewrites an MP4 container for progressive playback."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def build_command(self, input_path: Path, output_path: Path) -> list[str]:
        return [
            self.settings.ffmpeg_bin,
            "-nostdin",
            "-y",
            "-i",
            str(input_path),
            "-c",
            "copy",
            "-movflags",
            "faststart",
            "-f",
            "mp4",
            str(output_path),
        ]

    async def remux(self, input_path: Path) -> Path:
        """
        Remux ``input_path`` into ``<input_path>.processing``.

        The output is written next to the input, so it lives in the same
        temporary stage. On success the input file is deleted and the output
        is the only artifact left.

        Args:
            input_path: The staged upload.

        Returns:
            Path: The fast-start output file.

        Raises:
            ProcessingFailed: If ffmpeg cannot run, exits non-zero, times out,
                or leaves no (or an empty) output file.
        """
        output_path = input_path.with_name(input_path.name + OUTPUT_SUFFIX)
        cmd = self.build_command(input_path, output_path)

        try:
            result = await run_process(cmd, timeout=self.settings.remux_timeout_seconds)
        except OSError as e:
            raise ProcessingFailed("ffmpeg is not available", binary=cmd[0]) from e
        except asyncio.TimeoutError as e:
            raise ProcessingFailed("ffmpeg timed out while remuxing") from e

        if result.returncode != 0:
            logger.warning(
                "ffmpeg exited with status %d",
                result.returncode,
                extra={"stderr": result.stderr_tail},
            )
            raise ProcessingFailed("Could not process video for fast start", stderr=result.stderr_tail)

        if not output_path.is_file() or output_path.stat().st_size == 0:
            raise ProcessingFailed("ffmpeg produced no output")

        input_path.unlink(missing_ok=True)
        logger.info("Remuxed video for fast start", extra={"output": str(output_path)})
        return output_path
