"""
Per-request temporary staging for uploaded media.

Every upload gets its own freshly created directory. The incoming body is
streamed into a uniquely named file inside it, and any derived files (such
as the remuxed output) are written next to it. Leaving the ``async with``
block removes the directory and everything in it, whether the request
succeeded, failed or was cancelled.
"""

import asyncio
import logging
import secrets
import shutil
import tempfile

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiofiles

from fastapi import UploadFile

from tubely.exceptions import PayloadTooLarge
from tubely.utils.file_validator import format_file_size


logger = logging.getLogger(__name__)

STAGE_PREFIX = "tubely-upload-"


class TemporaryStage:
    """A private directory holding one request's intermediate files."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def new_path(self, suffix: str = "") -> Path:
        """Return an unused, uniquely named path inside the stage."""
        return self.directory / f"upload-{secrets.token_hex(8)}{suffix}"

    async def write_stream(
        self,
        upload: UploadFile,
        max_bytes: int,
        chunk_size: int = 1 << 20,
        suffix: str = "",
    ) -> Path:
        """
        Copy an upload's byte stream into a new file in the stage.

        Args:
            upload: Incoming multipart file.
            max_bytes: Largest body accepted; one byte more is rejected.
            chunk_size: Read size per iteration.
            suffix: File name suffix, e.g. ``".mp4"``.

        Returns:
            Path: The materialized file.

        Raises:
            PayloadTooLarge: If the stream exceeds ``max_bytes``.
        """
        path = self.new_path(suffix)
        written = 0

        async with aiofiles.open(path, "wb") as out:
            while chunk := await upload.read(chunk_size):
                written += len(chunk)
                if written > max_bytes:
                    raise PayloadTooLarge(
                        f"Upload exceeds maximum size of {format_file_size(max_bytes)}",
                        max_bytes=max_bytes,
                    )
                await out.write(chunk)

        logger.debug("Staged %d bytes at %s", written, path)
        return path


@asynccontextmanager
async def temporary_stage(parent: str | None = None) -> AsyncIterator[TemporaryStage]:
    """
    Create a fresh stage directory and remove it on exit.

    Args:
        parent: Directory to create the stage in; system temp dir if None.

    Yields:
        TemporaryStage: The stage for this request.
    """
    directory = Path(tempfile.mkdtemp(prefix=STAGE_PREFIX, dir=parent))
    try:
        yield TemporaryStage(directory)
    finally:
        await asyncio.to_thread(shutil.rmtree, directory, ignore_errors=True)
        if directory.exists():
            logger.error("Failed to remove temporary stage %s", directory)
