"""
Async subprocess execution for the external media toolchain.

The request that launched a child process suspends until the child exits.
Children read from an empty stdin, never the server's own.
If the wait times out or the awaiting task is cancelled, the child is
killed and reaped before the exception propagates.
"""

import asyncio
import logging

from dataclasses import dataclass


logger = logging.getLogger(__name__)

# Upper bound on stderr kept in error messages and logs
STDERR_TAIL_CHARS = 500


@dataclass(frozen=True)
class ProcessResult:
    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def stderr_tail(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")[-STDERR_TAIL_CHARS:].strip()


async def run_process(cmd: list[str], timeout: float) -> ProcessResult:
    """
    Run ``cmd`` to completion and capture its output.

    Args:
        cmd: Executable followed by its arguments; no shell is involved.
        timeout: Seconds to wait before the child is killed.

    Returns:
        ProcessResult: Exit status and captured output.

    Raises:
        FileNotFoundError: If the executable does not exist.
        asyncio.TimeoutError: If the child ran longer than ``timeout``.
        asyncio.CancelledError: If the awaiting task was cancelled.
    """
    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except (asyncio.TimeoutError, asyncio.CancelledError):
        if process.returncode is None:
            process.kill()
            await process.wait()
        logger.warning("Killed %s (pid %s) before it finished", cmd[0], process.pid)
        raise

    return ProcessResult(returncode=process.returncode, stdout=stdout, stderr=stderr)
