"""Async subprocess runner for project test commands."""

import asyncio
import logging
import os
import shlex
import signal
import time
from pathlib import Path
from typing import Optional, Sequence

from specflow.domain.errors import ValidationError
from specflow.domain.models import ProcessResult

logger = logging.getLogger(__name__)

_READ_CHUNK = 4096


def split_command(command_line: str) -> tuple[str, list[str]]:
    """Splits a stored command line such as ``"npm test -- --ci"`` into program and args."""
    parts = shlex.split(command_line or "")
    if not parts:
        raise ValidationError("Test command is empty")
    return parts[0], parts[1:]


class ProcessRunner:
    """
    Runs a command in a working directory and classifies the outcome by exit code.

    Standard error is merged into standard output so the captured text keeps the
    order in which the process wrote it. Output content never affects the
    classification: exit status 0 succeeds, anything else fails.

    The command is started in its own session, so a timeout or cancellation
    signals the whole process group, including children it spawned itself.
    """

    def __init__(self, default_timeout: Optional[float] = None, kill_grace_seconds: float = 2.0):
        self.default_timeout = default_timeout
        self.kill_grace_seconds = kill_grace_seconds

    async def run(
        self,
        working_dir: str | Path,
        program: str,
        args: Sequence[str] = (),
        extra_args: Sequence[str] = (),
        timeout: Optional[float] = None,
    ) -> ProcessResult:
        argv = [program, *args, *extra_args]
        if timeout is None:
            timeout = self.default_timeout
        if timeout is not None and timeout <= 0:
            raise ValidationError(f"Timeout must be positive, got {timeout}")

        logger.info("Running %s in %s", shlex.join(argv), working_dir)
        start = time.monotonic()

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(working_dir),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                start_new_session=True,
            )
        except OSError as e:
            # Command not found, permission denied, missing working directory...
            logger.warning("Failed to start %s: %s", program, e)
            return ProcessResult(
                succeeded=False,
                error=str(e),
                output=str(e),
                duration=time.monotonic() - start,
            )

        chunks: list[bytes] = []

        async def _consume() -> int:
            while True:
                chunk = await process.stdout.read(_READ_CHUNK)
                if not chunk:
                    break
                chunks.append(chunk)
            return await process.wait()

        timed_out = False
        try:
            if timeout is not None:
                returncode = await asyncio.wait_for(_consume(), timeout=timeout)
            else:
                returncode = await _consume()
        except asyncio.TimeoutError:
            timed_out = True
            logger.warning("Process %s (pid %s) timed out after %ss, terminating", program, process.pid, timeout)
            returncode = await self._terminate(process)
        except asyncio.CancelledError:
            await self._terminate(process)
            raise

        output = b"".join(chunks).decode("utf-8", errors="replace")
        duration = time.monotonic() - start

        if timed_out:
            error = f"Timed out after {timeout:g}s"
        elif returncode != 0:
            error = f"Process exited with status {returncode}"
        else:
            error = None

        logger.info(
            "Process %s finished: returncode=%s timed_out=%s duration=%.2fs",
            program, returncode, timed_out, duration,
        )
        return ProcessResult(
            succeeded=not timed_out and returncode == 0,
            output=output,
            returncode=returncode,
            error=error,
            timed_out=timed_out,
            duration=duration,
        )

    async def _terminate(self, process: asyncio.subprocess.Process) -> Optional[int]:
        # The group outlives its leader when a wrapper (sh, npm) forked workers.
        self._signal_group(process, signal.SIGTERM)
        try:
            returncode = await asyncio.wait_for(process.wait(), timeout=self.kill_grace_seconds)
        except asyncio.TimeoutError:
            self._signal_group(process, signal.SIGKILL)
            return await process.wait()
        self._signal_group(process, signal.SIGKILL)
        return returncode

    @staticmethod
    def _signal_group(process: asyncio.subprocess.Process, sig: int) -> bool:
        try:
            os.killpg(process.pid, sig)
            return True
        except ProcessLookupError:
            return False
