"""Process execution through asyncio subprocesses."""

import asyncio
import logging
import os
import time
from typing import Dict, Optional

from taskengine.core.errors import (
    NotFoundError,
    OperationTimeoutError,
    PermissionDeniedError,
    UnavailableError,
)
from taskengine.platform.models import CommandResult

logger = logging.getLogger(__name__)


class LocalTerminal:
    """Runs shell commands and captures their output."""

    def __init__(self, kill_grace_seconds: float = 5.0):
        self.kill_grace_seconds = kill_grace_seconds

    async def run(
        self,
        command: str,
        cwd: str,
        timeout: Optional[float] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        if not os.path.isdir(cwd):
            raise NotFoundError(
                f"Working directory does not exist: {cwd}", component="terminal", operation="run"
            )

        process_env = os.environ.copy()
        if env:
            process_env.update(env)

        start_time = time.monotonic()
        try:
            process = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                env=process_env,
            )
        except PermissionError as e:
            raise PermissionDeniedError(
                f"Permission denied executing command: {command}", cause=e,
                component="terminal", operation="run",
            ) from e
        except OSError as e:
            raise UnavailableError(
                f"Shell not available: {e}", cause=e, component="terminal", operation="run"
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            try:
                process.terminate()
                await asyncio.wait_for(process.wait(), timeout=self.kill_grace_seconds)
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
            logger.warning(f"Command timed out after {timeout}s: {command}")
            raise OperationTimeoutError(
                f"Command timed out after {timeout} seconds",
                component="terminal",
                operation="run",
                command=command,
            )

        return CommandResult(
            command=command,
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace") if stdout else "",
            stderr=stderr.decode("utf-8", errors="replace") if stderr else "",
            duration=time.monotonic() - start_time,
            cwd=cwd,
        )
