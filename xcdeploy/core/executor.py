"""Shell command execution with a denylist and per-call timeout."""

from __future__ import annotations

import asyncio
import logging
import os
import re
import signal
from collections.abc import Iterable
from typing import Protocol

from xcdeploy.core.errors import CommandTimeoutError, ProcessError, SecurityViolationError
from xcdeploy.core.model import CommandOutput

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 60.0

# Recursive root deletion, filesystem formatting, raw block-device writes.
_DENIED_PATTERNS = (
    r"rm\s+-rf\s+/",
    r"mkfs",
    r"dd\s+if",
)


class CommandRunner(Protocol):
    async def execute(
        self,
        command: str,
        working_dir: str | None = None,
        timeout_s: float | None = None,
    ) -> CommandOutput:
        """Run a shell command line and return its captured output."""


class CommandExecutor:
    def __init__(
        self,
        *,
        default_timeout_s: float = DEFAULT_TIMEOUT_S,
        denied_patterns: Iterable[str] = (),
    ) -> None:
        self.default_timeout_s = default_timeout_s
        self._denied = tuple(re.compile(p) for p in (*_DENIED_PATTERNS, *denied_patterns))

    def check_allowed(self, command: str) -> None:
        for pattern in self._denied:
            if pattern.search(command):
                raise SecurityViolationError(
                    f"Refusing to run command matching denied pattern '{pattern.pattern}': {command}"
                )

    async def execute(
        self,
        command: str,
        working_dir: str | None = None,
        timeout_s: float | None = None,
    ) -> CommandOutput:
        self.check_allowed(command)
        timeout = self.default_timeout_s if timeout_s is None else timeout_s
        LOGGER.info("Running command: %s (cwd=%s)", command, working_dir or "current directory")

        try:
            process = await asyncio.create_subprocess_shell(
                command,
                cwd=working_dir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as exc:
            raise ProcessError(command, -1, stderr=str(exc)) from exc

        try:
            stdout_b, stderr_b = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise CommandTimeoutError(f"Command timed out after {timeout:g}s: {command}") from exc
        finally:
            if process.returncode is None:
                _kill_process_group(process)
                await process.wait()

        stdout = stdout_b.decode("utf-8", errors="replace")
        stderr = stderr_b.decode("utf-8", errors="replace")
        if process.returncode != 0:
            LOGGER.warning("Command exited with %s: %s", process.returncode, command)
            raise ProcessError(command, process.returncode or -1, stdout=stdout, stderr=stderr)
        return CommandOutput(stdout=stdout, stderr=stderr)


def _kill_process_group(process: asyncio.subprocess.Process) -> None:
    # The shell leads its own session, so its children share its process group.
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
