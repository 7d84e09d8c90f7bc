"""Best-effort device console streaming."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from xcdeploy.core.commands import devicectl_console_command
from xcdeploy.core.errors import CommandTimeoutError, XcdeployError
from xcdeploy.core.executor import CommandRunner
from xcdeploy.core.model import Installation
from xcdeploy.core.tool_paths import ToolPathResolver

LOGGER = logging.getLogger(__name__)

DEFAULT_LOG_STREAM_TIMEOUT_S = 300.0

_BACKGROUND_TASKS: set[asyncio.Task[Any]] = set()


def _log_task_failure(task: asyncio.Task[Any]) -> None:
    _BACKGROUND_TASKS.discard(task)
    if task.cancelled():
        LOGGER.debug("Background task %s cancelled", task.get_name())
        return
    exc = task.exception()
    if exc is not None:
        LOGGER.warning("Background task %s failed: %s", task.get_name(), exc)


def spawn_detached(coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> asyncio.Task[Any]:
    """Schedule `coro` on the running loop without awaiting it.

    The task is kept referenced until it finishes; its failure is only logged.
    """
    task = asyncio.get_running_loop().create_task(coro, name=name)
    _BACKGROUND_TASKS.add(task)
    task.add_done_callback(_log_task_failure)
    return task


async def wait_for_background_tasks() -> None:
    """Wait until every detached task on the running loop has finished.

    Blocking entry points call this before their event loop closes, so a
    console stream runs to its own timeout instead of being torn down.
    """
    loop = asyncio.get_running_loop()
    current = asyncio.current_task()
    pending = [t for t in _BACKGROUND_TASKS if t is not current and t.get_loop() is loop]
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)


class LogStreamer:
    def __init__(
        self,
        runner: CommandRunner,
        tool_paths: ToolPathResolver,
        *,
        timeout_s: float = DEFAULT_LOG_STREAM_TIMEOUT_S,
    ) -> None:
        self._runner = runner
        self._tool_paths = tool_paths
        self.timeout_s = timeout_s

    async def stream_logs(
        self,
        secondary_id: str,
        bundle_id: str,
        installation: Installation | None = None,
        timeout_s: float | None = None,
    ) -> None:
        timeout = self.timeout_s if timeout_s is None else timeout_s
        try:
            devicectl = await self._tool_paths.resolve(installation)
            command = devicectl_console_command(devicectl, secondary_id, bundle_id)
            output = await self._runner.execute(command, timeout_s=timeout)
            LOGGER.info("Console stream for %s on %s ended:\n%s", bundle_id, secondary_id, output.stdout)
        except CommandTimeoutError:
            LOGGER.info("Console stream for %s on %s reached its %gs limit", bundle_id, secondary_id, timeout)
        except (XcdeployError, OSError) as exc:
            LOGGER.warning("Console stream for %s on %s failed: %s", bundle_id, secondary_id, exc)
