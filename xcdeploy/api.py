"""Stable public API for building tooling on top of xcdeploy.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

import asyncio

from xcdeploy.core.config import Settings
from xcdeploy.core.errors import (
    BundleIdentifierNotFoundError,
    CommandTimeoutError,
    ConfigLoadError,
    ConfigValidationError,
    DeviceNotFoundError,
    IncompleteDeviceIdentityError,
    MissingIdentifierError,
    ProcessError,
    RunConfigError,
    SecurityViolationError,
    XcdeployError,
)
from xcdeploy.core.executor import CommandRunner
from xcdeploy.core.logstream import wait_for_background_tasks
from xcdeploy.core.model import DeviceRecord, Installation, RunConfig, ToolReply
from xcdeploy.core.service import XcodeService

__all__ = [
    "XcdeployError",
    "BundleIdentifierNotFoundError",
    "CommandTimeoutError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DeviceNotFoundError",
    "IncompleteDeviceIdentityError",
    "MissingIdentifierError",
    "ProcessError",
    "RunConfigError",
    "SecurityViolationError",
    "DeviceRecord",
    "Installation",
    "RunConfig",
    "Settings",
    "ToolReply",
    "Client",
]


class Client:
    """Blocking client for device discovery and deployment.

    Each call runs its own event loop, so a `Client` must not be used from
    inside a running loop; use `XcodeService` directly there. Caches live on
    the wrapped service and persist across calls. With `RunConfig.stream_logs`,
    `run_on_device` returns once the console stream has ended.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self._service = XcodeService(settings=settings, runner=runner)

    @property
    def runtime_warnings(self) -> tuple[str, ...]:
        return self._service.runtime_warnings

    def list_installations(self) -> list[Installation]:
        return asyncio.run(self._service.locator.list_installations())

    def list_devices(self, *, force_refresh: bool = False) -> list[DeviceRecord]:
        return asyncio.run(self._service.list_devices(force_refresh=force_refresh))

    def find_device(self, name_or_id: str) -> DeviceRecord:
        return asyncio.run(self._service.registry.find_device_info(name_or_id))

    def bundle_identifier(self, project_path: str, scheme: str) -> str:
        return asyncio.run(self._service.bundles.get_bundle_identifier(project_path, scheme))

    def run_on_device(self, config: RunConfig) -> ToolReply:
        return asyncio.run(self._run_and_follow(config))

    async def _run_and_follow(self, config: RunConfig) -> ToolReply:
        reply = await self._service.run_on_device(config)
        await wait_for_background_tasks()
        return reply
