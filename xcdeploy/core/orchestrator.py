"""Build, install, launch and log-stream an app on a physical device."""

from __future__ import annotations

import logging
import re
from pathlib import PurePosixPath

from xcdeploy.core.bundle import BundleIdentifierResolver
from xcdeploy.core.commands import (
    build_and_install_command,
    devicectl_install_command,
    devicectl_launch_command,
    show_build_settings_command,
)
from xcdeploy.core.errors import CommandError, IncompleteDeviceIdentityError, ProcessError, XcdeployError
from xcdeploy.core.executor import CommandRunner
from xcdeploy.core.installations import InstallationLocator
from xcdeploy.core.logstream import LogStreamer, spawn_detached
from xcdeploy.core.model import CommandOutput, Installation, RunConfig, ToolReply
from xcdeploy.core.registry import DeviceRegistry, format_device_listing
from xcdeploy.core.tool_paths import ToolPathResolver

LOGGER = logging.getLogger(__name__)

DEFAULT_BUILD_TIMEOUT_S = 1800.0
NOT_INSTALLED_MARKER = "is not installed"

_BUILD_DIR_RE = re.compile(r"CONFIGURATION_BUILD_DIR = (.*)")


def _is_not_installed(exc: ProcessError) -> bool:
    return NOT_INSTALLED_MARKER in exc.stdout or NOT_INSTALLED_MARKER in exc.stderr


class DeploymentOrchestrator:
    def __init__(
        self,
        runner: CommandRunner,
        locator: InstallationLocator,
        tool_paths: ToolPathResolver,
        registry: DeviceRegistry,
        bundles: BundleIdentifierResolver,
        log_streamer: LogStreamer,
        *,
        build_timeout_s: float = DEFAULT_BUILD_TIMEOUT_S,
    ) -> None:
        self._runner = runner
        self._locator = locator
        self._tool_paths = tool_paths
        self._registry = registry
        self._bundles = bundles
        self._log_streamer = log_streamer
        self.build_timeout_s = build_timeout_s

    async def run_on_device(self, config: RunConfig) -> ToolReply:
        try:
            return ToolReply(text=await self._run(config))
        except XcdeployError as exc:
            LOGGER.error("Run on device failed: %s", exc)
            return ToolReply(text=f"Failed to run app on device:\n{exc}", is_error=True)

    async def _run(self, config: RunConfig) -> str:
        if config.list_devices:
            return format_device_listing(await self._registry.get_all_devices(force_refresh=True))

        installation = await self._select_installation(config.xcode_path)
        LOGGER.info("Using Xcode at %s (%s)", installation.path, installation.version)

        device = await self._registry.find_device_info(config.device)
        if not device.primary_id:
            raise IncompleteDeviceIdentityError(
                f"Device '{device.name}' has no Xcode device identifier (UDID). "
                "Check that it is connected and visible to xctrace."
            )
        if not device.secondary_id:
            raise IncompleteDeviceIdentityError(
                f"Device '{device.name}' has no devicectl (CoreDevice) identifier. "
                "Check that it is connected and paired."
            )
        LOGGER.info("Resolved device %s: udid=%s coredevice=%s", device.name, device.primary_id, device.secondary_id)

        if config.direct_bundle_id:
            bundle_id = config.direct_bundle_id
        else:
            bundle_id = await self._bundles.get_bundle_identifier(config.project_path, config.scheme)

        devicectl = await self._tool_paths.resolve(installation)

        app_path: str | None = None
        if config.builds:
            app_path = await self._estimate_app_path(config)
            await self._runner.execute(
                build_and_install_command(config.project_path, config.scheme, device.primary_id, config.configuration),
                timeout_s=self.build_timeout_s,
            )
            LOGGER.info("Built and installed %s on %s", config.scheme, device.name)
        else:
            LOGGER.info("Skipping build and install")

        launch_command = devicectl_launch_command(
            devicectl,
            device.secondary_id,
            bundle_id,
            environment=config.environment,
            start_stopped=config.start_stopped,
            extra_args=config.extra_launch_args,
        )
        install: CommandOutput | None = None
        try:
            launch = await self._runner.execute(launch_command)
        except ProcessError as exc:
            if app_path is None or not _is_not_installed(exc):
                raise
            LOGGER.info("%s is not installed on %s, installing %s", bundle_id, device.name, app_path)
            install = await self._runner.execute(devicectl_install_command(devicectl, device.secondary_id, app_path))
            launch = await self._runner.execute(launch_command)

        if launch.stderr.strip():
            LOGGER.warning("Launch reported: %s", launch.stderr.strip())

        lines = [f"Launched {bundle_id} on {device.name}."]
        if install is not None:
            lines.append(f"Install output:\n{install.stdout}")
        lines.append(f"Launch output:\n{launch.stdout}")

        if config.stream_logs:
            spawn_detached(
                self._log_streamer.stream_logs(device.secondary_id, bundle_id, installation),
                name=f"console:{device.secondary_id}",
            )
            lines.append("Log streaming started; console output is logged when the stream ends.")
        return "\n".join(lines)

    async def _select_installation(self, xcode_path: str | None) -> Installation:
        if xcode_path:
            return Installation(path=xcode_path.rstrip("/"))
        installations = await self._locator.list_installations()
        return installations[0]

    async def _estimate_app_path(self, config: RunConfig) -> str | None:
        command = show_build_settings_command(
            config.project_path,
            scheme=config.scheme,
            configuration=config.configuration,
        )
        try:
            output = await self._runner.execute(command)
        except CommandError as exc:
            LOGGER.warning("Could not estimate app path, reinstall fallback disabled: %s", exc)
            return None
        match = _BUILD_DIR_RE.search(output.stdout)
        if match is None or not match.group(1).strip():
            LOGGER.warning("CONFIGURATION_BUILD_DIR missing from build settings, reinstall fallback disabled")
            return None
        return str(PurePosixPath(match.group(1).strip()) / f"{config.scheme}.app")
