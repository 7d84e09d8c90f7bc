"""Service layer used by the CLI and the MCP server."""

from __future__ import annotations

import json
import logging
import shutil
from collections.abc import Sequence
from pathlib import Path

from xcdeploy.core import commands
from xcdeploy.core.bundle import BundleIdentifierResolver
from xcdeploy.core.config import Settings, load_settings
from xcdeploy.core.errors import CommandError, XcdeployError
from xcdeploy.core.executor import CommandExecutor, CommandRunner
from xcdeploy.core.installations import InstallationLocator
from xcdeploy.core.logstream import LogStreamer
from xcdeploy.core.model import CommandOutput, DeviceRecord, RunConfig, ToolReply
from xcdeploy.core.orchestrator import DeploymentOrchestrator
from xcdeploy.core.registry import DeviceRegistry, format_device_listing
from xcdeploy.core.tool_paths import ToolPathResolver

LOGGER = logging.getLogger(__name__)


def _render(title: str, output: CommandOutput, *, stderr_label: str = "STDERR:\n") -> str:
    text = f"{title}:\n"
    if output.stdout:
        text += f"{output.stdout}\n"
    if output.stderr:
        text += f"{stderr_label}{output.stderr}\n"
    return text


def _failure(action: str, exc: XcdeployError) -> ToolReply:
    LOGGER.error("%s failed: %s", action, exc)
    return ToolReply(text=f"{action} failed:\n{exc}", is_error=True)


class XcodeService:
    def __init__(
        self,
        *,
        settings: Settings | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.runtime_warnings = _runtime_warnings()
        self.runner = runner or CommandExecutor(
            default_timeout_s=self.settings.command_timeout_s,
            denied_patterns=self.settings.denied_command_patterns,
        )
        self.locator = InstallationLocator(
            self.runner,
            applications_dir=self.settings.applications_dir,
            default_path=self.settings.default_xcode_path,
        )
        self.tool_paths = ToolPathResolver(
            self.locator,
            default_installation_path=self.settings.default_xcode_path,
        )
        self.registry = DeviceRegistry(
            self.runner,
            self.tool_paths,
            cache_ttl_s=self.settings.device_cache_ttl_s,
        )
        self.bundles = BundleIdentifierResolver(self.runner)
        self.log_streamer = LogStreamer(
            self.runner,
            self.tool_paths,
            timeout_s=self.settings.log_stream_timeout_s,
        )
        self.orchestrator = DeploymentOrchestrator(
            self.runner,
            self.locator,
            self.tool_paths,
            self.registry,
            self.bundles,
            self.log_streamer,
            build_timeout_s=self.settings.build_timeout_s,
        )

    async def list_devices(self, force_refresh: bool = False) -> list[DeviceRecord]:
        return await self.registry.get_all_devices(force_refresh=force_refresh)

    async def device_listing(self, force_refresh: bool = True) -> ToolReply:
        devices = await self.list_devices(force_refresh=force_refresh)
        return ToolReply(text=format_device_listing(devices))

    async def run_on_device(self, config: RunConfig) -> ToolReply:
        return await self.orchestrator.run_on_device(config)

    async def project_info(self, project_path: str) -> ToolReply:
        try:
            output = await self.runner.execute(commands.list_command(project_path, as_json=True))
        except XcdeployError as exc:
            return _failure("Reading Xcode project info", exc)
        try:
            info = json.loads(output.stdout)
        except json.JSONDecodeError:
            return ToolReply(text=f"Xcode project info (raw output):\n{output.stdout}")
        return ToolReply(text=f"Xcode project info:\n{json.dumps(info, indent=2)}")

    async def build(
        self,
        project_path: str,
        scheme: str,
        *,
        configuration: str | None = None,
        destination: str | None = None,
        output_dir: str | None = None,
        clean: bool = False,
        extra_args: Sequence[str] = (),
    ) -> ToolReply:
        command = commands.build_command(
            project_path,
            scheme,
            configuration=configuration,
            destination=destination,
            output_dir=output_dir,
            clean=clean,
            extra_args=extra_args,
        )
        try:
            output = await self.runner.execute(command, timeout_s=self.settings.build_timeout_s)
        except XcdeployError as exc:
            return _failure("Xcode build", exc)
        return ToolReply(text=_render("Build result", output))

    async def list_schemes(self, project_path: str) -> ToolReply:
        try:
            output = await self.runner.execute(commands.list_command(project_path))
        except XcdeployError as exc:
            return _failure("Listing schemes", exc)
        return ToolReply(text=_render("Xcode schemes and targets", output, stderr_label=""))

    async def test(
        self,
        project_path: str,
        scheme: str,
        destination: str,
        *,
        test_plan: str | None = None,
        only_testing: Sequence[str] = (),
        skip_testing: Sequence[str] = (),
        result_bundle_path: str | None = None,
        build_for_testing: bool = False,
        test_without_building: bool = False,
    ) -> ToolReply:
        command = commands.xcodebuild_test_command(
            project_path,
            scheme,
            destination,
            test_plan=test_plan,
            only_testing=only_testing,
            skip_testing=skip_testing,
            result_bundle_path=result_bundle_path,
            build_for_testing=build_for_testing,
            test_without_building=test_without_building,
        )
        try:
            output = await self.runner.execute(command, timeout_s=self.settings.build_timeout_s)
        except XcdeployError as exc:
            return _failure("Xcode test", exc)
        return ToolReply(text=_render("Test result", output))

    async def archive(
        self,
        project_path: str,
        scheme: str,
        archive_path: str,
        *,
        configuration: str = "Release",
        export_path: str | None = None,
        export_options_plist: str | None = None,
    ) -> ToolReply:
        try:
            output = await self.runner.execute(
                commands.archive_command(project_path, scheme, archive_path, configuration=configuration),
                timeout_s=self.settings.build_timeout_s,
            )
            text = _render("Archive result", output)
            if export_path and export_options_plist:
                exported = await self.runner.execute(
                    commands.export_archive_command(archive_path, export_path, export_options_plist),
                    timeout_s=self.settings.build_timeout_s,
                )
                text += "\n" + _render("Export result", exported)
        except XcdeployError as exc:
            return _failure("Xcode archive/export", exc)
        return ToolReply(text=text)

    async def codesign_info(self, project_path: str, target: str | None = None) -> ToolReply:
        try:
            identities = await self.runner.execute(commands.SIGNING_IDENTITIES_COMMAND)
        except XcdeployError as exc:
            return _failure("Reading code signing info", exc)
        text = _render("Code signing identities", identities, stderr_label="")

        try:
            settings = await self.runner.execute(commands.show_build_settings_command(project_path, target=target))
        except CommandError as exc:
            LOGGER.debug("Signing build settings unavailable: %s", exc)
            text += "\nProject code signing settings not found.\n"
        else:
            signing_lines = [
                line
                for line in settings.stdout.splitlines()
                if any(marker in line for marker in commands.SIGNING_SETTING_MARKERS)
            ]
            if signing_lines:
                text += "\nProject code signing settings:\n" + "\n".join(signing_lines) + "\n"
            else:
                text += "\nProject code signing settings not found.\n"

        try:
            profiles = await self.runner.execute(commands.PROVISIONING_PROFILES_COMMAND)
        except CommandError as exc:
            LOGGER.debug("Provisioning profiles unavailable: %s", exc)
            text += "\nProvisioning profiles directory not found.\n"
        else:
            text += f"\nInstalled provisioning profiles:\n{profiles.stdout}\n"
        return ToolReply(text=text)

    async def swift_package(self, command: str, package_dir: str, extra_args: Sequence[str] = ()) -> ToolReply:
        if command not in commands.SWIFT_PACKAGE_COMMANDS:
            allowed = ", ".join(commands.SWIFT_PACKAGE_COMMANDS)
            return ToolReply(text=f"Unsupported swift package command '{command}'. Allowed: {allowed}", is_error=True)
        try:
            output = await self.runner.execute(
                commands.swift_package_command(command, extra_args),
                working_dir=str(Path(package_dir)),
            )
        except XcdeployError as exc:
            return _failure("Swift Package Manager", exc)
        return ToolReply(text=_render("Swift Package Manager result", output, stderr_label=""))

    async def simctl(self, command: str, extra_args: Sequence[str] = ()) -> ToolReply:
        if command not in commands.SIMCTL_COMMANDS:
            allowed = ", ".join(commands.SIMCTL_COMMANDS)
            return ToolReply(text=f"Unsupported simctl command '{command}'. Allowed: {allowed}", is_error=True)
        try:
            output = await self.runner.execute(commands.simctl_command(command, extra_args))
        except XcdeployError as exc:
            return _failure("SimCtl", exc)
        return ToolReply(text=_render("SimCtl result", output, stderr_label=""))


def _runtime_warnings() -> tuple[str, ...]:
    warnings: list[str] = []
    if shutil.which("xcrun") is None:
        warnings.append("xcrun not found on PATH; Xcode command line tools are required for device operations.")
    return tuple(warnings)
