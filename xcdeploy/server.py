"""FastMCP server exposing Xcode build and device tools."""

from __future__ import annotations

from typing import Literal

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import Field

from xcdeploy.core.errors import RunConfigError
from xcdeploy.core.model import RunConfig, ToolReply, parse_environment
from xcdeploy.core.service import XcodeService

SERVER_NAME = "xcode-mcp"


def reply_text(reply: ToolReply) -> str:
    """Return a successful reply's text; raise error replies as `ToolError`."""
    if reply.is_error:
        raise ToolError(reply.text)
    return reply.text


def build_server(service: XcodeService) -> FastMCP:
    mcp = FastMCP(
        SERVER_NAME,
        instructions="Build, test and archive Xcode projects and run apps on physical iOS devices.",
    )

    @mcp.tool(name="xcode-project-info", description="Show schemes, targets and configurations as JSON.")
    async def project_info(
        projectPath: str = Field(..., description="Path to the .xcodeproj or .xcworkspace"),
    ) -> str:
        return reply_text(await service.project_info(projectPath))

    @mcp.tool(name="xcode-build", description="Build a scheme with xcodebuild.")
    async def build(
        projectPath: str = Field(..., description="Path to the .xcodeproj or .xcworkspace"),
        scheme: str = Field(..., description="Scheme to build"),
        configuration: str | None = Field(default=None, description="Build configuration, e.g. Debug or Release"),
        destination: str | None = Field(
            default=None,
            description="Build destination, e.g. 'platform=iOS Simulator,name=iPhone 15'",
        ),
        extraArgs: list[str] | None = Field(default=None, description="Extra xcodebuild arguments"),
        outputDir: str | None = Field(default=None, description="Build products directory (SYMROOT)"),
        clean: bool = Field(default=False, description="Run clean before building"),
    ) -> str:
        reply = await service.build(
            projectPath,
            scheme,
            configuration=configuration,
            destination=destination,
            output_dir=outputDir,
            clean=clean,
            extra_args=extraArgs or (),
        )
        return reply_text(reply)

    @mcp.tool(name="xcode-list-schemes", description="List schemes and targets of a project or workspace.")
    async def list_schemes(
        projectPath: str = Field(..., description="Path to the .xcodeproj or .xcworkspace"),
    ) -> str:
        return reply_text(await service.list_schemes(projectPath))

    @mcp.tool(name="xcode-test", description="Run tests with xcodebuild.")
    async def test(
        projectPath: str = Field(..., description="Path to the .xcodeproj or .xcworkspace"),
        scheme: str = Field(..., description="Scheme to test"),
        destination: str = Field(..., description="Test destination, e.g. 'platform=iOS Simulator,name=iPhone 15'"),
        testPlan: str | None = Field(default=None, description="Test plan name"),
        onlyTesting: list[str] | None = Field(default=None, description="Test identifiers to run exclusively"),
        skipTesting: list[str] | None = Field(default=None, description="Test identifiers to skip"),
        resultBundlePath: str | None = Field(default=None, description="Where to write the result bundle"),
        buildForTesting: bool = Field(default=False, description="Only build for testing"),
        testWithoutBuilding: bool = Field(default=False, description="Run tests without building"),
    ) -> str:
        reply = await service.test(
            projectPath,
            scheme,
            destination,
            test_plan=testPlan,
            only_testing=onlyTesting or (),
            skip_testing=skipTesting or (),
            result_bundle_path=resultBundlePath,
            build_for_testing=buildForTesting,
            test_without_building=testWithoutBuilding,
        )
        return reply_text(reply)

    @mcp.tool(name="xcode-archive", description="Archive a scheme and optionally export it.")
    async def archive(
        projectPath: str = Field(..., description="Path to the .xcodeproj or .xcworkspace"),
        scheme: str = Field(..., description="Scheme to archive"),
        archivePath: str = Field(..., description="Destination .xcarchive path"),
        configuration: str = Field(default="Release", description="Build configuration"),
        exportPath: str | None = Field(default=None, description="Export directory (IPA etc.)"),
        exportOptionsPlist: str | None = Field(default=None, description="Export options plist path"),
    ) -> str:
        reply = await service.archive(
            projectPath,
            scheme,
            archivePath,
            configuration=configuration,
            export_path=exportPath,
            export_options_plist=exportOptionsPlist,
        )
        return reply_text(reply)

    @mcp.tool(name="xcode-codesign-info", description="Show signing identities, signing settings and profiles.")
    async def codesign_info(
        projectPath: str = Field(..., description="Path to the .xcodeproj or .xcworkspace"),
        target: str | None = Field(default=None, description="Target name"),
    ) -> str:
        return reply_text(await service.codesign_info(projectPath, target=target))

    @mcp.tool(name="swift-package-manager", description="Run a swift package command.")
    async def swift_package(
        command: Literal["init", "update", "resolve", "reset", "clean"] = Field(..., description="SwiftPM command"),
        packageDir: str = Field(..., description="Swift package directory"),
        extraArgs: list[str] | None = Field(default=None, description="Extra swift package arguments"),
    ) -> str:
        return reply_text(await service.swift_package(command, packageDir, extraArgs or ()))

    @mcp.tool(name="simctl-manager", description="Run an xcrun simctl command.")
    async def simctl(
        command: Literal["list", "create", "boot", "shutdown", "erase", "install", "launch", "delete"] = Field(
            ..., description="simctl command"
        ),
        extraArgs: list[str] | None = Field(default=None, description="Extra simctl arguments"),
    ) -> str:
        return reply_text(await service.simctl(command, extraArgs or ()))

    @mcp.tool(name="list-devices", description="List physical devices with their Xcode and devicectl identifiers.")
    async def list_devices(
        refresh: bool = Field(default=False, description="Ignore the device cache"),
    ) -> str:
        return reply_text(await service.device_listing(force_refresh=refresh))

    @mcp.tool(
        name="run-on-device",
        description="Build, install and launch an app on a physical device, optionally streaming its console.",
    )
    async def run_on_device(
        projectPath: str = Field(default="", description="Path to the .xcodeproj or .xcworkspace"),
        scheme: str = Field(default="", description="Scheme to build and run"),
        device: str = Field(default="", description="Device name (non-ASCII supported), UDID or CoreDevice id"),
        configuration: str = Field(default="Debug", description="Build configuration (Debug/Release)"),
        streamLogs: bool = Field(default=False, description="Stream the app console after launch"),
        startStopped: bool = Field(default=False, description="Start suspended so a debugger can attach"),
        environmentVars: str = Field(default="", description="Environment as key1=value1,key2=value2"),
        xcodePath: str | None = Field(default=None, description="Xcode.app to use"),
        listDevices: bool = Field(default=False, description="Only list detected devices"),
        skipBuild: bool = Field(default=False, description="Relaunch the installed app without building"),
        extraLaunchArgs: list[str] | None = Field(default=None, description="Extra devicectl launch arguments"),
        directBundleId: str | None = Field(default=None, description="Bundle identifier to launch directly"),
    ) -> str:
        try:
            config = RunConfig(
                project_path=projectPath,
                scheme=scheme,
                device=device,
                configuration=configuration,
                stream_logs=streamLogs,
                start_stopped=startStopped,
                environment=parse_environment(environmentVars),
                xcode_path=xcodePath,
                list_devices=listDevices,
                skip_build=skipBuild,
                extra_launch_args=tuple(extraLaunchArgs or ()),
                direct_bundle_id=directBundleId,
            )
        except RunConfigError as exc:
            raise ToolError(str(exc)) from exc
        return reply_text(await service.run_on_device(config))

    return mcp
