"""Command-line builders for xcodebuild, devicectl, simctl and SwiftPM."""

from __future__ import annotations

import shlex
from collections.abc import Sequence

from xcdeploy.core.model import format_environment

PRIMARY_DEVICE_LIST_COMMAND = "xcrun xctrace list devices"
SIGNING_IDENTITIES_COMMAND = "security find-identity -v -p codesigning"
PROVISIONING_PROFILES_COMMAND = 'ls -la "$HOME/Library/MobileDevice/Provisioning Profiles/"'

SIGNING_SETTING_MARKERS = ("CODE_SIGN", "PROVISIONING_PROFILE", "DEVELOPMENT_TEAM")
SWIFT_PACKAGE_COMMANDS = ("init", "update", "resolve", "reset", "clean")
SIMCTL_COMMANDS = ("list", "create", "boot", "shutdown", "erase", "install", "launch", "delete")


def _join(parts: Sequence[str], extra: Sequence[str] = ()) -> str:
    # Extra arguments are passed through verbatim.
    command = " ".join(parts)
    if extra:
        command += " " + " ".join(extra)
    return command


def project_flag(project_path: str) -> str:
    flag = "-workspace" if project_path.endswith(".xcworkspace") else "-project"
    return f"{flag} {shlex.quote(project_path)}"


def list_command(project_path: str, *, as_json: bool = False) -> str:
    parts = ["xcodebuild", "-list"]
    if as_json:
        parts.append("-json")
    parts.append(project_flag(project_path))
    return _join(parts)


def show_build_settings_command(
    project_path: str,
    *,
    scheme: str | None = None,
    target: str | None = None,
    configuration: str | None = None,
) -> str:
    parts = ["xcodebuild", "-showBuildSettings", project_flag(project_path)]
    if scheme:
        parts.append(f"-scheme {shlex.quote(scheme)}")
    if target:
        parts.append(f"-target {shlex.quote(target)}")
    if configuration:
        parts.append(f"-configuration {shlex.quote(configuration)}")
    return _join(parts)


def build_command(
    project_path: str,
    scheme: str,
    *,
    configuration: str | None = None,
    destination: str | None = None,
    output_dir: str | None = None,
    clean: bool = False,
    extra_args: Sequence[str] = (),
) -> str:
    parts = ["xcodebuild", project_flag(project_path), f"-scheme {shlex.quote(scheme)}"]
    if clean:
        parts.append("clean")
    parts.append("build")
    if configuration:
        parts.append(f"-configuration {shlex.quote(configuration)}")
    if destination:
        parts.append(f"-destination {shlex.quote(destination)}")
    if output_dir:
        parts.append(shlex.quote(f"SYMROOT={output_dir}"))
    return _join(parts, extra_args)


def build_and_install_command(project_path: str, scheme: str, device_id: str, configuration: str) -> str:
    return _join(
        [
            "xcodebuild",
            project_flag(project_path),
            f"-scheme {shlex.quote(scheme)}",
            f"-configuration {shlex.quote(configuration)}",
            f"-destination {shlex.quote(f'platform=iOS,id={device_id}')}",
            "build",
            "install",
        ]
    )


def xcodebuild_test_command(
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
) -> str:
    parts = [
        "xcodebuild",
        project_flag(project_path),
        f"-scheme {shlex.quote(scheme)}",
        f"-destination {shlex.quote(destination)}",
    ]
    if build_for_testing:
        parts.append("build-for-testing")
    elif test_without_building:
        parts.append("test-without-building")
    else:
        parts.append("test")
    if test_plan:
        parts.append(f"-testPlan {shlex.quote(test_plan)}")
    parts.extend(f"-only-testing:{shlex.quote(test)}" for test in only_testing)
    parts.extend(f"-skip-testing:{shlex.quote(test)}" for test in skip_testing)
    if result_bundle_path:
        parts.append(f"-resultBundlePath {shlex.quote(result_bundle_path)}")
    return _join(parts)


def archive_command(project_path: str, scheme: str, archive_path: str, *, configuration: str = "Release") -> str:
    return _join(
        [
            "xcodebuild",
            project_flag(project_path),
            f"-scheme {shlex.quote(scheme)}",
            f"-configuration {shlex.quote(configuration)}",
            "archive",
            f"-archivePath {shlex.quote(archive_path)}",
        ]
    )


def export_archive_command(archive_path: str, export_path: str, export_options_plist: str) -> str:
    return _join(
        [
            "xcodebuild",
            "-exportArchive",
            f"-archivePath {shlex.quote(archive_path)}",
            f"-exportPath {shlex.quote(export_path)}",
            f"-exportOptionsPlist {shlex.quote(export_options_plist)}",
        ]
    )


def swift_package_command(command: str, extra_args: Sequence[str] = ()) -> str:
    return _join(["swift", "package", command], extra_args)


def simctl_command(command: str, extra_args: Sequence[str] = ()) -> str:
    return _join(["xcrun", "simctl", command], extra_args)


def devicectl_list_devices_command(devicectl: str) -> str:
    return _join([shlex.quote(devicectl), "list", "devices"])


def devicectl_install_command(devicectl: str, device_id: str, app_path: str) -> str:
    return _join(
        [
            shlex.quote(devicectl),
            "device",
            "install",
            "app",
            f"--device {shlex.quote(device_id)}",
            shlex.quote(app_path),
        ]
    )


def devicectl_launch_command(
    devicectl: str,
    device_id: str,
    bundle_id: str,
    *,
    environment: dict[str, str] | None = None,
    start_stopped: bool = False,
    extra_args: Sequence[str] = (),
) -> str:
    parts = [
        shlex.quote(devicectl),
        "device",
        "process",
        "launch",
        f"--device {shlex.quote(device_id)}",
    ]
    if environment:
        parts.append(f"--environment-variables {shlex.quote(format_environment(environment))}")
    if start_stopped:
        parts.append("--start-stopped")
    parts.extend(extra_args)
    parts.append(shlex.quote(bundle_id))
    return _join(parts)


def devicectl_console_command(devicectl: str, device_id: str, bundle_id: str) -> str:
    return _join(
        [
            shlex.quote(devicectl),
            "device",
            "process",
            "view",
            f"--device {shlex.quote(device_id)}",
            f"--console {shlex.quote(bundle_id)}",
        ]
    )
