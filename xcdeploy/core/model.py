"""Core data models used across discovery, orchestration, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from xcdeploy.core.errors import RunConfigError

UNKNOWN_VERSION = "unknown"


@dataclass(frozen=True)
class CommandOutput:
    stdout: str
    stderr: str


@dataclass(frozen=True)
class Installation:
    path: str
    version: str = UNKNOWN_VERSION
    build: str | None = None


@dataclass(frozen=True)
class DeviceRecord:
    name: str
    primary_id: str | None = None
    secondary_id: str | None = None
    available: bool = False
    model: str | None = None
    os_version: str | None = None

    @property
    def fully_reconciled(self) -> bool:
        return self.primary_id is not None and self.secondary_id is not None


@dataclass(frozen=True)
class SourceScan:
    """Outcome of one device-listing source within a discovery cycle."""

    source: str
    status: Literal["ok", "empty", "unavailable"]
    sightings: int = 0
    error: str | None = None


@dataclass(frozen=True)
class ToolReply:
    text: str
    is_error: bool = False


@dataclass(frozen=True)
class RunConfig:
    """Options for one build/install/launch cycle on a physical device.

    `project_path`, `scheme` and `device` are required unless `list_devices`
    is set. `direct_bundle_id` implies the build/install stage is skipped.
    """

    project_path: str = ""
    scheme: str = ""
    device: str = ""
    configuration: str = "Debug"
    stream_logs: bool = False
    start_stopped: bool = False
    environment: dict[str, str] = field(default_factory=dict)
    xcode_path: str | None = None
    list_devices: bool = False
    skip_build: bool = False
    extra_launch_args: tuple[str, ...] = ()
    direct_bundle_id: str | None = None

    def __post_init__(self) -> None:
        if self.list_devices:
            return
        if not self.device:
            raise RunConfigError("A device name or identifier is required.")
        if not self.configuration:
            raise RunConfigError("Build configuration must not be empty.")
        if self.direct_bundle_id is None:
            if not self.project_path or not self.scheme:
                raise RunConfigError(
                    "Project path and scheme are required unless a bundle identifier is given directly."
                )
        for key in self.environment:
            if not key or "," in key or "=" in key:
                raise RunConfigError(f"Invalid environment variable name '{key}'")

    @property
    def builds(self) -> bool:
        return not self.skip_build and not self.direct_bundle_id


def parse_environment(text: str | None) -> dict[str, str]:
    """Parse `key1=value1,key2=value2`; pairs missing a key or value are dropped."""
    environment: dict[str, str] = {}
    if not text:
        return environment
    for pair in text.split(","):
        key, _, value = pair.partition("=")
        key = key.strip()
        if key and value:
            environment[key] = value
    return environment


def format_environment(environment: dict[str, str]) -> str:
    return ",".join(f"{key}={value}" for key, value in environment.items())
