"""Physical device discovery and identity reconciliation.

Two sources describe the same devices with different identifiers:

* ``xcrun xctrace list devices`` reports the UUID used by xcodebuild
  (the *primary* identifier).
* ``devicectl list devices`` reports the CoreDevice identifier used for
  install/launch/console operations (the *secondary* identifier).

Sightings from both are merged by display name into `DeviceRecord`s. A
discovery cycle builds a fresh list and swaps it into the cache in one
assignment; records are never patched after the cycle ends.
"""

from __future__ import annotations

import dataclasses
import logging
import re
import time
from collections.abc import Callable

from xcdeploy.core.commands import PRIMARY_DEVICE_LIST_COMMAND, devicectl_list_devices_command
from xcdeploy.core.device_match import find_device, same_device
from xcdeploy.core.errors import CommandError, DeviceNotFoundError, MissingIdentifierError
from xcdeploy.core.executor import CommandRunner
from xcdeploy.core.model import DeviceRecord, SourceScan
from xcdeploy.core.tool_paths import ToolPathResolver

LOGGER = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_S = 300.0
PRIMARY_SOURCE = "xctrace"
SECONDARY_SOURCE = "devicectl"

_NAME_RE = re.compile(r"(.*?)\s+\(")
_UUID_RE = re.compile(r"\(([0-9A-F]{8}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{12})\)", re.IGNORECASE)
_MODEL_RE = re.compile(r"\(((?:iPhone|iPad|iPod|Watch)\d+,\d+)\)")
_OS_VERSION_RE = re.compile(r"\((\d+\.\d+(?:\.\d+)?)\)")
_COLUMN_SPLIT_RE = re.compile(r"\s{3,}")


def parse_primary_listing(output: str) -> list[DeviceRecord]:
    """Extract physical devices from xctrace's line-oriented listing."""
    sightings: list[DeviceRecord] = []
    for line in output.splitlines():
        if "(" not in line or "Simulator" in line or "==" in line:
            continue
        name_match = _NAME_RE.match(line)
        id_match = _UUID_RE.search(line)
        if not name_match or not id_match:
            continue
        name = name_match.group(1).strip()
        if not name:
            continue
        model_match = _MODEL_RE.search(line)
        os_match = _OS_VERSION_RE.search(line)
        sightings.append(
            DeviceRecord(
                name=name,
                primary_id=id_match.group(1),
                available="Offline" not in line,
                model=model_match.group(1) if model_match else None,
                os_version=os_match.group(1) if os_match else None,
            )
        )
    return sightings


def parse_secondary_listing(output: str) -> list[DeviceRecord]:
    """Extract devices from devicectl's column-oriented table."""
    sightings: list[DeviceRecord] = []
    in_table = False
    for line in output.splitlines():
        if not in_table:
            if "Name" in line and "Identifier" in line:
                in_table = True
            continue
        if not line.strip() or line.startswith("--"):
            continue
        columns = _COLUMN_SPLIT_RE.split(line)
        if len(columns) < 4:
            continue
        name = columns[0].strip()
        if not name:
            continue
        state = columns[3]
        sightings.append(
            DeviceRecord(
                name=name,
                secondary_id=columns[2].strip(),
                available="available" in state or "connected" in state,
                model=(columns[4].strip() or None) if len(columns) >= 5 else None,
            )
        )
    return sightings


def merge_primary(devices: list[DeviceRecord], sighting: DeviceRecord) -> None:
    for index, existing in enumerate(devices):
        if existing.name == sighting.name:
            devices[index] = dataclasses.replace(existing, primary_id=sighting.primary_id)
            return
    devices.append(sighting)


def merge_secondary(devices: list[DeviceRecord], sighting: DeviceRecord) -> None:
    for index, existing in enumerate(devices):
        if same_device(existing.name, sighting.name):
            devices[index] = dataclasses.replace(
                existing,
                secondary_id=sighting.secondary_id,
                available=existing.available or sighting.available,
            )
            return
    devices.append(sighting)


class DeviceRegistry:
    def __init__(
        self,
        runner: CommandRunner,
        tool_paths: ToolPathResolver,
        *,
        cache_ttl_s: float = DEFAULT_CACHE_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._runner = runner
        self._tool_paths = tool_paths
        self.cache_ttl_s = cache_ttl_s
        self._clock = clock
        self._devices: list[DeviceRecord] | None = None
        self._timestamp: float | None = None
        self.last_scans: tuple[SourceScan, ...] = ()

    def cache_age(self) -> float | None:
        if self._timestamp is None:
            return None
        return self._clock() - self._timestamp

    async def get_all_devices(self, force_refresh: bool = False) -> list[DeviceRecord]:
        age = self.cache_age()
        if not force_refresh and self._devices is not None and age is not None and age < self.cache_ttl_s:
            LOGGER.debug("Serving %d cached devices (age %.1fs)", len(self._devices), age)
            return list(self._devices)

        devices: list[DeviceRecord] = []
        primary_scan = await self._scan_primary(devices)
        secondary_scan = await self._scan_secondary(devices)

        self._devices = devices
        self._timestamp = self._clock()
        self.last_scans = (primary_scan, secondary_scan)
        return list(devices)

    async def _scan_primary(self, devices: list[DeviceRecord]) -> SourceScan:
        try:
            output = await self._runner.execute(PRIMARY_DEVICE_LIST_COMMAND)
        except CommandError as exc:
            LOGGER.warning("Device listing via %s failed: %s", PRIMARY_SOURCE, exc)
            return SourceScan(source=PRIMARY_SOURCE, status="unavailable", error=str(exc))
        sightings = parse_primary_listing(output.stdout)
        for sighting in sightings:
            merge_primary(devices, sighting)
        return SourceScan(source=PRIMARY_SOURCE, status="ok" if sightings else "empty", sightings=len(sightings))

    async def _scan_secondary(self, devices: list[DeviceRecord]) -> SourceScan:
        devicectl = await self._tool_paths.resolve()
        try:
            output = await self._runner.execute(devicectl_list_devices_command(devicectl))
        except CommandError as exc:
            LOGGER.warning("Device listing via %s failed: %s", SECONDARY_SOURCE, exc)
            return SourceScan(source=SECONDARY_SOURCE, status="unavailable", error=str(exc))
        sightings = parse_secondary_listing(output.stdout)
        for sighting in sightings:
            merge_secondary(devices, sighting)
        return SourceScan(source=SECONDARY_SOURCE, status="ok" if sightings else "empty", sightings=len(sightings))

    async def find_device_info(self, name_or_id: str) -> DeviceRecord:
        devices = await self.get_all_devices()
        device = find_device(devices, name_or_id)
        if device is None:
            raise DeviceNotFoundError(f"No device found matching '{name_or_id}'")
        return device

    async def find_device_identifier(self, name_or_id: str) -> str:
        device = await self.find_device_info(name_or_id)
        if not device.primary_id:
            raise MissingIdentifierError(f"Device '{device.name}' has no Xcode device identifier (UDID).")
        return device.primary_id

    async def find_devicectl_identifier(self, name_or_id: str) -> str:
        device = await self.find_device_info(name_or_id)
        if not device.secondary_id:
            raise MissingIdentifierError(f"Device '{device.name}' has no devicectl identifier.")
        return device.secondary_id


def format_device_listing(devices: list[DeviceRecord]) -> str:
    if not devices:
        return "No devices found"
    lines = ["Detected devices:"]
    for device in devices:
        lines.append(f"- {device.name}")
        if device.primary_id:
            lines.append(f"  Xcode ID: {device.primary_id}")
        if device.secondary_id:
            lines.append(f"  DeviceCtl ID: {device.secondary_id}")
        lines.append(f"  Status: {'available' if device.available else 'unavailable'}")
        if device.model:
            lines.append(f"  Model: {device.model}")
        if device.os_version:
            lines.append(f"  OS version: {device.os_version}")
    return "\n".join(lines)
