"""Device identity and lookup matching logic."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from xcdeploy.core.model import DeviceRecord


def same_device(name_a: str, name_b: str) -> bool:
    """Whether two sightings' display names describe the same physical device.

    Exact equality or case-sensitive containment in either direction. Names
    that are substrings of unrelated devices' names will merge.
    """
    if not name_a or not name_b:
        return False
    return name_a == name_b or name_a in name_b or name_b in name_a


def _primary_id_match(device: DeviceRecord, query: str) -> bool:
    return device.primary_id == query


def _secondary_id_match(device: DeviceRecord, query: str) -> bool:
    return device.secondary_id == query


def _exact_name_match(device: DeviceRecord, query: str) -> bool:
    return device.name == query


def _partial_name_match(device: DeviceRecord, query: str) -> bool:
    return same_device(device.name, query)


LOOKUP_RULES: tuple[Callable[[DeviceRecord, str], bool], ...] = (
    _primary_id_match,
    _secondary_id_match,
    _exact_name_match,
    _partial_name_match,
)


def find_device(devices: Sequence[DeviceRecord], name_or_id: str) -> DeviceRecord | None:
    for rule in LOOKUP_RULES:
        for device in devices:
            if rule(device, name_or_id):
                return device
    return None
