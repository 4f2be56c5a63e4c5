"""In-memory registry of the devices kept in sync."""

from __future__ import annotations

from collections.abc import Iterator
import logging

from .models import DeviceRecord
from .parsers import home_zone_index, homes_from_records

_LOGGER = logging.getLogger(__name__)


class DeviceRegistry:
    """Devices registered with the sync engine, unique by id."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._devices: list[DeviceRecord] = []

    def _index_of(self, device_id: str) -> int:
        for index, device in enumerate(self._devices):
            if device.id == device_id:
                return index
        return -1

    def register(self, device: DeviceRecord) -> bool:
        """Add a device, return False when it was already registered."""
        if self._index_of(device.id) != -1:
            _LOGGER.debug("Device %s already registered", device.id)
            return False
        self._devices.append(device)
        _LOGGER.debug("Device registered: %s", device.id)
        return True

    def update(self, device: DeviceRecord) -> bool:
        """Replace the stored record with the same id."""
        index = self._index_of(device.id)
        if index == -1:
            return False
        self._devices[index] = device
        _LOGGER.debug(
            "Device updated: %s (home %s, zone %s)",
            device.id,
            device.home_id,
            device.zone_id,
        )
        return True

    def unregister(self, device: DeviceRecord | str) -> bool:
        """Remove a device by id, return False when it was not registered."""
        device_id = device if isinstance(device, str) else device.id
        index = self._index_of(device_id)
        if index == -1:
            return False
        del self._devices[index]
        _LOGGER.debug("Device unregistered: %s", device_id)
        return True

    def get(self, device_id: str) -> DeviceRecord | None:
        index = self._index_of(device_id)
        return None if index == -1 else self._devices[index]

    def homes(self) -> set[str]:
        """Return the homes that still have devices."""
        return homes_from_records(self._devices)

    def zone_index(self) -> dict[str, set[int]]:
        """Return a point-in-time home id -> zone ids view."""
        return home_zone_index(self._devices)

    def __contains__(self, device_id: object) -> bool:
        return isinstance(device_id, str) and self._index_of(device_id) != -1

    def __iter__(self) -> Iterator[DeviceRecord]:
        return iter(list(self._devices))

    def __len__(self) -> int:
        return len(self._devices)
