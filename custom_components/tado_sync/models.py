"""Data records exchanged between the sync engine and the devices."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any

from .const import HOT_WATER_SUFFIX, TYPE_HOT_WATER


def hot_water_device_id(serial: str) -> str:
    """Return the id used by a hot-water zone sharing its thermostat's serial."""
    return f"{serial}{HOT_WATER_SUFFIX}"


@dataclass(frozen=True)
class DeviceRecord:
    """A logical device registered with the sync engine."""

    id: str
    home_id: str
    zone_id: int | None
    zone_type: str | None = None

    def with_zone(self, zone_id: int, zone_type: str | None) -> DeviceRecord:
        """Return a copy moved to another zone."""
        return replace(self, zone_id=zone_id, zone_type=zone_type or self.zone_type)


@dataclass(frozen=True)
class ZoneMembership:
    """A physical device as listed in the zones of a home."""

    id: str
    zone_id: int
    zone_type: str | None
    connection_state: bool | None = None
    battery_state: str | None = None


@dataclass(frozen=True)
class ZoneStateData:
    """Normalized zone state.

    Every field is optional. ``None`` means the source carried no information
    for that field in this cycle; it never means "reset to a default".
    """

    target_temperature: float | None = None
    measure_temperature: float | None = None
    measure_humidity: float | None = None
    power: bool | None = None
    overlay: str | None = None
    ac_mode: str | None = None
    fan_speed: str | None = None
    fan_level: str | None = None
    swing: str | None = None
    vertical_swing: str | None = None
    horizontal_swing: str | None = None
    light: str | None = None
    open_window_detected: bool | None = None

    def present(self) -> dict[str, Any]:
        """Return only the fields that carry information."""
        return {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if getattr(self, item.name) is not None
        }

    def is_empty(self) -> bool:
        return not self.present()


@dataclass(frozen=True)
class ZoneState:
    """State of one zone of one home."""

    home_id: str
    zone_id: int
    data: ZoneStateData


@dataclass
class DeviceDescriptor:
    """A device discovered while pairing, stored in the config entry."""

    serial: str
    name: str
    kind: str
    home_id: str
    zone_id: int
    zone_type: str
    device_type: str = ""
    capabilities: list[str] = field(default_factory=list)
    capabilities_options: dict[str, dict[str, Any]] = field(default_factory=dict)
    tado_capabilities: dict[str, Any] = field(default_factory=dict)
    has_battery: bool = False
    hot_water_zone_id: int | None = None
    hot_water_zone_type: str | None = None

    @property
    def device_id(self) -> str:
        """Return the registry id of the device's main zone."""
        if self.zone_type == TYPE_HOT_WATER:
            return hot_water_device_id(self.serial)
        return self.serial

    def record(self) -> DeviceRecord:
        return DeviceRecord(self.device_id, self.home_id, self.zone_id, self.zone_type)

    def hot_water_record(self) -> DeviceRecord | None:
        """Return the record of a hot-water zone merged into this device."""
        if self.hot_water_zone_id is None:
            return None
        return DeviceRecord(
            hot_water_device_id(self.serial),
            self.home_id,
            self.hot_water_zone_id,
            self.hot_water_zone_type or TYPE_HOT_WATER,
        )

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeviceDescriptor:
        known = {item.name for item in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        values["home_id"] = str(values["home_id"])
        return cls(**values)
