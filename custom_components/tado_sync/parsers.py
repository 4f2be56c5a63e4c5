"""Parse raw Tado payloads into normalized records."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Any

from .const import (
    CONST_MODE_OFF,
    CONST_OVERLAY_MANUAL,
    CONST_OVERLAY_TADO_MODE,
    CONST_OVERLAY_TIMER,
    POWER_OFF,
    POWER_ON,
    TYPE_AIR_CONDITIONING,
    TYPE_HOT_WATER,
)
from .models import DeviceRecord, ZoneMembership, ZoneStateData, hot_water_device_id

_LOGGER = logging.getLogger(__name__)

_TENTH = Decimal("0.1")

# setting key -> ZoneStateData field, copied verbatim when present
_AC_SETTING_FIELDS = {
    "fanSpeed": "fan_speed",
    "fanLevel": "fan_level",
    "swing": "swing",
    "verticalSwing": "vertical_swing",
    "horizontalSwing": "horizontal_swing",
    "light": "light",
}


def round_tenth(value: Any) -> float | None:
    """Round to one decimal, halves away from zero."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(Decimal(str(value)).quantize(_TENTH, rounding=ROUND_HALF_UP))


def get_nested(data: Any, *keys: str) -> Any:
    current: Any = data
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def _get_setting(data: dict[str, Any]) -> dict[str, Any]:
    setting = data.get("setting")
    if isinstance(setting, dict):
        return setting
    return {}


def _copy_ac_settings(setting: dict[str, Any], values: dict[str, Any]) -> None:
    for key, name in _AC_SETTING_FIELDS.items():
        if setting.get(key):
            values[name] = setting[key]


def parse_zone_memberships(zones: Iterable[dict[str, Any]]) -> dict[str, ZoneMembership]:
    """Return the devices of the given zones keyed by device id."""
    devices: dict[str, ZoneMembership] = {}
    for zone in zones or []:
        if not isinstance(zone, dict):
            continue
        zone_id = zone.get("id")
        zone_type = zone.get("type")
        for device in zone.get("devices") or []:
            if not isinstance(device, dict):
                continue
            serial = device.get("serialNo")
            if not serial or zone_id is None:
                _LOGGER.debug("Skipping device without serial or zone: %s", device)
                continue
            # One hot water zone per home; it shares the thermostat's serial
            device_id = (
                hot_water_device_id(serial) if zone_type == TYPE_HOT_WATER else serial
            )
            connection = get_nested(device, "connectionState", "value")
            devices[device_id] = ZoneMembership(
                id=device_id,
                zone_id=int(zone_id),
                zone_type=zone_type,
                connection_state=connection if isinstance(connection, bool) else None,
                battery_state=device.get("batteryState") or None,
            )
    return devices


def _classify_overlay(state: dict[str, Any]) -> str:
    termination = get_nested(state, "overlay", "termination", "type")
    if termination in (CONST_OVERLAY_MANUAL, CONST_OVERLAY_TIMER):
        return termination
    return CONST_OVERLAY_TADO_MODE


def parse_zone_state(state: dict[str, Any]) -> ZoneStateData:
    """Normalize a zone state snapshot from ``GET .../zones/{id}/state``."""
    if not isinstance(state, dict):
        state = {}
    setting = _get_setting(state)
    values: dict[str, Any] = {}

    target = round_tenth(get_nested(setting, "temperature", "celsius"))
    if target is not None:
        values["target_temperature"] = target
    measured = round_tenth(
        get_nested(state, "sensorDataPoints", "insideTemperature", "celsius")
    )
    if measured is not None:
        values["measure_temperature"] = measured
    humidity = round_tenth(
        get_nested(state, "sensorDataPoints", "humidity", "percentage")
    )
    if humidity is not None:
        values["measure_humidity"] = humidity
    if setting.get("power"):
        values["power"] = setting["power"] == POWER_ON

    values["overlay"] = _classify_overlay(state)

    if setting.get("type") == TYPE_AIR_CONDITIONING:
        if setting.get("power") == POWER_ON and setting.get("mode"):
            values["ac_mode"] = setting["mode"]
        else:
            values["ac_mode"] = CONST_MODE_OFF
        _copy_ac_settings(setting, values)

    # Always emitted so consumers can detect transitions
    values["open_window_detected"] = (
        state.get("openWindowDetected") is True
        or isinstance(state.get("openWindow"), dict)
    )
    return ZoneStateData(**values)


def parse_webhook_state(body: dict[str, Any]) -> ZoneStateData:
    """Normalize a webhook delivery, keeping only the fields it carries."""
    if not isinstance(body, dict):
        return ZoneStateData()
    values: dict[str, Any] = {}

    measured = round_tenth(get_nested(body, "insideTemperature", "celsius"))
    if measured is not None:
        values["measure_temperature"] = measured
    humidity = round_tenth(get_nested(body, "humidity", "percentage"))
    if humidity is not None:
        values["measure_humidity"] = humidity

    if "overlayType" in body:
        # An explicit null means the zone went back to its schedule
        values["overlay"] = body["overlayType"] or CONST_OVERLAY_TADO_MODE

    setting = _get_setting(body)
    if setting:
        target = round_tenth(get_nested(setting, "temperature", "celsius"))
        if target is not None:
            values["target_temperature"] = target
        if setting.get("power"):
            values["power"] = setting["power"] == POWER_ON
        # Deliveries may omit the setting type
        if setting.get("type") in (None, TYPE_AIR_CONDITIONING):
            if setting.get("mode"):
                values["ac_mode"] = setting["mode"]
            elif setting.get("power") == POWER_OFF:
                values["ac_mode"] = CONST_MODE_OFF
            _copy_ac_settings(setting, values)

    return ZoneStateData(**values)


def homes_from_records(records: Iterable[DeviceRecord]) -> set[str]:
    """Return the home ids of the given records."""
    return {record.home_id for record in records}


def home_zone_index(records: Iterable[DeviceRecord]) -> dict[str, set[int]]:
    """Return home id -> zone ids for the records with a usable zone."""
    homes: dict[str, set[int]] = {}
    for record in records:
        if not isinstance(record.home_id, str) or not isinstance(record.zone_id, int):
            continue
        if isinstance(record.zone_id, bool):
            continue
        homes.setdefault(record.home_id, set()).add(record.zone_id)
    return homes
