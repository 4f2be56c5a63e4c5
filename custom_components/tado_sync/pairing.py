"""Discovery of the devices of a Tado home."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any

from .api import TadoApiClient
from .const import (
    AC_MODES,
    CAP_AC_LIGHT,
    CAP_AC_MODE,
    CAP_ALARM_BATTERY,
    CAP_DETECT_OPEN_WINDOW,
    CAP_FAN_LEVEL,
    CAP_FAN_SPEED,
    CAP_HORIZONTAL_SWING,
    CAP_HOT_WATER_ONOFF,
    CAP_HOT_WATER_TEMPERATURE,
    CAP_MEASURE_HUMIDITY,
    CAP_MEASURE_TEMPERATURE,
    CAP_POWER_MODE,
    CAP_SWING,
    CAP_TARGET_TEMPERATURE,
    CAP_VERTICAL_SWING,
    CONST_MODE_COOL,
    CONST_MODE_HEAT,
    KIND_AIR_CONDITIONING,
    KIND_HOT_WATER,
    KIND_THERMOSTAT,
    KIND_VALVE,
    TYPE_AIR_CONDITIONING,
    TYPE_HEATING,
    TYPE_HOT_WATER,
)
from .models import DeviceDescriptor
from .parsers import get_nested

_LOGGER = logging.getLogger(__name__)

# capability, key in the zone capabilities of an AC mode
_AC_OPTIONAL_CAPABILITIES = (
    (CAP_FAN_SPEED, "fanSpeeds"),
    (CAP_SWING, "swings"),
    (CAP_FAN_LEVEL, "fanLevel"),
    (CAP_VERTICAL_SWING, "verticalSwing"),
    (CAP_HORIZONTAL_SWING, "horizontalSwing"),
    (CAP_AC_LIGHT, "light"),
)

DEVICE_NAMES = {
    KIND_THERMOSTAT: "Thermostat",
    KIND_VALVE: "Radiator Valve",
    KIND_AIR_CONDITIONING: "Air Conditioning",
    KIND_HOT_WATER: "Hot Water",
}


def decimals_for_step(step: float) -> int:
    if step < 0.1:
        return 2
    if step < 1:
        return 1
    return 0


def _number(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


def _temperature_options(
    celsius: Any, minimum: float, maximum: float
) -> dict[str, Any]:
    step = get_nested(celsius, "step")
    step = step if isinstance(step, (int, float)) and step > 0.5 else 0.5
    return {
        "min": _number(get_nested(celsius, "min"), minimum),
        "max": _number(get_nested(celsius, "max"), maximum),
        "step": step,
        "decimals": decimals_for_step(step),
    }


def _supported_for_ac(key: str, zone_capabilities: Mapping[str, Any]) -> bool:
    """Return True when any AC mode supports ``key``."""
    return any(
        isinstance(zone_capabilities.get(mode), dict)
        and bool(zone_capabilities[mode].get(key))
        for mode in AC_MODES
    )


def _ac_temperature_options(zone_capabilities: Mapping[str, Any]) -> dict[str, Any]:
    minimum, maximum, step = 16, 30, 0.5
    for mode in (CONST_MODE_COOL, CONST_MODE_HEAT):
        celsius = get_nested(zone_capabilities, mode, "temperatures", "celsius")
        if not isinstance(celsius, dict):
            continue
        if isinstance(celsius.get("min"), (int, float)):
            minimum = min(celsius["min"], minimum)
        if isinstance(celsius.get("max"), (int, float)):
            maximum = max(celsius["max"], maximum)
        if isinstance(celsius.get("step"), (int, float)):
            step = max(celsius["step"], step)
    return {
        "min": minimum,
        "max": maximum,
        "step": step,
        "decimals": decimals_for_step(step),
    }


def capabilities_from_zone_capabilities(
    zone_capabilities: Mapping[str, Any],
) -> tuple[list[str], dict[str, dict[str, Any]]]:
    """Return the capabilities and their options for a zone."""
    capabilities: list[str] = []
    options: dict[str, dict[str, Any]] = {}
    zone_type = zone_capabilities.get("type")
    celsius = get_nested(zone_capabilities, "temperatures", "celsius")

    if zone_type == TYPE_HOT_WATER:
        if zone_capabilities.get("canSetTemperature"):
            capabilities.append(CAP_HOT_WATER_TEMPERATURE)
            options[CAP_HOT_WATER_TEMPERATURE] = _temperature_options(celsius, 30, 70)
        else:
            capabilities.append(CAP_HOT_WATER_ONOFF)
    elif zone_type == TYPE_HEATING:
        capabilities.extend((CAP_TARGET_TEMPERATURE, CAP_POWER_MODE))
        options[CAP_TARGET_TEMPERATURE] = _temperature_options(celsius, 10, 35)
    elif zone_type == TYPE_AIR_CONDITIONING:
        capabilities.extend((CAP_TARGET_TEMPERATURE, CAP_AC_MODE))
        for capability, key in _AC_OPTIONAL_CAPABILITIES:
            if _supported_for_ac(key, zone_capabilities):
                capabilities.append(capability)
        options[CAP_TARGET_TEMPERATURE] = _ac_temperature_options(zone_capabilities)

    if CAP_TARGET_TEMPERATURE in options:
        # Setting a temperature accepts a duration for timer overlays
        options[CAP_TARGET_TEMPERATURE]["duration"] = True
    return capabilities, options


def capabilities_from_zone_state(
    zone: Mapping[str, Any], zone_state: Mapping[str, Any]
) -> list[str]:
    """Return the sensor capabilities a zone reports."""
    capabilities: list[str] = []
    if get_nested(zone, "openWindowDetection", "supported") is True:
        capabilities.append(CAP_DETECT_OPEN_WINDOW)
    if get_nested(zone_state, "sensorDataPoints", "insideTemperature"):
        capabilities.append(CAP_MEASURE_TEMPERATURE)
    if get_nested(zone_state, "sensorDataPoints", "humidity"):
        capabilities.append(CAP_MEASURE_HUMIDITY)
    return capabilities


def battery_type(device_type: str) -> list[str]:
    if "RU" in device_type or "SU" in device_type:
        return ["AAA", "AAA", "AAA"]
    if "VA" in device_type:
        return ["AA", "AA"]
    return []


def device_kind(device_type: str, zone_type: str | None) -> str | None:
    """Return the kind of a device, None for devices that are not paired."""
    if zone_type == TYPE_HOT_WATER:
        return KIND_HOT_WATER
    if "RU" in device_type or "SU" in device_type:
        return KIND_THERMOSTAT
    if "VA" in device_type:
        return KIND_VALVE
    if "WR" in device_type:
        return KIND_AIR_CONDITIONING
    return None


def merge_hot_water(
    hot_water: DeviceDescriptor, devices: list[DeviceDescriptor]
) -> None:
    """Fold a hot-water zone into the thermostat that shares its serial.

    Without such a thermostat the hot-water zone becomes a device of its own.
    """
    for device in devices:
        if device.serial != hot_water.serial or device.home_id != hot_water.home_id:
            continue
        if CAP_HOT_WATER_TEMPERATURE in hot_water.capabilities:
            device.capabilities.append(CAP_HOT_WATER_TEMPERATURE)
            if CAP_HOT_WATER_TEMPERATURE in hot_water.capabilities_options:
                device.capabilities_options[CAP_HOT_WATER_TEMPERATURE] = (
                    hot_water.capabilities_options[CAP_HOT_WATER_TEMPERATURE]
                )
        if CAP_HOT_WATER_ONOFF in hot_water.capabilities:
            device.capabilities.append(CAP_HOT_WATER_ONOFF)
        device.hot_water_zone_id = hot_water.zone_id
        device.hot_water_zone_type = hot_water.zone_type
        _LOGGER.debug("Merged hot water zone into device %s", device.serial)
        return
    devices.append(hot_water)


async def async_discover_devices(
    api: TadoApiClient, home: Mapping[str, Any]
) -> list[DeviceDescriptor]:
    """Return the devices of ``home`` that can be paired."""
    home_id = str(home["id"])
    devices: list[DeviceDescriptor] = []
    hot_water: list[DeviceDescriptor] = []
    found: list[str] = []

    for zone in await api.async_get_zones(home_id):
        zone_capabilities = await api.async_get_zone_capabilities(home_id, zone["id"])
        zone_state = await api.async_get_zone_state(home_id, zone["id"])
        capabilities, options = capabilities_from_zone_capabilities(
            zone_capabilities or {}
        )
        capabilities.extend(capabilities_from_zone_state(zone, zone_state or {}))

        for device in zone.get("devices") or []:
            serial = device.get("serialNo")
            device_type = device.get("deviceType") or ""
            if not serial:
                continue
            found.append(serial)
            kind = device_kind(device_type, zone.get("type"))
            if kind is None:
                continue
            descriptor = DeviceDescriptor(
                serial=serial,
                name=f"{zone.get('name', zone['id'])} - {DEVICE_NAMES[kind]}",
                kind=kind,
                home_id=home_id,
                zone_id=int(zone["id"]),
                zone_type=zone.get("type"),
                device_type=device_type,
                capabilities=list(capabilities),
                capabilities_options={
                    key: dict(value) for key, value in options.items()
                },
                tado_capabilities=zone_capabilities or {},
            )
            if device.get("batteryState"):
                descriptor.capabilities.append(CAP_ALARM_BATTERY)
                descriptor.has_battery = True
            if zone.get("type") == TYPE_HOT_WATER:
                hot_water.append(descriptor)
            else:
                devices.append(descriptor)

    for descriptor in hot_water:
        merge_hot_water(descriptor, devices)

    _LOGGER.info("Devices found in home %s: %s", home_id, ", ".join(found))
    return devices
