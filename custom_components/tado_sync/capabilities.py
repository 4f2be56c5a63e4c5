"""Capability sets: validation and overlay construction per product line."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
import logging
from typing import Any

from homeassistant.exceptions import ServiceValidationError

from .const import (
    CAP_AC_LIGHT,
    CAP_AC_MODE,
    CAP_FAN_LEVEL,
    CAP_FAN_SPEED,
    CAP_HORIZONTAL_SWING,
    CAP_HOT_WATER_ONOFF,
    CAP_HOT_WATER_TEMPERATURE,
    CAP_POWER_MODE,
    CAP_SWING,
    CAP_TARGET_TEMPERATURE,
    CAP_VERTICAL_SWING,
    CONST_MODE_COOL,
    CONST_MODE_HEAT,
    CONST_MODE_OFF,
    CONST_OVERLAY_TIMER,
    KIND_AIR_CONDITIONING,
    KIND_HOT_WATER,
    KIND_THERMOSTAT,
    KIND_VALVE,
    MAX_OVERLAY_DURATION_MS,
    MIN_OVERLAY_DURATION_MS,
    POWER_OFF,
    POWER_ON,
    TYPE_AIR_CONDITIONING,
    TYPE_HEATING,
    TYPE_HOT_WATER,
)

_LOGGER = logging.getLogger(__name__)

# capability, key in the zone capabilities of a mode, overlay setting key, preferred default
_AC_OPTIONS = (
    (CAP_FAN_SPEED, "fanSpeeds", "fanSpeed", "AUTO"),
    (CAP_FAN_LEVEL, "fanLevel", "fanLevel", "AUTO"),
    (CAP_SWING, "swings", "swing", "ON"),
    (CAP_VERTICAL_SWING, "verticalSwing", "verticalSwing", "ON"),
    (CAP_HORIZONTAL_SWING, "horizontalSwing", "horizontalSwing", "ON"),
)


def _check_range(value: float, options: Mapping[str, Any] | None) -> None:
    if not options:
        return
    minimum = options.get("min")
    maximum = options.get("max")
    if (isinstance(minimum, (int, float)) and value < minimum) or (
        isinstance(maximum, (int, float)) and value > maximum
    ):
        raise ServiceValidationError(
            f"Temperature must be between {minimum} and {maximum}"
        )


class CapabilitySet(ABC):
    """Capabilities of one product line."""

    zone_type: str = TYPE_HEATING
    capabilities: tuple[str, ...] = ()

    def __init__(
        self,
        options: Mapping[str, Mapping[str, Any]] | None = None,
        tado_capabilities: Mapping[str, Any] | None = None,
    ) -> None:
        self._options = options or {}
        self._tado_capabilities = tado_capabilities or {}

    @abstractmethod
    def validate(
        self, values: Mapping[str, Any], current: Mapping[str, Any] | None = None
    ) -> None:
        """Raise ServiceValidationError when ``values`` can not be applied."""

    @abstractmethod
    def build_setting(
        self, values: Mapping[str, Any], current: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Return the overlay setting for ``values`` on top of ``current``."""

    def build_overlay(
        self, values: Mapping[str, Any], current: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Validate ``values`` and return the overlay setting."""
        self.validate(values, current)
        setting = self.build_setting(values, current)
        setting["type"] = self.zone_type
        _LOGGER.debug("Built %s overlay setting: %s", self.zone_type, setting)
        return setting


class HeatingCapabilitySet(CapabilitySet):
    """Thermostats and radiator valves."""

    zone_type = TYPE_HEATING
    capabilities = (CAP_TARGET_TEMPERATURE, CAP_POWER_MODE)

    def validate(
        self, values: Mapping[str, Any], current: Mapping[str, Any] | None = None
    ) -> None:
        target = values.get(CAP_TARGET_TEMPERATURE)
        if isinstance(target, (int, float)):
            _check_range(target, self._options.get(CAP_TARGET_TEMPERATURE))
        power = values.get(CAP_POWER_MODE)
        if power is not None and power not in (POWER_ON, POWER_OFF):
            raise ServiceValidationError(f"Unsupported power mode {power}")

    def build_setting(
        self, values: Mapping[str, Any], current: Mapping[str, Any]
    ) -> dict[str, Any]:
        power = values.get(CAP_POWER_MODE) or POWER_ON
        setting: dict[str, Any] = {"power": power}
        if power == POWER_OFF:
            return setting
        celsius = values.get(CAP_TARGET_TEMPERATURE)
        if celsius is None:
            celsius = current.get(CAP_TARGET_TEMPERATURE)
        if celsius is not None:
            setting["temperature"] = {"celsius": celsius}
        return setting


class HotWaterCapabilitySet(CapabilitySet):
    """Hot water zones, stand-alone or merged into a thermostat."""

    zone_type = TYPE_HOT_WATER
    capabilities = (CAP_HOT_WATER_TEMPERATURE, CAP_HOT_WATER_ONOFF)

    def validate(
        self, values: Mapping[str, Any], current: Mapping[str, Any] | None = None
    ) -> None:
        target = values.get(CAP_HOT_WATER_TEMPERATURE)
        if target is None:
            return
        if CAP_HOT_WATER_TEMPERATURE not in self._options:
            raise ServiceValidationError(
                "The hot water temperature of this zone can not be set"
            )
        _check_range(target, self._options[CAP_HOT_WATER_TEMPERATURE])

    def build_setting(
        self, values: Mapping[str, Any], current: Mapping[str, Any]
    ) -> dict[str, Any]:
        onoff = values.get(CAP_HOT_WATER_ONOFF)
        power = POWER_ON if onoff is None or onoff else POWER_OFF
        setting: dict[str, Any] = {"power": power}
        if power == POWER_ON and CAP_HOT_WATER_TEMPERATURE in self._options:
            celsius = values.get(CAP_HOT_WATER_TEMPERATURE)
            if celsius is None:
                celsius = current.get(CAP_HOT_WATER_TEMPERATURE)
            if celsius is not None:
                setting["temperature"] = {"celsius": celsius}
        return setting


class AirConditioningCapabilitySet(CapabilitySet):
    """Air conditioning units, driven by the capabilities of each AC mode."""

    zone_type = TYPE_AIR_CONDITIONING
    capabilities = (
        CAP_TARGET_TEMPERATURE,
        CAP_AC_MODE,
        CAP_FAN_SPEED,
        CAP_FAN_LEVEL,
        CAP_SWING,
        CAP_VERTICAL_SWING,
        CAP_HORIZONTAL_SWING,
        CAP_AC_LIGHT,
    )

    def _resolve_mode(
        self, values: Mapping[str, Any], current: Mapping[str, Any]
    ) -> str:
        mode = values.get(CAP_AC_MODE) or current.get(CAP_AC_MODE)
        if not self._tado_capabilities or not mode:
            raise ServiceValidationError(
                "The capabilities of this air conditioning zone are unknown"
            )
        if mode == CONST_MODE_OFF:
            return mode
        # A temperature can only be applied while heating or cooling
        if values.get(CAP_TARGET_TEMPERATURE) is not None and mode not in (
            CONST_MODE_HEAT,
            CONST_MODE_COOL,
        ):
            mode = CONST_MODE_COOL
        if not isinstance(self._tado_capabilities.get(mode), dict):
            raise ServiceValidationError(f"Mode {mode} is not supported by this zone")
        return mode

    def _temperature(
        self,
        values: Mapping[str, Any],
        current: Mapping[str, Any],
        temperatures: Mapping[str, Any],
    ) -> float:
        for source in (values, current):
            if source.get(CAP_TARGET_TEMPERATURE):
                return source[CAP_TARGET_TEMPERATURE]
        minimum = temperatures.get("min")
        maximum = temperatures.get("max")
        if minimum and maximum:
            return round((minimum + maximum) / 2)
        return minimum

    def validate(
        self, values: Mapping[str, Any], current: Mapping[str, Any] | None = None
    ) -> None:
        current = current or {}
        mode = self._resolve_mode(values, current)
        if mode == CONST_MODE_OFF:
            return
        mode_capabilities = self._tado_capabilities[mode]
        temperatures = (mode_capabilities.get("temperatures") or {}).get("celsius")
        if temperatures:
            _check_range(
                self._temperature(values, current, temperatures), temperatures
            )
        for capability, key, _setting_key, _default in _AC_OPTIONS:
            requested = values.get(capability)
            if not requested:
                continue
            supported = mode_capabilities.get(key)
            if not supported:
                raise ServiceValidationError(
                    f"{capability} is not supported in mode {mode}"
                )
            if requested not in supported:
                raise ServiceValidationError(
                    f"{capability} must be one of {', '.join(supported)}"
                )

    def build_setting(
        self, values: Mapping[str, Any], current: Mapping[str, Any]
    ) -> dict[str, Any]:
        mode = self._resolve_mode(values, current)
        if mode == CONST_MODE_OFF:
            return {"power": POWER_OFF}
        mode_capabilities = self._tado_capabilities[mode]
        setting: dict[str, Any] = {"power": POWER_ON, "mode": mode}
        temperatures = (mode_capabilities.get("temperatures") or {}).get("celsius")
        if temperatures:
            setting["temperature"] = {
                "celsius": self._temperature(values, current, temperatures)
            }
        for capability, key, setting_key, default in _AC_OPTIONS:
            supported = mode_capabilities.get(key)
            if not supported:
                continue
            value = values.get(capability) or current.get(capability)
            if value not in supported:
                value = default if default in supported else supported[0]
            setting[setting_key] = value
        if mode_capabilities.get("light"):
            setting["light"] = (
                values.get(CAP_AC_LIGHT) or current.get(CAP_AC_LIGHT) or POWER_ON
            )
        return setting


CAPABILITY_SETS: dict[str, type[CapabilitySet]] = {
    KIND_THERMOSTAT: HeatingCapabilitySet,
    KIND_VALVE: HeatingCapabilitySet,
    KIND_AIR_CONDITIONING: AirConditioningCapabilitySet,
    KIND_HOT_WATER: HotWaterCapabilitySet,
}


def get_capability_set(
    kind: str,
    options: Mapping[str, Mapping[str, Any]] | None = None,
    tado_capabilities: Mapping[str, Any] | None = None,
) -> CapabilitySet:
    """Return the capability set of a device kind."""
    try:
        capability_set = CAPABILITY_SETS[kind]
    except KeyError as err:
        raise ValueError(f"Unknown Tado device kind {kind}") from err
    return capability_set(options, tado_capabilities)


def build_termination(
    duration_ms: float | None, fallback: str, timer_minutes: int
) -> dict[str, Any]:
    """Return the overlay termination.

    A duration, in milliseconds, always produces a timer overlay. Without one
    the configured fallback termination is used.
    """
    if duration_ms:
        if not MIN_OVERLAY_DURATION_MS <= duration_ms <= MAX_OVERLAY_DURATION_MS:
            raise ServiceValidationError(
                "Duration must be between 1 second and 24 hours"
            )
        return {
            "type": CONST_OVERLAY_TIMER,
            "durationInSeconds": int(duration_ms // 1000),
        }
    termination: dict[str, Any] = {"type": fallback}
    if fallback == CONST_OVERLAY_TIMER:
        termination["durationInSeconds"] = int(timer_minutes) * 60
    return termination
