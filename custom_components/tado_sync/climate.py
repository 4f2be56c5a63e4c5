"""Climate entities for Tado thermostats, valves and air conditioners."""

from __future__ import annotations

from typing import Any

from homeassistant.components.climate import (
    ClimateEntity,
    ClimateEntityFeature,
    HVACMode,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import ATTR_TEMPERATURE, UnitOfTemperature
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import (
    AC_MODES,
    CAP_AC_MODE,
    CAP_FAN_LEVEL,
    CAP_FAN_SPEED,
    CAP_MEASURE_HUMIDITY,
    CAP_MEASURE_TEMPERATURE,
    CAP_POWER_MODE,
    CAP_SWING,
    CAP_TARGET_TEMPERATURE,
    CONST_MODE_AUTO,
    CONST_MODE_COOL,
    CONST_MODE_DRY,
    CONST_MODE_FAN,
    CONST_MODE_HEAT,
    CONST_MODE_OFF,
    CONST_OVERLAY_TADO_MODE,
    DOMAIN,
    KIND_AIR_CONDITIONING,
    POWER_OFF,
    POWER_ON,
)
from .device import TadoDevice
from .entity import TadoDeviceEntity

TADO_TO_HA_AC_MODE = {
    CONST_MODE_COOL: HVACMode.COOL,
    CONST_MODE_HEAT: HVACMode.HEAT,
    CONST_MODE_DRY: HVACMode.DRY,
    CONST_MODE_FAN: HVACMode.FAN_ONLY,
    CONST_MODE_AUTO: HVACMode.HEAT_COOL,
    CONST_MODE_OFF: HVACMode.OFF,
}
HA_TO_TADO_AC_MODE = {value: key for key, value in TADO_TO_HA_AC_MODE.items()}


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    """Set up climate entities for the paired devices."""
    data = hass.data[DOMAIN][entry.entry_id]
    entities: list[ClimateEntity] = []
    for device in data.devices:
        if device.is_hot_water:
            continue
        if device.kind == KIND_AIR_CONDITIONING:
            entities.append(TadoAirConditioningClimate(device))
        elif device.has_capability(CAP_TARGET_TEMPERATURE):
            entities.append(TadoHeatingClimate(device))
    async_add_entities(entities)


class TadoClimate(TadoDeviceEntity, ClimateEntity):
    """Temperature control of a Tado zone."""

    _attr_name = None
    _attr_temperature_unit = UnitOfTemperature.CELSIUS

    def __init__(self, device: TadoDevice) -> None:
        """Initialize the climate entity."""
        options = device.descriptor.capabilities_options.get(
            CAP_TARGET_TEMPERATURE, {}
        )
        self._attr_min_temp = options.get("min", 5)
        self._attr_max_temp = options.get("max", 30)
        self._attr_target_temperature_step = options.get("step", 0.5)
        self._attr_supported_features = ClimateEntityFeature.TARGET_TEMPERATURE
        super().__init__(device, "climate")

    @callback
    def _async_update_attrs(self) -> None:
        values = self._device.values
        self._attr_current_temperature = values.get(CAP_MEASURE_TEMPERATURE)
        self._attr_current_humidity = values.get(CAP_MEASURE_HUMIDITY)
        self._attr_target_temperature = values.get(CAP_TARGET_TEMPERATURE)

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        return {"overlay": self._device.overlay}

    async def async_set_temperature(self, **kwargs: Any) -> None:
        """Set a new target temperature."""
        temperature = kwargs.get(ATTR_TEMPERATURE)
        if temperature is None:
            return
        await self._device.async_set_target_temperature(temperature)


class TadoHeatingClimate(TadoClimate):
    """Thermostat or radiator valve."""

    _attr_hvac_modes = [HVACMode.HEAT, HVACMode.OFF, HVACMode.AUTO]

    @callback
    def _async_update_attrs(self) -> None:
        super()._async_update_attrs()
        if self._device.overlay == CONST_OVERLAY_TADO_MODE:
            self._attr_hvac_mode = HVACMode.AUTO
        elif self._device.values.get(CAP_POWER_MODE) == POWER_OFF:
            self._attr_hvac_mode = HVACMode.OFF
        elif self._device.overlay is None:
            self._attr_hvac_mode = None
        else:
            self._attr_hvac_mode = HVACMode.HEAT

    async def async_set_hvac_mode(self, hvac_mode: HVACMode) -> None:
        """Set the HVAC mode."""
        if hvac_mode == HVACMode.AUTO:
            await self._device.async_resume_schedule()
        elif hvac_mode == HVACMode.OFF:
            await self._device.async_set_power_mode(POWER_OFF)
        else:
            await self._device.async_set_power_mode(POWER_ON)


class TadoAirConditioningClimate(TadoClimate):
    """Air conditioning unit."""

    def __init__(self, device: TadoDevice) -> None:
        """Initialize the AC entity."""
        super().__init__(device)
        tado_capabilities = device.descriptor.tado_capabilities
        self._attr_hvac_modes = [
            TADO_TO_HA_AC_MODE[mode]
            for mode in AC_MODES
            if mode == CONST_MODE_OFF or isinstance(tado_capabilities.get(mode), dict)
        ]
        self._fan_capability = next(
            (
                capability
                for capability in (CAP_FAN_SPEED, CAP_FAN_LEVEL)
                if device.has_capability(capability)
            ),
            None,
        )
        if self._fan_capability is not None:
            self._attr_supported_features |= ClimateEntityFeature.FAN_MODE
            self._attr_fan_modes = self._supported_values(
                "fanSpeeds" if self._fan_capability == CAP_FAN_SPEED else "fanLevel"
            )
        if device.has_capability(CAP_SWING):
            self._attr_supported_features |= ClimateEntityFeature.SWING_MODE
            self._attr_swing_modes = self._supported_values("swings")

    def _supported_values(self, key: str) -> list[str]:
        supported: list[str] = []
        for mode in AC_MODES:
            mode_capabilities = self._device.descriptor.tado_capabilities.get(mode)
            if not isinstance(mode_capabilities, dict):
                continue
            for value in mode_capabilities.get(key) or []:
                if value not in supported:
                    supported.append(value)
        return supported

    @callback
    def _async_update_attrs(self) -> None:
        super()._async_update_attrs()
        values = self._device.values
        self._attr_hvac_mode = TADO_TO_HA_AC_MODE.get(values.get(CAP_AC_MODE))
        if getattr(self, "_fan_capability", None) is not None:
            self._attr_fan_mode = values.get(self._fan_capability)
        self._attr_swing_mode = values.get(CAP_SWING)

    async def async_set_hvac_mode(self, hvac_mode: HVACMode) -> None:
        """Set the AC mode."""
        await self._device.async_set_values({CAP_AC_MODE: HA_TO_TADO_AC_MODE[hvac_mode]})

    async def async_set_fan_mode(self, fan_mode: str) -> None:
        if self._fan_capability is None:
            return
        await self._device.async_set_values({self._fan_capability: fan_mode})

    async def async_set_swing_mode(self, swing_mode: str) -> None:
        await self._device.async_set_values({CAP_SWING: swing_mode})
