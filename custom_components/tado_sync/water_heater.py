"""Water heater entities for Tado hot water zones."""

from __future__ import annotations

from typing import Any

from homeassistant.components.water_heater import (
    WaterHeaterEntity,
    WaterHeaterEntityFeature,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import ATTR_TEMPERATURE, UnitOfTemperature
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import (
    CAP_HOT_WATER_TEMPERATURE,
    CONST_OVERLAY_TADO_MODE,
    DOMAIN,
)
from .device import TadoDevice
from .entity import TadoDeviceEntity

MODE_AUTO = "auto"
MODE_HEAT = "heat"
MODE_OFF = "off"

OPERATION_MODES = [MODE_AUTO, MODE_HEAT, MODE_OFF]


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    """Set up water heater entities for devices with a hot water zone."""
    data = hass.data[DOMAIN][entry.entry_id]
    async_add_entities(
        TadoWaterHeater(device)
        for device in data.devices
        if device.hot_water_zone_id is not None
    )


class TadoWaterHeater(TadoDeviceEntity, WaterHeaterEntity):
    """Hot water of a Tado home."""

    _attr_name = "Hot water"
    _attr_operation_list = OPERATION_MODES
    _attr_temperature_unit = UnitOfTemperature.CELSIUS

    def __init__(self, device: TadoDevice) -> None:
        """Initialize the water heater."""
        self._attr_supported_features = WaterHeaterEntityFeature.OPERATION_MODE
        options = device.descriptor.capabilities_options.get(CAP_HOT_WATER_TEMPERATURE)
        if options:
            self._attr_supported_features |= WaterHeaterEntityFeature.TARGET_TEMPERATURE
            self._attr_min_temp = options.get("min", 30)
            self._attr_max_temp = options.get("max", 70)
        super().__init__(device, "hot_water")

    @callback
    def _async_update_attrs(self) -> None:
        values = self._device.values
        self._attr_target_temperature = values.get(CAP_HOT_WATER_TEMPERATURE)
        power = self._device.hot_water_power
        if self._device.hot_water_overlay == CONST_OVERLAY_TADO_MODE:
            self._attr_current_operation = MODE_AUTO
        elif power is False:
            self._attr_current_operation = MODE_OFF
        elif power is True or self._attr_target_temperature is not None:
            self._attr_current_operation = MODE_HEAT
        else:
            self._attr_current_operation = None

    async def async_set_operation_mode(self, operation_mode: str) -> None:
        """Set the hot water operation mode."""
        if operation_mode == MODE_AUTO:
            await self._device.async_resume_hot_water_schedule()
        else:
            await self._device.async_set_hot_water(power=operation_mode == MODE_HEAT)

    async def async_set_temperature(self, **kwargs: Any) -> None:
        """Set the hot water temperature."""
        temperature = kwargs.get(ATTR_TEMPERATURE)
        if temperature is None:
            return
        await self._device.async_set_hot_water(temperature=temperature)
