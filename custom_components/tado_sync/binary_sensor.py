"""Binary sensors for Tado open window detection and battery state."""

from __future__ import annotations

from typing import Any

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.entity import EntityCategory
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import CAP_ALARM_BATTERY, CAP_DETECT_OPEN_WINDOW, DOMAIN
from .device import TadoDevice
from .entity import TadoDeviceEntity
from .pairing import battery_type


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    """Set up binary sensors for the paired devices."""
    data = hass.data[DOMAIN][entry.entry_id]
    entities: list[BinarySensorEntity] = []
    for device in data.devices:
        if device.has_capability(CAP_DETECT_OPEN_WINDOW):
            entities.append(TadoOpenWindowSensor(device))
        if device.has_capability(CAP_ALARM_BATTERY):
            entities.append(TadoBatterySensor(device))
    async_add_entities(entities)


class TadoCapabilitySensor(TadoDeviceEntity, BinarySensorEntity):
    """Binary sensor mirroring one boolean capability."""

    capability: str

    def __init__(self, device: TadoDevice) -> None:
        super().__init__(device, self.capability)

    @callback
    def _async_update_attrs(self) -> None:
        self._attr_is_on = self._device.values.get(self.capability)


class TadoOpenWindowSensor(TadoCapabilitySensor):
    """Open window detected in the zone."""

    capability = CAP_DETECT_OPEN_WINDOW
    _attr_device_class = BinarySensorDeviceClass.WINDOW
    _attr_name = "Open window"


class TadoBatterySensor(TadoCapabilitySensor):
    """Low battery."""

    capability = CAP_ALARM_BATTERY
    _attr_device_class = BinarySensorDeviceClass.BATTERY
    _attr_entity_category = EntityCategory.DIAGNOSTIC
    _attr_name = "Battery"

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        return {"battery_type": battery_type(self._device.descriptor.device_type)}
