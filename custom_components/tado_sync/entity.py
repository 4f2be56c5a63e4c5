"""Base class for Tado entities."""

import logging

from homeassistant.core import callback
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity import Entity

from .const import DEFAULT_NAME, DOMAIN
from .device import TadoDevice


class TadoDeviceEntity(Entity):
    """Base implementation for entities of a paired Tado device."""

    _attr_should_poll = False
    _attr_has_entity_name = True

    _LOGGER = logging.getLogger(__name__)

    def __init__(self, device: TadoDevice, key: str) -> None:
        """Initialize a Tado device entity."""
        super().__init__()
        self._device = device
        self._attr_unique_id = f"{device.device_id}_{key}"
        self._attr_device_info = DeviceInfo(
            configuration_url=f"https://app.tado.com/en/main/settings/rooms-and-devices/device/{device.serial}",
            identifiers={(DOMAIN, device.device_id)},
            name=device.name,
            manufacturer=DEFAULT_NAME,
            model=device.descriptor.device_type or device.kind,
        )
        self._async_update_attrs()

    @property
    def available(self) -> bool:
        return self._device.available

    async def async_added_to_hass(self) -> None:
        """Register for device updates."""
        self.async_on_remove(
            self._device.async_add_listener(self._async_update_callback)
        )

    @callback
    def _async_update_callback(self) -> None:
        """Update and write state."""
        self._async_update_attrs()
        self.async_write_ha_state()

    @callback
    def _async_update_attrs(self) -> None:
        """Copy the device values into the entity attributes."""
