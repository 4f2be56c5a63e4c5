"""Services for the Tado Sync integration."""

from datetime import timedelta
import logging

import voluptuous as vol

from homeassistant.core import HomeAssistant, ServiceCall, callback
from homeassistant.exceptions import ServiceValidationError
from homeassistant.helpers import config_validation as cv, selector

from .const import (
    AC_MODES,
    ATTR_AC_MODE,
    ATTR_DEVICE,
    ATTR_DURATION,
    ATTR_FAN_LEVEL,
    ATTR_FAN_SPEED,
    ATTR_HORIZONTAL_SWING,
    ATTR_POWER,
    ATTR_SWING,
    ATTR_TEMPERATURE,
    ATTR_VERTICAL_SWING,
    CAP_AC_MODE,
    CAP_FAN_LEVEL,
    CAP_FAN_SPEED,
    CAP_HORIZONTAL_SWING,
    CAP_SWING,
    CAP_VERTICAL_SWING,
    CONF_CONFIG_ENTRY,
    DOMAIN,
    KIND_AIR_CONDITIONING,
    POWER_OFF,
    POWER_ON,
    SERVICE_BOOST_HEATING,
    SERVICE_RESUME_SCHEDULE,
    SERVICE_SET_AC_MODE,
    SERVICE_SET_HOT_WATER,
    SERVICE_SET_POWER_MODE,
)
from .device import TadoDevice

_LOGGER = logging.getLogger(__name__)

_TARGET = {
    vol.Required(CONF_CONFIG_ENTRY): selector.ConfigEntrySelector(
        {
            "integration": DOMAIN,
        }
    ),
    vol.Required(ATTR_DEVICE): cv.string,
}

SCHEMA_DEVICE = vol.Schema(_TARGET)
SCHEMA_SET_POWER_MODE = vol.Schema(
    {
        **_TARGET,
        vol.Required(ATTR_POWER): vol.In([POWER_ON, POWER_OFF]),
        vol.Optional(ATTR_DURATION): cv.positive_time_period,
    }
)
SCHEMA_SET_HOT_WATER = vol.Schema(
    {
        **_TARGET,
        vol.Optional(ATTR_POWER): vol.In([POWER_ON, POWER_OFF]),
        vol.Optional(ATTR_TEMPERATURE): vol.Coerce(float),
        vol.Optional(ATTR_DURATION): cv.positive_time_period,
    }
)
SCHEMA_SET_AC_MODE = vol.Schema(
    {
        **_TARGET,
        vol.Required(ATTR_AC_MODE): vol.In(AC_MODES),
        vol.Optional(ATTR_FAN_SPEED): cv.string,
        vol.Optional(ATTR_FAN_LEVEL): cv.string,
        vol.Optional(ATTR_SWING): cv.string,
        vol.Optional(ATTR_VERTICAL_SWING): cv.string,
        vol.Optional(ATTR_HORIZONTAL_SWING): cv.string,
        vol.Optional(ATTR_DURATION): cv.positive_time_period,
    }
)

# service field -> capability
_AC_FIELDS = {
    ATTR_AC_MODE: CAP_AC_MODE,
    ATTR_FAN_SPEED: CAP_FAN_SPEED,
    ATTR_FAN_LEVEL: CAP_FAN_LEVEL,
    ATTR_SWING: CAP_SWING,
    ATTR_VERTICAL_SWING: CAP_VERTICAL_SWING,
    ATTR_HORIZONTAL_SWING: CAP_HORIZONTAL_SWING,
}


def _duration_ms(call: ServiceCall) -> float | None:
    duration: timedelta | None = call.data.get(ATTR_DURATION)
    if duration is None:
        return None
    return duration.total_seconds() * 1000


def _get_device(hass: HomeAssistant, call: ServiceCall) -> TadoDevice:
    entry_id: str = call.data[CONF_CONFIG_ENTRY]
    serial: str = call.data[ATTR_DEVICE]

    entry = hass.config_entries.async_get_entry(entry_id)
    if entry is None:
        raise ServiceValidationError("Config entry not found")
    data = hass.data.get(DOMAIN, {}).get(entry_id)
    if data is None:
        raise ServiceValidationError("Config entry is not loaded")
    device = data.get_device(serial)
    if device is None:
        raise ServiceValidationError(f"Device {serial} not found")
    return device


@callback
def setup_services(hass: HomeAssistant) -> None:
    """Set up the services for the Tado Sync integration."""

    async def set_power_mode(call: ServiceCall) -> None:
        """Switch a heating zone on or off."""
        device = _get_device(hass, call)
        _LOGGER.debug("Set power mode of %s to %s", device.serial, call.data[ATTR_POWER])
        await device.async_set_power_mode(call.data[ATTR_POWER], _duration_ms(call))

    async def resume_schedule(call: ServiceCall) -> None:
        """Return a zone to its smart schedule."""
        device = _get_device(hass, call)
        await device.async_resume_schedule()

    async def boost_heating(call: ServiceCall) -> None:
        """Heat at the maximum temperature for 30 minutes."""
        device = _get_device(hass, call)
        await device.async_boost_heating()

    async def set_hot_water(call: ServiceCall) -> None:
        """Switch the hot water or change its temperature."""
        device = _get_device(hass, call)
        power = call.data.get(ATTR_POWER)
        await device.async_set_hot_water(
            None if power is None else power == POWER_ON,
            call.data.get(ATTR_TEMPERATURE),
            _duration_ms(call),
        )

    async def set_ac_mode(call: ServiceCall) -> None:
        """Change the mode, fan and swing of an air conditioner."""
        device = _get_device(hass, call)
        if device.kind != KIND_AIR_CONDITIONING:
            raise ServiceValidationError(
                f"Device {device.serial} is not an air conditioner"
            )
        values = {
            capability: call.data[field]
            for field, capability in _AC_FIELDS.items()
            if field in call.data
        }
        await device.async_set_values(values, _duration_ms(call))

    hass.services.async_register(
        DOMAIN, SERVICE_SET_POWER_MODE, set_power_mode, SCHEMA_SET_POWER_MODE
    )
    hass.services.async_register(
        DOMAIN, SERVICE_RESUME_SCHEDULE, resume_schedule, SCHEMA_DEVICE
    )
    hass.services.async_register(
        DOMAIN, SERVICE_BOOST_HEATING, boost_heating, SCHEMA_DEVICE
    )
    hass.services.async_register(
        DOMAIN, SERVICE_SET_HOT_WATER, set_hot_water, SCHEMA_SET_HOT_WATER
    )
    hass.services.async_register(
        DOMAIN, SERVICE_SET_AC_MODE, set_ac_mode, SCHEMA_SET_AC_MODE
    )
