"""Support for Tado smart climate devices, kept in sync by webhooks and polling."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
import logging
from typing import Any

from homeassistant.components import webhook
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import CONF_WEBHOOK_ID, Platform
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import ConfigEntryAuthFailed, ConfigEntryNotReady
from homeassistant.helpers import config_entry_oauth2_flow, config_validation as cv
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from homeassistant.helpers.typing import ConfigType

from .api import ConfigEntryAuth, TadoApiClient, TadoApiError, TadoAuthError
from .const import (
    CONF_DEVICES,
    CONF_FALLBACK,
    CONF_SCAN_INTERVAL_SECONDS,
    CONF_TIMER_DURATION,
    CONST_OVERLAY_MANUAL,
    CONST_OVERLAY_TADO_DEFAULT,
    CONST_OVERLAY_TADO_MODE,
    CONST_OVERLAY_TADO_OPTIONS,
    DEFAULT_SCAN_INTERVAL_SECONDS,
    DEFAULT_TIMER_DURATION,
    DOMAIN,
)
from .device import TadoDevice
from .engine import TadoSyncEngine
from .event_bus import TadoEventBus
from .models import DeviceDescriptor
from .scheduler import HassTimers
from .services import setup_services
from .webhook import HassWebhookChannel

_LOGGER = logging.getLogger(__name__)


PLATFORMS = [
    Platform.BINARY_SENSOR,
    Platform.CLIMATE,
    Platform.WATER_HEATER,
]

CONFIG_SCHEMA = cv.config_entry_only_config_schema(DOMAIN)


@dataclass
class TadoSyncData:
    """Runtime objects of one config entry."""

    engine: TadoSyncEngine
    devices: list[TadoDevice] = field(default_factory=list)

    def get_device(self, device_id: str) -> TadoDevice | None:
        """Return a device by serial or registry id."""
        for device in self.devices:
            if device_id in (device.serial, device.device_id):
                return device
        return None


def _scan_interval(options: dict[str, Any]) -> timedelta:
    scan_interval = options.get(CONF_SCAN_INTERVAL_SECONDS, DEFAULT_SCAN_INTERVAL_SECONDS)
    try:
        scan_interval = int(scan_interval)
    except (TypeError, ValueError):
        scan_interval = DEFAULT_SCAN_INTERVAL_SECONDS
    if scan_interval < 1:
        scan_interval = DEFAULT_SCAN_INTERVAL_SECONDS
    return timedelta(seconds=scan_interval)


async def async_setup(hass: HomeAssistant, config: ConfigType) -> bool:
    """Set up Tado Sync."""

    setup_services(hass)
    return True


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Tado Sync from a config entry."""

    _async_import_options_from_data_if_missing(hass, entry)
    webhook_id = _async_ensure_webhook_id(hass, entry)

    implementation = (
        await config_entry_oauth2_flow.async_get_config_entry_implementation(
            hass, entry
        )
    )
    oauth_session = config_entry_oauth2_flow.OAuth2Session(hass, entry, implementation)
    api = TadoApiClient(async_get_clientsession(hass), ConfigEntryAuth(oauth_session))

    try:
        await api.async_get_me()
    except TadoAuthError as ex:
        raise ConfigEntryAuthFailed from ex
    except TadoApiError as ex:
        raise ConfigEntryNotReady from ex

    engine = TadoSyncEngine(
        api,
        TadoEventBus(hass, entry.entry_id),
        HassTimers(hass),
        HassWebhookChannel(hass, webhook_id),
        hass.async_create_task,
        interval=_scan_interval(dict(entry.options)),
    )
    data = TadoSyncData(engine)

    @callback
    def _async_store_devices(_device: TadoDevice) -> None:
        """Write corrected zones back to the config entry."""
        hass.config_entries.async_update_entry(
            entry,
            data={
                **entry.data,
                CONF_DEVICES: [device.descriptor.as_dict() for device in data.devices],
            },
        )

    for raw in entry.data.get(CONF_DEVICES, []):
        try:
            descriptor = DeviceDescriptor.from_dict(raw)
        except (KeyError, TypeError) as ex:
            _LOGGER.warning("Skipping invalid stored Tado device %s: %s", raw, ex)
            continue
        data.devices.append(
            TadoDevice(
                engine,
                descriptor,
                entry.options,
                fire_event=hass.bus.async_fire,
                on_zone_changed=_async_store_devices,
            )
        )

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = data

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    for device in data.devices:
        device.async_start()

    entry.async_on_unload(entry.add_update_listener(_async_update_listener))

    return True


@callback
def _async_ensure_webhook_id(hass: HomeAssistant, entry: ConfigEntry) -> str:
    webhook_id = entry.data.get(CONF_WEBHOOK_ID)
    if webhook_id:
        return webhook_id
    webhook_id = webhook.async_generate_id()
    hass.config_entries.async_update_entry(
        entry, data={**entry.data, CONF_WEBHOOK_ID: webhook_id}
    )
    return webhook_id


@callback
def _async_import_options_from_data_if_missing(hass: HomeAssistant, entry: ConfigEntry):
    options = dict(entry.options)
    if CONF_FALLBACK not in options:
        options[CONF_FALLBACK] = entry.data.get(
            CONF_FALLBACK, CONST_OVERLAY_TADO_DEFAULT
        )
    options.setdefault(CONF_TIMER_DURATION, DEFAULT_TIMER_DURATION)
    options.setdefault(CONF_SCAN_INTERVAL_SECONDS, DEFAULT_SCAN_INTERVAL_SECONDS)

    if options[CONF_FALLBACK] not in CONST_OVERLAY_TADO_OPTIONS:
        if options[CONF_FALLBACK]:
            options[CONF_FALLBACK] = CONST_OVERLAY_TADO_MODE
        else:
            options[CONF_FALLBACK] = CONST_OVERLAY_MANUAL

    if options != entry.options:
        hass.config_entries.async_update_entry(entry, options=options)


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle options update."""
    data: TadoSyncData | None = hass.data.get(DOMAIN, {}).get(entry.entry_id)
    if data is None:
        return
    for device in data.devices:
        device.update_options(entry.options)
    data.engine.scheduler.set_interval(_scan_interval(dict(entry.options)))


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if not unload_ok:
        return False
    data: TadoSyncData = hass.data[DOMAIN].pop(entry.entry_id)
    for device in data.devices:
        device.async_stop()
    await data.engine.async_shutdown()
    return True
