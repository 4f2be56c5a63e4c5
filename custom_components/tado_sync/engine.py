"""State synchronization between the Tado cloud and the paired devices."""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from datetime import timedelta
import logging
from typing import Any

from homeassistant.exceptions import HomeAssistantError

from .api import TadoApiClient, TadoApiError
from .const import (
    DATA_POLLING_INTERVAL,
    DEVICE_REGISTER_TIMEOUT,
    EVENT_STATE_DATA,
    EVENT_ZONE_DATA,
)
from .event_bus import EventBus
from .models import DeviceRecord, ZoneState
from .parsers import parse_zone_memberships, parse_zone_state
from .registry import DeviceRegistry
from .scheduler import PollScheduler, Timers
from .webhook import WebhookChannel, WebhookManager

_LOGGER = logging.getLogger(__name__)

TaskFactory = Callable[[Coroutine[Any, Any, Any]], Any]


@dataclass(frozen=True)
class ZoneStateError:
    """A zone whose state could not be fetched during a sync pass."""

    home_id: str
    zone_id: int
    error: Exception


class TadoSyncEngine:
    """Keeps the registered devices of one Tado account up to date.

    The engine owns the device registry, the polling scheduler and the
    webhook manager. Zone listings and zone states are fetched per home,
    normalized, and published on the event bus where the devices pick up the
    records that concern them.
    """

    def __init__(
        self,
        api: TadoApiClient,
        bus: EventBus,
        timers: Timers,
        channel: WebhookChannel,
        create_task: TaskFactory,
        interval: timedelta = DATA_POLLING_INTERVAL,
        debounce: timedelta = DEVICE_REGISTER_TIMEOUT,
    ) -> None:
        """Initialize the engine."""
        self.api = api
        self.bus = bus
        self.registry = DeviceRegistry()
        self.webhooks = WebhookManager(api, channel, bus, self.registry.homes)
        self.scheduler = PollScheduler(timers, self.async_sync, debounce, interval)
        self.last_errors: list[ZoneStateError] = []
        self._create_task = create_task
        self._syncing_homes: set[str] = set()

    def register_device(self, device: DeviceRecord) -> bool:
        """Start keeping ``device`` up to date."""
        if not self.registry.register(device):
            return False
        self.scheduler.start()
        self._create_task(self.webhooks.async_register(device.home_id))
        return True

    def update_device(self, device: DeviceRecord) -> bool:
        """Store a corrected record, e.g. after the zone of a device changed."""
        return self.registry.update(device)

    def unregister_device(self, device: DeviceRecord | str) -> bool:
        """Stop keeping ``device`` up to date."""
        removed = self.registry.unregister(device)
        homes = self.registry.homes()
        if len(self.registry) == 0:
            self.scheduler.stop()
            self._create_task(self._async_release_webhooks())
        else:
            self._create_task(self.webhooks.async_unregister_orphans(homes))
        return removed

    async def _async_release_webhooks(self) -> None:
        await self.webhooks.async_release(self.registry.homes())

    async def async_sync(self) -> None:
        """Fetch zones and zone states of every home and publish them."""
        errors: list[ZoneStateError] = []
        for home_id in self.registry.zone_index():
            if home_id in self._syncing_homes:
                _LOGGER.debug("Sync of home %s already in progress", home_id)
                continue
            self._syncing_homes.add(home_id)
            try:
                await self._async_update_devices_from_home(home_id)
                # Zone changes found above may have updated the registry
                zone_ids = self.registry.zone_index().get(home_id, set())
                errors.extend(
                    await self._async_update_devices_from_zones(home_id, zone_ids)
                )
            finally:
                self._syncing_homes.discard(home_id)
            if home_id not in self.webhooks.hooks:
                self._create_task(self.webhooks.async_register(home_id))
        self.last_errors = errors

    async def _async_update_devices_from_home(self, home_id: str) -> None:
        try:
            zones = await self.api.async_get_zones(home_id)
        except TadoApiError as err:
            _LOGGER.error("Unable to fetch the zones of home %s: %s", home_id, err)
            return
        self.bus.async_publish(EVENT_ZONE_DATA, parse_zone_memberships(zones))

    async def _async_update_devices_from_zones(
        self, home_id: str, zone_ids: set[int]
    ) -> list[ZoneStateError]:
        states: list[ZoneState] = []
        errors: list[ZoneStateError] = []
        for zone_id in sorted(zone_ids):
            try:
                state = await self.api.async_get_zone_state(home_id, zone_id)
            except TadoApiError as err:
                _LOGGER.error(
                    "Unable to fetch the state of zone %s in home %s: %s",
                    zone_id,
                    home_id,
                    err,
                )
                errors.append(ZoneStateError(home_id, zone_id, err))
                continue
            states.append(ZoneState(home_id, zone_id, parse_zone_state(state)))
        self.bus.async_publish(EVENT_STATE_DATA, states)
        return errors

    async def async_refresh_zone(self, home_id: str, zone_id: int) -> None:
        """Fetch and publish the state of a single zone."""
        errors = await self._async_update_devices_from_zones(home_id, {zone_id})
        if errors:
            _LOGGER.debug("Refresh of zone %s in home %s failed", zone_id, home_id)

    async def async_set_overlay(
        self, home_id: str, zone_id: int, overlay: dict[str, Any]
    ) -> None:
        """Send an overlay to the Tado cloud."""
        _LOGGER.debug("Set overlay for zone %s in home %s: %s", zone_id, home_id, overlay)
        try:
            await self.api.async_set_overlay(home_id, zone_id, overlay)
        except TadoApiError as err:
            raise HomeAssistantError(f"Could not set overlay: {err}") from err
        await self.async_refresh_zone(home_id, zone_id)

    async def async_unset_overlay(self, home_id: str, zone_id: int) -> None:
        """Return a zone to its smart schedule."""
        try:
            await self.api.async_unset_overlay(home_id, zone_id)
        except TadoApiError as err:
            raise HomeAssistantError(f"Could not reset overlay: {err}") from err
        await self.async_refresh_zone(home_id, zone_id)

    async def async_shutdown(self) -> None:
        """Stop polling and release every webhook."""
        self.scheduler.stop()
        for device in self.registry:
            self.registry.unregister(device)
        await self._async_release_webhooks()
