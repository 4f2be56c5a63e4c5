"""Tado webhook registration and inbound delivery handling."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
import logging
from typing import Any, Protocol

from aiohttp.web import Request

from homeassistant.components import webhook
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError

from .api import TadoApiClient, TadoApiError
from .const import DEFAULT_NAME, DOMAIN, EVENT_STATE_DATA, EVENT_ZONE_DATA, WEBHOOK_EVENTS
from .event_bus import EventBus
from .models import ZoneState
from .parsers import parse_webhook_state, parse_zone_memberships

_LOGGER = logging.getLogger(__name__)

DeliveryHandler = Callable[[Any], Awaitable[None]]
HomesProvider = Callable[[], set[str]]


class WebhookChannel(Protocol):
    """Inbound endpoint the Tado cloud delivers to."""

    async def async_open(self, handler: DeliveryHandler) -> str:
        """Start receiving deliveries, return the callback URL."""

    async def async_close(self) -> None:
        """Stop receiving deliveries."""


class HassWebhookChannel:
    """Inbound channel served by the Home Assistant webhook component."""

    def __init__(self, hass: HomeAssistant, webhook_id: str) -> None:
        self._hass = hass
        self._webhook_id = webhook_id
        self._url: str | None = None

    async def async_open(self, handler: DeliveryHandler) -> str:
        if self._url is not None:
            return self._url

        async def _handle_webhook(
            hass: HomeAssistant, webhook_id: str, request: Request
        ) -> None:
            try:
                body = await request.json()
            except ValueError:
                _LOGGER.warning("Received an invalid Tado webhook payload")
                return
            await handler(body)

        webhook.async_register(
            self._hass, DOMAIN, DEFAULT_NAME, self._webhook_id, _handle_webhook
        )
        self._url = webhook.async_generate_url(self._hass, self._webhook_id)
        return self._url

    async def async_close(self) -> None:
        if self._url is None:
            return
        webhook.async_unregister(self._hass, self._webhook_id)
        self._url = None


class WebhookManager:
    """Keeps one Tado webhook per home that has devices."""

    def __init__(
        self,
        api: TadoApiClient,
        channel: WebhookChannel,
        bus: EventBus,
        homes: HomesProvider | None = None,
    ) -> None:
        """Initialize the manager.

        ``homes`` returns the homes that still have devices. A registration
        finishing after its home lost every device is rolled back.
        """
        self._api = api
        self._homes = homes
        self._channel = channel
        self._bus = bus
        self._is_registering = False
        self._hooks: dict[str, str] = {}

    @property
    def hooks(self) -> dict[str, str]:
        """Return home id -> Tado webhook id."""
        return dict(self._hooks)

    @property
    def is_registering(self) -> bool:
        return self._is_registering

    async def async_register(self, home_id: str) -> None:
        """Make sure the Tado cloud delivers updates of ``home_id`` to us."""
        if self._is_registering or home_id in self._hooks:
            return
        self._is_registering = True
        try:
            await self._async_register_hook(home_id)
        finally:
            self._is_registering = False

        if self._homes is None or home_id not in self._hooks:
            return
        homes = self._homes()
        if home_id not in homes:
            _LOGGER.debug(
                "Home %s has no devices left after its webhook was registered",
                home_id,
            )
            await self.async_release(homes)

    async def _async_register_hook(self, home_id: str) -> None:
        try:
            url = await self._channel.async_open(self.async_handle_delivery)
            for hook in await self._api.async_get_hooks(home_id):
                if hook.get("url") == url:
                    _LOGGER.info("Webhook already registered for home %s", home_id)
                    self._hooks[home_id] = str(hook["id"])
                    return
            response = await self._api.async_create_hook(home_id, url, WEBHOOK_EVENTS)
            self._hooks[home_id] = str(response["id"])
            _LOGGER.info(
                "Registered webhook %s for home %s", self._hooks[home_id], home_id
            )
        except (TadoApiError, HomeAssistantError, KeyError, TypeError) as err:
            _LOGGER.error(
                "Unable to register the Tado webhook for home %s: %s", home_id, err
            )

    async def async_unregister_orphans(self, homes: set[str]) -> None:
        """Delete the webhooks of the homes that have no devices left."""
        for home_id in list(self._hooks):
            if home_id in homes:
                continue
            hook_id = self._hooks.pop(home_id)
            try:
                await self._api.async_delete_hook(home_id, hook_id)
            except TadoApiError as err:
                _LOGGER.error(
                    "Unable to delete webhook %s for home %s: %s",
                    hook_id,
                    home_id,
                    err,
                )
                continue
            _LOGGER.info("Deleted webhook %s for home %s", hook_id, home_id)

    async def async_release(self, homes: set[str]) -> None:
        """Delete orphaned webhooks, closing the channel once no home is left."""
        await self.async_unregister_orphans(homes)
        if not homes:
            await self.async_close()

    async def async_close(self) -> None:
        """Stop receiving deliveries."""
        await self._channel.async_close()

    async def async_handle_delivery(self, body: Any) -> None:
        """Route one webhook delivery to the zone and state events."""
        home = body.get("home") if isinstance(body, dict) else None
        zone = body.get("zone") if isinstance(body, dict) else None
        if not isinstance(home, dict) or not isinstance(zone, dict):
            _LOGGER.warning("Ignoring Tado webhook without home or zone: %s", body)
            return
        try:
            home_id = str(home["id"])
            zone_id = int(zone["id"])
        except (KeyError, TypeError, ValueError):
            _LOGGER.warning("Ignoring Tado webhook with invalid ids: %s", body)
            return

        self._bus.async_publish(EVENT_ZONE_DATA, parse_zone_memberships([zone]))
        self._bus.async_publish(
            EVENT_STATE_DATA,
            [ZoneState(home_id, zone_id, parse_webhook_state(body))],
        )
