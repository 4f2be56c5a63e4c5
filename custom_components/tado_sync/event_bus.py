"""Publish/subscribe channel between the sync engine and the devices."""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any, Protocol

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers.dispatcher import (
    async_dispatcher_connect,
    async_dispatcher_send,
)

from .const import EVENT_STATE_DATA, EVENT_ZONE_DATA, SIGNAL_TADO_EVENT

_LOGGER = logging.getLogger(__name__)

EVENTS = (EVENT_ZONE_DATA, EVENT_STATE_DATA)


class EventBus(Protocol):
    """Channel carrying zone data and state data events."""

    def async_publish(self, event: str, payload: Any) -> None:
        """Deliver ``payload`` to the subscribers of ``event``."""

    def async_subscribe(
        self, event: str, target: Callable[[Any], Any]
    ) -> CALLBACK_TYPE:
        """Subscribe ``target`` to ``event``, return an unsubscribe callable."""


class TadoEventBus:
    """Event bus on top of the dispatcher, scoped to one config entry."""

    def __init__(self, hass: HomeAssistant, entry_id: str) -> None:
        """Initialize the bus."""
        self._hass = hass
        self._entry_id = entry_id

    def signal(self, event: str) -> str:
        """Return the dispatcher signal used for ``event``."""
        if event not in EVENTS:
            raise ValueError(f"Unknown Tado event {event}")
        return SIGNAL_TADO_EVENT.format(self._entry_id, event)

    @callback
    def async_publish(self, event: str, payload: Any) -> None:
        _LOGGER.debug("Publishing %s", event)
        async_dispatcher_send(self._hass, self.signal(event), payload)

    @callback
    def async_subscribe(
        self, event: str, target: Callable[[Any], Any]
    ) -> CALLBACK_TYPE:
        return async_dispatcher_connect(self._hass, self.signal(event), target)
