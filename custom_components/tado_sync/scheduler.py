"""Debounced initial fetch followed by a recurring fallback poll."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Coroutine
from datetime import datetime, timedelta
from enum import Enum
import logging
from typing import Any, Protocol

from homeassistant.core import CALLBACK_TYPE, HomeAssistant
from homeassistant.helpers.event import async_call_later, async_track_time_interval

from .const import DATA_POLLING_INTERVAL, DEVICE_REGISTER_TIMEOUT

_LOGGER = logging.getLogger(__name__)

TimerAction = Callable[[datetime], Coroutine[Any, Any, None]]


class SchedulerState(Enum):
    """Polling state of an engine."""

    IDLE = "idle"
    DEBOUNCE_PENDING = "debounce_pending"
    POLLING = "polling"


class SchedulerEvent(Enum):
    """Inputs of the polling state machine."""

    REGISTERED = "registered"
    DEBOUNCE_FIRED = "debounce_fired"
    EMPTIED = "emptied"


_TRANSITIONS: dict[tuple[SchedulerState, SchedulerEvent], SchedulerState] = {
    (SchedulerState.IDLE, SchedulerEvent.REGISTERED): SchedulerState.DEBOUNCE_PENDING,
    (SchedulerState.DEBOUNCE_PENDING, SchedulerEvent.REGISTERED): (
        SchedulerState.DEBOUNCE_PENDING
    ),
    (SchedulerState.POLLING, SchedulerEvent.REGISTERED): SchedulerState.POLLING,
    (SchedulerState.IDLE, SchedulerEvent.DEBOUNCE_FIRED): SchedulerState.IDLE,
    (SchedulerState.DEBOUNCE_PENDING, SchedulerEvent.DEBOUNCE_FIRED): (
        SchedulerState.POLLING
    ),
    (SchedulerState.POLLING, SchedulerEvent.DEBOUNCE_FIRED): SchedulerState.POLLING,
}


def transition(state: SchedulerState, event: SchedulerEvent) -> SchedulerState:
    """Return the state following ``event``."""
    if event is SchedulerEvent.EMPTIED:
        return SchedulerState.IDLE
    return _TRANSITIONS[(state, event)]


class Timers(Protocol):
    """Timer primitive used by the scheduler."""

    def call_later(self, delay: timedelta, action: TimerAction) -> CALLBACK_TYPE:
        """Run ``action`` once after ``delay``, return a cancel callable."""

    def track_interval(
        self, interval: timedelta, action: TimerAction
    ) -> CALLBACK_TYPE:
        """Run ``action`` every ``interval``, return a cancel callable."""


class HassTimers:
    """Timers backed by the Home Assistant event helpers."""

    def __init__(self, hass: HomeAssistant) -> None:
        self._hass = hass

    def call_later(self, delay: timedelta, action: TimerAction) -> CALLBACK_TYPE:
        return async_call_later(self._hass, delay, action)

    def track_interval(
        self, interval: timedelta, action: TimerAction
    ) -> CALLBACK_TYPE:
        return async_track_time_interval(self._hass, action, interval)


class PollScheduler:
    """Owns the debounce timer and the polling interval of one engine.

    Registrations arriving in a burst collapse into one fetch once the
    debounce timer fires; that fetch arms the recurring interval, which keeps
    running until ``stop`` is called. Polling is a fallback for missed
    webhook deliveries, both feed the same sync pass.
    """

    def __init__(
        self,
        timers: Timers,
        action: Callable[[], Awaitable[None]],
        debounce: timedelta = DEVICE_REGISTER_TIMEOUT,
        interval: timedelta = DATA_POLLING_INTERVAL,
    ) -> None:
        """Initialize the scheduler."""
        self._timers = timers
        self._action = action
        self._debounce = debounce
        self._interval = interval
        self._state = SchedulerState.IDLE
        self._cancel_debounce: CALLBACK_TYPE | None = None
        self._cancel_interval: CALLBACK_TYPE | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def interval(self) -> timedelta:
        return self._interval

    @property
    def active_timers(self) -> int:
        """Return how many timers are currently armed."""
        return sum(
            cancel is not None
            for cancel in (self._cancel_debounce, self._cancel_interval)
        )

    def start(self) -> None:
        """Re-arm the debounce timer after a registration."""
        self._state = transition(self._state, SchedulerEvent.REGISTERED)
        if self._cancel_debounce is not None:
            self._cancel_debounce()
        self._cancel_debounce = self._timers.call_later(
            self._debounce, self._async_debounce_fired
        )

    def stop(self) -> None:
        """Cancel both timers."""
        if self._cancel_debounce is not None:
            self._cancel_debounce()
            self._cancel_debounce = None
        if self._cancel_interval is not None:
            self._cancel_interval()
            self._cancel_interval = None
        if self._state is not SchedulerState.IDLE:
            _LOGGER.debug("Polling stopped")
        self._state = transition(self._state, SchedulerEvent.EMPTIED)

    def set_interval(self, interval: timedelta) -> None:
        """Change the polling interval, re-arming it when running."""
        if interval == self._interval:
            return
        self._interval = interval
        if self._cancel_interval is not None:
            self._cancel_interval()
            self._cancel_interval = self._timers.track_interval(
                self._interval, self._async_interval_fired
            )
        _LOGGER.debug("Polling interval set to %s", interval)

    async def _async_debounce_fired(self, _now: datetime) -> None:
        self._cancel_debounce = None
        self._state = transition(self._state, SchedulerEvent.DEBOUNCE_FIRED)
        if self._state is not SchedulerState.POLLING:
            return
        await self._async_run()
        # The registry may have emptied while the pass was running
        if self._state is SchedulerState.POLLING and self._cancel_interval is None:
            self._cancel_interval = self._timers.track_interval(
                self._interval, self._async_interval_fired
            )
            _LOGGER.debug("Polling every %s", self._interval)

    async def _async_interval_fired(self, _now: datetime) -> None:
        await self._async_run()

    async def _async_run(self) -> None:
        try:
            await self._action()
        except Exception:  # pylint: disable=broad-except
            _LOGGER.exception("Unexpected error while updating Tado data")
