"""Shared fakes for the Tado Sync tests."""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock

import pytest

from custom_components.tado_sync.api import TadoApiClient
from custom_components.tado_sync.engine import TadoSyncEngine

WEBHOOK_URL = "https://example.com/api/webhook/tado"
NOW = datetime(2026, 1, 1, 12, 0, 0)


@dataclass
class FakeTimer:
    delay: timedelta
    action: Callable[[datetime], Coroutine[Any, Any, None]]
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not self.cancelled and not self.fired


class FakeTimers:
    """Timers that only run when a test fires them."""

    def __init__(self) -> None:
        self.later: list[FakeTimer] = []
        self.intervals: list[FakeTimer] = []

    def call_later(self, delay: timedelta, action) -> Callable[[], None]:
        timer = FakeTimer(delay, action)
        self.later.append(timer)
        return timer.cancel

    def track_interval(self, interval: timedelta, action) -> Callable[[], None]:
        timer = FakeTimer(interval, action)
        self.intervals.append(timer)
        return timer.cancel

    @property
    def active(self) -> list[FakeTimer]:
        return [timer for timer in self.later + self.intervals if timer.active]

    @property
    def active_intervals(self) -> list[FakeTimer]:
        return [timer for timer in self.intervals if timer.active]

    async def async_fire_debounce(self) -> None:
        pending = [timer for timer in self.later if timer.active]
        assert len(pending) == 1, f"expected one pending debounce, got {pending}"
        timer = pending[0]
        timer.fired = True
        await timer.action(NOW)

    async def async_fire_interval(self) -> None:
        intervals = self.active_intervals
        assert len(intervals) == 1, f"expected one interval, got {intervals}"
        await intervals[0].action(NOW)


class RecordingBus:
    """In-memory event bus keeping every published payload."""

    def __init__(self) -> None:
        self.published: list[tuple[str, Any]] = []
        self._subscribers: dict[str, list[Callable[[Any], Any]]] = {}

    def async_publish(self, event: str, payload: Any) -> None:
        self.published.append((event, payload))
        for target in list(self._subscribers.get(event, [])):
            target(payload)

    def async_subscribe(self, event: str, target: Callable[[Any], Any]):
        self._subscribers.setdefault(event, []).append(target)

        def unsubscribe() -> None:
            self._subscribers[event].remove(target)

        return unsubscribe

    def payloads(self, event: str) -> list[Any]:
        return [payload for name, payload in self.published if name == event]

    def subscriber_count(self, event: str) -> int:
        return len(self._subscribers.get(event, []))


class FakeChannel:
    """Webhook channel that records the delivery handler."""

    def __init__(self, url: str = WEBHOOK_URL) -> None:
        self.url = url
        self.handler = None
        self.open_count = 0
        self.closed = False

    async def async_open(self, handler) -> str:
        self.handler = handler
        self.open_count += 1
        self.closed = False
        return self.url

    async def async_close(self) -> None:
        self.closed = True


class TaskRecorder:
    """Collects the coroutines an engine schedules."""

    def __init__(self) -> None:
        self.pending: list[Coroutine[Any, Any, Any]] = []

    def __call__(self, coro: Coroutine[Any, Any, Any]) -> None:
        self.pending.append(coro)

    async def async_drain(self) -> None:
        while self.pending:
            await self.pending.pop(0)

    def close(self) -> None:
        for coro in self.pending:
            coro.close()
        self.pending.clear()


def zone(zone_id: int, *serials: str, zone_type: str = "HEATING", **extra) -> dict:
    """Return a zone listing entry as returned by ``GET /homes/{id}/zones``."""
    return {
        "id": zone_id,
        "name": f"Zone {zone_id}",
        "type": zone_type,
        "devices": [
            {
                "serialNo": serial,
                "deviceType": serial[:2] + "02",
                "connectionState": {"value": True},
            }
            for serial in serials
        ],
        **extra,
    }


def heating_state(
    celsius: float = 20.0,
    power: str = "ON",
    termination: str | None = None,
    inside: float | None = 19.5,
    humidity: float | None = 45.0,
) -> dict:
    """Return a zone state snapshot of a heating zone."""
    state: dict[str, Any] = {
        "setting": {
            "type": "HEATING",
            "power": power,
            "temperature": {"celsius": celsius} if power == "ON" else None,
        },
        "overlay": None,
        "openWindow": None,
        "sensorDataPoints": {},
    }
    if termination is not None:
        state["overlay"] = {"termination": {"type": termination}}
    if inside is not None:
        state["sensorDataPoints"]["insideTemperature"] = {"celsius": inside}
    if humidity is not None:
        state["sensorDataPoints"]["humidity"] = {"percentage": humidity}
    return state


@pytest.fixture
def timers() -> FakeTimers:
    return FakeTimers()


@pytest.fixture
def bus() -> RecordingBus:
    return RecordingBus()


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def tasks():
    recorder = TaskRecorder()
    yield recorder
    recorder.close()


@pytest.fixture
def api() -> AsyncMock:
    client = AsyncMock(spec=TadoApiClient)
    client.async_get_zones.return_value = []
    client.async_get_zone_state.return_value = heating_state()
    client.async_get_hooks.return_value = []
    client.async_create_hook.return_value = {"id": 7}
    client.async_delete_hook.return_value = None
    client.async_set_overlay.return_value = {}
    client.async_unset_overlay.return_value = None
    return client


@pytest.fixture
def engine(api, bus, timers, channel, tasks) -> TadoSyncEngine:
    return TadoSyncEngine(api, bus, timers, channel, tasks)
