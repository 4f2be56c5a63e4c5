from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from homeassistant.exceptions import ConfigEntryAuthFailed, ConfigEntryNotReady

from custom_components.tado_sync import (
    TadoSyncData,
    _async_update_listener,
    _scan_interval,
    async_setup_entry,
)
from custom_components.tado_sync.api import TadoAuthError, TadoConnectionError
from custom_components.tado_sync.const import DOMAIN
from custom_components.tado_sync.device import TadoDevice
from custom_components.tado_sync.models import DeviceDescriptor


@pytest.mark.parametrize(
    ("options", "expected"),
    [
        ({}, timedelta(minutes=15)),
        ({"scan_interval_seconds": 120}, timedelta(minutes=2)),
        ({"scan_interval_seconds": "30"}, timedelta(seconds=30)),
        ({"scan_interval_seconds": 0}, timedelta(minutes=15)),
        ({"scan_interval_seconds": "soon"}, timedelta(minutes=15)),
        ({"scan_interval_seconds": None}, timedelta(minutes=15)),
    ],
)
def test_scan_interval(options, expected) -> None:
    assert _scan_interval(options) == expected


def test_runtime_data_finds_devices_by_serial_or_id(engine) -> None:
    thermostat = TadoDevice(
        engine, DeviceDescriptor("RU0001", "Thermostat", "thermostat", "1", 1, "HEATING")
    )
    hot_water = TadoDevice(
        engine, DeviceDescriptor("BU0001", "Hot Water", "hot_water", "1", 0, "HOT_WATER")
    )
    data = TadoSyncData(engine, [thermostat, hot_water])

    assert data.get_device("RU0001") is thermostat
    assert data.get_device("BU0001") is hot_water
    assert data.get_device("BU0001_HOT_WATER") is hot_water
    assert data.get_device("VA0001") is None


@pytest.mark.asyncio
async def test_options_update_reaches_devices_and_scheduler(engine) -> None:
    device = TadoDevice(
        engine,
        DeviceDescriptor("RU0001", "Thermostat", "thermostat", "1", 1, "HEATING"),
        {"fallback": "MANUAL"},
    )
    hass = MagicMock()
    hass.data = {DOMAIN: {"entry1": TadoSyncData(engine, [device])}}
    entry = MagicMock(
        entry_id="entry1",
        options={"fallback": "TIMER", "timer_duration": 30, "scan_interval_seconds": 60},
    )

    await _async_update_listener(hass, entry)

    assert device.fallback == "TIMER"
    assert device.timer_duration == 30
    assert engine.scheduler.interval == timedelta(seconds=60)


@pytest.mark.asyncio
async def test_options_update_of_unloaded_entry_is_ignored() -> None:
    hass = MagicMock()
    hass.data = {}

    await _async_update_listener(hass, MagicMock(entry_id="entry1", options={}))


@pytest.fixture
def setup_hass(tasks) -> MagicMock:
    hass = MagicMock()
    hass.data = {}
    hass.async_create_task = tasks
    hass.config_entries.async_forward_entry_setups = AsyncMock(return_value=True)
    return hass


@pytest.fixture
def setup_entry() -> MagicMock:
    return MagicMock(
        entry_id="entry1",
        data={
            "webhook_id": "tado",
            "devices": [
                DeviceDescriptor(
                    "RU0001", "Thermostat", "thermostat", "1", 1, "HEATING"
                ).as_dict(),
                {"serial": "broken"},
            ],
        },
        options={"fallback": "MANUAL", "timer_duration": 60, "scan_interval_seconds": 120},
    )


@pytest.fixture
def patched_setup(api, bus, timers, channel):
    with (
        patch(
            "homeassistant.helpers.config_entry_oauth2_flow."
            "async_get_config_entry_implementation",
            AsyncMock(),
        ),
        patch("homeassistant.helpers.config_entry_oauth2_flow.OAuth2Session"),
        patch("custom_components.tado_sync.async_get_clientsession"),
        patch("custom_components.tado_sync.TadoApiClient", return_value=api),
        patch("custom_components.tado_sync.TadoEventBus", return_value=bus),
        patch("custom_components.tado_sync.HassTimers", return_value=timers),
        patch("custom_components.tado_sync.HassWebhookChannel", return_value=channel),
    ):
        yield


@pytest.mark.asyncio
@pytest.mark.usefixtures("patched_setup")
async def test_setup_entry_starts_stored_devices(setup_hass, setup_entry, timers) -> None:
    assert await async_setup_entry(setup_hass, setup_entry) is True

    data = setup_hass.data[DOMAIN]["entry1"]
    assert [device.serial for device in data.devices] == ["RU0001"]
    assert "RU0001" in data.engine.registry
    assert data.engine.scheduler.interval == timedelta(minutes=2)
    assert len(timers.active) == 1
    setup_hass.config_entries.async_forward_entry_setups.assert_awaited_once()
    setup_entry.add_update_listener.assert_called_once_with(_async_update_listener)
    setup_hass.config_entries.async_update_entry.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.usefixtures("patched_setup")
@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (TadoAuthError("expired"), ConfigEntryAuthFailed),
        (TadoConnectionError("offline"), ConfigEntryNotReady),
    ],
)
async def test_setup_entry_account_errors(
    setup_hass, setup_entry, api, error, expected
) -> None:
    api.async_get_me.side_effect = error

    with pytest.raises(expected):
        await async_setup_entry(setup_hass, setup_entry)

    assert DOMAIN not in setup_hass.data
