from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from homeassistant.exceptions import ServiceValidationError

from custom_components.tado_sync.device import TadoDevice
from custom_components.tado_sync.models import (
    DeviceDescriptor,
    ZoneMembership,
    ZoneState,
    ZoneStateData,
)

HOME = "42"


def _thermostat(**kwargs) -> DeviceDescriptor:
    values = {
        "serial": "RU0001",
        "name": "Living - Thermostat",
        "kind": "thermostat",
        "home_id": HOME,
        "zone_id": 1,
        "zone_type": "HEATING",
        "device_type": "RU02",
        "capabilities": [
            "target_temperature",
            "power_mode",
            "measure_temperature",
            "measure_humidity",
            "detect_open_window",
            "alarm_battery",
        ],
        "capabilities_options": {
            "target_temperature": {"min": 5, "max": 25, "step": 0.5, "decimals": 1}
        },
        "has_battery": True,
    }
    values.update(kwargs)
    return DeviceDescriptor(**values)


def _merged_thermostat() -> DeviceDescriptor:
    descriptor = _thermostat(hot_water_zone_id=0, hot_water_zone_type="HOT_WATER")
    descriptor.capabilities.append("target_temperature.hot_water")
    descriptor.capabilities_options["target_temperature.hot_water"] = {
        "min": 30,
        "max": 65,
        "step": 1,
        "decimals": 0,
    }
    return descriptor


def _state(zone_id: int = 1, home_id: str = HOME, **data) -> list[ZoneState]:
    return [ZoneState(home_id, zone_id, ZoneStateData(**data))]


@pytest.fixture
def fire_event() -> MagicMock:
    return MagicMock()


@pytest.fixture
def device(engine, fire_event) -> TadoDevice:
    device = TadoDevice(
        engine, _thermostat(), {"fallback": "MANUAL"}, fire_event=fire_event
    )
    device.async_start()
    return device


def _triggers(fire_event: MagicMock) -> list[str]:
    return [call.args[1]["type"] for call in fire_event.call_args_list]


def test_start_subscribes_and_registers(engine, bus, device) -> None:
    assert "RU0001" in engine.registry
    assert bus.subscriber_count("zoneDataEvent") == 1
    assert bus.subscriber_count("stateDataEvent") == 1


def test_start_registers_merged_hot_water(engine) -> None:
    device = TadoDevice(engine, _merged_thermostat())
    device.async_start()

    assert engine.registry.get("RU0001_HOT_WATER").zone_id == 0
    assert len(engine.registry) == 2

    device.async_stop()
    assert len(engine.registry) == 0


def test_stop_unsubscribes_and_unregisters(engine, bus, device) -> None:
    device.async_stop()

    assert "RU0001" not in engine.registry
    assert bus.subscriber_count("zoneDataEvent") == 0
    assert bus.subscriber_count("stateDataEvent") == 0


def test_state_updates_values_and_listeners(bus, device) -> None:
    listener = MagicMock()
    remove = device.async_add_listener(listener)

    bus.async_publish(
        "stateDataEvent",
        _state(
            target_temperature=21.5,
            measure_temperature=20.1,
            measure_humidity=48.0,
            power=True,
            ac_mode="COOL",
        ),
    )

    assert device.values == {
        "target_temperature": 21.5,
        "measure_temperature": 20.1,
        "measure_humidity": 48.0,
        "power_mode": "ON",
    }
    listener.assert_called_once()

    remove()
    bus.async_publish("stateDataEvent", _state(measure_temperature=20.4))
    listener.assert_called_once()
    assert device.values["measure_temperature"] == 20.4


def test_sparse_state_keeps_other_values(bus, device) -> None:
    bus.async_publish("stateDataEvent", _state(target_temperature=21.5, power=True))
    bus.async_publish("stateDataEvent", _state(measure_humidity=50.0))

    assert device.values["target_temperature"] == 21.5
    assert device.values["power_mode"] == "ON"


def test_other_zones_and_homes_are_ignored(bus, device) -> None:
    listener = MagicMock()
    device.async_add_listener(listener)

    bus.async_publish("stateDataEvent", _state(zone_id=2, target_temperature=30))
    bus.async_publish("stateDataEvent", _state(home_id="99", target_temperature=30))

    assert device.values == {}
    listener.assert_not_called()


def test_power_mode_triggers_on_change_only(bus, device, fire_event) -> None:
    bus.async_publish("stateDataEvent", _state(power=True))
    bus.async_publish("stateDataEvent", _state(power=True))
    bus.async_publish("stateDataEvent", _state(power=False))
    bus.async_publish("stateDataEvent", _state(power=True))

    assert _triggers(fire_event) == ["power_mode_off", "power_mode_on"]
    assert fire_event.call_args.args == (
        "tado_sync_event",
        {"device_id": "RU0001", "type": "power_mode_on"},
    )


def test_smart_schedule_triggers(bus, device, fire_event) -> None:
    bus.async_publish("stateDataEvent", _state(overlay="MANUAL"))
    bus.async_publish("stateDataEvent", _state(overlay="TADO_MODE"))
    bus.async_publish("stateDataEvent", _state(overlay="TADO_MODE"))
    bus.async_publish("stateDataEvent", _state(overlay="TIMER"))

    assert _triggers(fire_event) == [
        "smart_schedule_activated",
        "smart_schedule_deactivated",
    ]
    assert device.overlay == "TIMER"


def test_open_window_trigger(bus, device, fire_event) -> None:
    bus.async_publish("stateDataEvent", _state(open_window_detected=False))
    bus.async_publish("stateDataEvent", _state(open_window_detected=True))
    bus.async_publish("stateDataEvent", _state(open_window_detected=True))

    assert _triggers(fire_event) == ["open_window_detected"]
    assert device.values["detect_open_window"] is True


def test_zone_drift_updates_registry(engine, bus, fire_event) -> None:
    zone_changed = MagicMock()
    device = TadoDevice(engine, _thermostat(), on_zone_changed=zone_changed)
    device.async_start()

    bus.async_publish("zoneDataEvent", {"RU0001": ZoneMembership("RU0001", 5, "HEATING")})

    assert device.descriptor.zone_id == 5
    assert engine.registry.get("RU0001").zone_id == 5
    zone_changed.assert_called_once_with(device)

    bus.async_publish("stateDataEvent", _state(zone_id=5, target_temperature=19.0))
    assert device.values["target_temperature"] == 19.0


def test_hot_water_zone_drift(engine, bus) -> None:
    device = TadoDevice(engine, _merged_thermostat())
    device.async_start()

    bus.async_publish(
        "zoneDataEvent",
        {"RU0001_HOT_WATER": ZoneMembership("RU0001_HOT_WATER", 7, "HOT_WATER")},
    )

    assert device.hot_water_zone_id == 7
    assert engine.registry.get("RU0001_HOT_WATER").zone_id == 7


def test_connection_and_battery(bus, device) -> None:
    listener = MagicMock()
    device.async_add_listener(listener)

    bus.async_publish(
        "zoneDataEvent",
        {"RU0001": ZoneMembership("RU0001", 1, "HEATING", False, "LOW")},
    )

    assert device.available is False
    assert device.values["alarm_battery"] is True
    listener.assert_called_once()

    bus.async_publish(
        "zoneDataEvent",
        {"RU0001": ZoneMembership("RU0001", 1, "HEATING", True, "NORMAL")},
    )
    assert device.available is True
    assert device.values["alarm_battery"] is False


def test_merged_hot_water_state(engine, bus) -> None:
    device = TadoDevice(engine, _merged_thermostat())
    device.async_start()

    bus.async_publish(
        "stateDataEvent",
        _state(zone_id=0, target_temperature=55.0, power=True, overlay="MANUAL"),
    )

    assert device.values == {"target_temperature.hot_water": 55.0}
    assert device.hot_water_overlay == "MANUAL"
    assert device.overlay is None


@pytest.mark.asyncio
async def test_set_target_temperature_sends_overlay(device, api) -> None:
    await device.async_set_target_temperature(21)

    api.async_set_overlay.assert_awaited_once_with(
        HOME,
        1,
        {
            "setting": {"type": "HEATING", "power": "ON", "temperature": {"celsius": 21}},
            "termination": {"type": "MANUAL"},
        },
    )
    api.async_get_zone_state.assert_awaited_once_with(HOME, 1)


@pytest.mark.asyncio
async def test_out_of_range_duration_is_rejected_before_any_request(device, api) -> None:
    with pytest.raises(ServiceValidationError):
        await device.async_set_target_temperature(21, duration=90_000_000)

    api.async_set_overlay.assert_not_awaited()


@pytest.mark.asyncio
async def test_out_of_range_temperature_is_rejected(device, api) -> None:
    with pytest.raises(ServiceValidationError):
        await device.async_set_target_temperature(30)

    api.async_set_overlay.assert_not_awaited()


@pytest.mark.asyncio
async def test_timer_fallback_uses_option_duration(engine, api) -> None:
    device = TadoDevice(
        engine, _thermostat(), {"fallback": "TIMER", "timer_duration": 15}
    )

    await device.async_set_power_mode("OFF")

    overlay = api.async_set_overlay.await_args.args[2]
    assert overlay == {
        "setting": {"type": "HEATING", "power": "OFF"},
        "termination": {"type": "TIMER", "durationInSeconds": 900},
    }


@pytest.mark.asyncio
async def test_boost_heating(device, api) -> None:
    await device.async_boost_heating()

    overlay = api.async_set_overlay.await_args.args[2]
    assert overlay["setting"]["temperature"] == {"celsius": 25}
    assert overlay["termination"] == {"type": "TIMER", "durationInSeconds": 1800}


@pytest.mark.asyncio
async def test_hot_water_commands(engine, api) -> None:
    device = TadoDevice(engine, _merged_thermostat(), {"fallback": "MANUAL"})

    await device.async_set_hot_water(True, 50, duration=60_000)
    await device.async_resume_hot_water_schedule()

    api.async_set_overlay.assert_awaited_once_with(
        HOME,
        0,
        {
            "setting": {"type": "HOT_WATER", "power": "ON", "temperature": {"celsius": 50}},
            "termination": {"type": "TIMER", "durationInSeconds": 60},
        },
    )
    api.async_unset_overlay.assert_awaited_once_with(HOME, 0)


@pytest.mark.asyncio
async def test_hot_water_requires_hot_water_zone(device, api) -> None:
    with pytest.raises(ServiceValidationError):
        await device.async_set_hot_water(True)
    with pytest.raises(ServiceValidationError):
        await device.async_resume_hot_water_schedule()

    api.async_set_overlay.assert_not_awaited()


@pytest.mark.asyncio
async def test_standalone_hot_water_device(engine, bus, api) -> None:
    descriptor = DeviceDescriptor(
        serial="BU0001",
        name="Hot Water",
        kind="hot_water",
        home_id=HOME,
        zone_id=0,
        zone_type="HOT_WATER",
        capabilities=["hot_water_onoff"],
    )
    device = TadoDevice(engine, descriptor, {"fallback": "TADO_MODE"})
    device.async_start()

    assert device.device_id == "BU0001_HOT_WATER"
    assert "BU0001_HOT_WATER" in engine.registry

    bus.async_publish("stateDataEvent", _state(zone_id=0, power=False))
    assert device.values == {"hot_water_onoff": False}

    await device.async_set_values({"hot_water_onoff": True})
    api.async_set_overlay.assert_awaited_once_with(
        HOME,
        0,
        {"setting": {"type": "HOT_WATER", "power": "ON"}, "termination": {"type": "TADO_MODE"}},
    )

    api.async_set_overlay.reset_mock()
    await device.async_set_power_mode("OFF")
    api.async_set_overlay.assert_awaited_once_with(
        HOME,
        0,
        {"setting": {"type": "HOT_WATER", "power": "OFF"}, "termination": {"type": "TADO_MODE"}},
    )


@pytest.mark.asyncio
async def test_resume_schedule(device, api) -> None:
    await device.async_resume_schedule()

    api.async_unset_overlay.assert_awaited_once_with(HOME, 1)
