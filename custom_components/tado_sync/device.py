"""Runtime state of one paired Tado device."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
import logging
from typing import Any

from homeassistant.core import CALLBACK_TYPE, callback
from homeassistant.exceptions import ServiceValidationError

from .capabilities import HotWaterCapabilitySet, build_termination, get_capability_set
from .const import (
    BATTERY_NORMAL,
    BOOST_DURATION_MS,
    CAP_AC_LIGHT,
    CAP_AC_MODE,
    CAP_ALARM_BATTERY,
    CAP_DETECT_OPEN_WINDOW,
    CAP_FAN_LEVEL,
    CAP_FAN_SPEED,
    CAP_HORIZONTAL_SWING,
    CAP_HOT_WATER_ONOFF,
    CAP_HOT_WATER_TEMPERATURE,
    CAP_MEASURE_HUMIDITY,
    CAP_MEASURE_TEMPERATURE,
    CAP_POWER_MODE,
    CAP_SWING,
    CAP_TARGET_TEMPERATURE,
    CAP_VERTICAL_SWING,
    CONF_FALLBACK,
    CONF_TIMER_DURATION,
    CONST_OVERLAY_TADO_DEFAULT,
    CONST_OVERLAY_TADO_MODE,
    DEFAULT_TIMER_DURATION,
    EVENT_STATE_DATA,
    EVENT_TADO_SYNC,
    EVENT_ZONE_DATA,
    POWER_OFF,
    POWER_ON,
    TRIGGER_OPEN_WINDOW_DETECTED,
    TRIGGER_POWER_MODE_OFF,
    TRIGGER_POWER_MODE_ON,
    TRIGGER_SMART_SCHEDULE_ACTIVATED,
    TRIGGER_SMART_SCHEDULE_DEACTIVATED,
    TYPE_HOT_WATER,
)
from .engine import TadoSyncEngine
from .models import (
    DeviceDescriptor,
    ZoneMembership,
    ZoneState,
    ZoneStateData,
    hot_water_device_id,
)

_LOGGER = logging.getLogger(__name__)

FireEvent = Callable[[str, dict[str, Any]], Any]

# ZoneStateData field -> capability, for the values copied as they are
_STATE_CAPABILITIES = {
    "target_temperature": CAP_TARGET_TEMPERATURE,
    "measure_temperature": CAP_MEASURE_TEMPERATURE,
    "measure_humidity": CAP_MEASURE_HUMIDITY,
    "ac_mode": CAP_AC_MODE,
    "fan_speed": CAP_FAN_SPEED,
    "fan_level": CAP_FAN_LEVEL,
    "swing": CAP_SWING,
    "vertical_swing": CAP_VERTICAL_SWING,
    "horizontal_swing": CAP_HORIZONTAL_SWING,
    "light": CAP_AC_LIGHT,
}


class TadoDevice:
    """Consumes zone and state events for one device and sends its commands.

    Capability values are kept in ``values`` keyed by capability id. Entities
    register a listener and read from here; they never talk to the engine.
    """

    def __init__(
        self,
        engine: TadoSyncEngine,
        descriptor: DeviceDescriptor,
        options: Mapping[str, Any] | None = None,
        fire_event: FireEvent | None = None,
        on_zone_changed: Callable[[TadoDevice], None] | None = None,
    ) -> None:
        """Initialize the device."""
        self.engine = engine
        self.descriptor = descriptor
        self.values: dict[str, Any] = {}
        self.available = True
        self.overlay: str | None = None
        self.hot_water_overlay: str | None = None
        self.hot_water_power: bool | None = None
        self._options: Mapping[str, Any] = options or {}
        self._fire_event = fire_event
        self._on_zone_changed = on_zone_changed
        self._listeners: list[Callable[[], None]] = []
        self._unsubscribes: list[CALLBACK_TYPE] = []
        self._capability_set = get_capability_set(
            descriptor.kind,
            descriptor.capabilities_options,
            descriptor.tado_capabilities,
        )
        self._hot_water_set = HotWaterCapabilitySet(descriptor.capabilities_options)

    @property
    def device_id(self) -> str:
        return self.descriptor.device_id

    @property
    def serial(self) -> str:
        return self.descriptor.serial

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def kind(self) -> str:
        return self.descriptor.kind

    @property
    def is_hot_water(self) -> bool:
        """Return True for a device whose own zone is a hot-water zone."""
        return self.descriptor.zone_type == TYPE_HOT_WATER

    @property
    def hot_water_zone_id(self) -> int | None:
        """Return the zone receiving hot-water commands, if any."""
        if self.is_hot_water:
            return self.descriptor.zone_id
        return self.descriptor.hot_water_zone_id

    @property
    def fallback(self) -> str:
        return self._options.get(CONF_FALLBACK, CONST_OVERLAY_TADO_DEFAULT)

    @property
    def timer_duration(self) -> int:
        return int(self._options.get(CONF_TIMER_DURATION, DEFAULT_TIMER_DURATION))

    def has_capability(self, capability: str) -> bool:
        return capability in self.descriptor.capabilities

    def update_options(self, options: Mapping[str, Any]) -> None:
        self._options = options

    @callback
    def async_add_listener(self, update_callback: Callable[[], None]) -> CALLBACK_TYPE:
        """Listen for value or availability changes."""
        self._listeners.append(update_callback)

        @callback
        def remove_listener() -> None:
            if update_callback in self._listeners:
                self._listeners.remove(update_callback)

        return remove_listener

    @callback
    def _async_notify(self) -> None:
        for update_callback in list(self._listeners):
            update_callback()

    @callback
    def async_start(self) -> None:
        """Subscribe to the event bus and register with the engine."""
        bus = self.engine.bus
        self._unsubscribes = [
            bus.async_subscribe(EVENT_ZONE_DATA, self._async_handle_zone_data),
            bus.async_subscribe(EVENT_STATE_DATA, self._async_handle_state_data),
        ]
        self.engine.register_device(self.descriptor.record())
        hot_water = self.descriptor.hot_water_record()
        if hot_water is not None:
            self.engine.register_device(hot_water)

    @callback
    def async_stop(self) -> None:
        """Unsubscribe and unregister from the engine."""
        while self._unsubscribes:
            self._unsubscribes.pop()()
        self.engine.unregister_device(self.device_id)
        if self.descriptor.hot_water_zone_id is not None:
            self.engine.unregister_device(hot_water_device_id(self.serial))

    @callback
    def _async_fire(self, trigger: str) -> None:
        _LOGGER.debug("Device %s triggered %s", self.device_id, trigger)
        if self._fire_event is not None:
            self._fire_event(
                EVENT_TADO_SYNC, {"device_id": self.serial, "type": trigger}
            )

    @callback
    def _async_handle_zone_data(self, memberships: Mapping[str, ZoneMembership]) -> None:
        changed = False
        membership = memberships.get(self.device_id)
        if membership is not None:
            if membership.zone_id != self.descriptor.zone_id:
                _LOGGER.info(
                    "Device %s moved from zone %s to zone %s",
                    self.device_id,
                    self.descriptor.zone_id,
                    membership.zone_id,
                )
                self.descriptor.zone_id = membership.zone_id
                if membership.zone_type:
                    self.descriptor.zone_type = membership.zone_type
                self.engine.update_device(self.descriptor.record())
                self._async_zone_changed()
            available = membership.connection_state is not False
            if available != self.available:
                self.available = available
                changed = True
            if self.has_capability(CAP_ALARM_BATTERY) and membership.battery_state:
                self.values[CAP_ALARM_BATTERY] = (
                    membership.battery_state != BATTERY_NORMAL
                )
                changed = True

        if self.descriptor.hot_water_zone_id is not None:
            hot_water = memberships.get(hot_water_device_id(self.serial))
            if (
                hot_water is not None
                and hot_water.zone_id != self.descriptor.hot_water_zone_id
            ):
                _LOGGER.info(
                    "Hot water of device %s moved to zone %s",
                    self.serial,
                    hot_water.zone_id,
                )
                self.descriptor.hot_water_zone_id = hot_water.zone_id
                record = self.descriptor.hot_water_record()
                if record is not None:
                    self.engine.update_device(record)
                self._async_zone_changed()

        if changed:
            self._async_notify()

    @callback
    def _async_zone_changed(self) -> None:
        if self._on_zone_changed is not None:
            self._on_zone_changed(self)

    @callback
    def _async_handle_state_data(self, states: Iterable[ZoneState]) -> None:
        changed = False
        for state in states:
            if state.home_id != self.descriptor.home_id:
                continue
            if state.zone_id == self.descriptor.zone_id:
                if self.is_hot_water:
                    self._apply_hot_water_state(state.data)
                else:
                    self._apply_state(state.data)
                self._apply_overlay(state.data)
                changed = True
            elif state.zone_id == self.descriptor.hot_water_zone_id:
                self._apply_hot_water_state(state.data)
                changed = True
        if changed:
            self._async_notify()

    def _apply_state(self, data: ZoneStateData) -> None:
        for field_name, value in data.present().items():
            capability = _STATE_CAPABILITIES.get(field_name)
            if capability is not None and self.has_capability(capability):
                self.values[capability] = value

        if data.power is not None and self.has_capability(CAP_POWER_MODE):
            power = POWER_ON if data.power else POWER_OFF
            previous = self.values.get(CAP_POWER_MODE)
            self.values[CAP_POWER_MODE] = power
            if previous is not None and previous != power:
                self._async_fire(
                    TRIGGER_POWER_MODE_ON if data.power else TRIGGER_POWER_MODE_OFF
                )

        if data.open_window_detected is not None and self.has_capability(
            CAP_DETECT_OPEN_WINDOW
        ):
            previous = self.values.get(CAP_DETECT_OPEN_WINDOW)
            self.values[CAP_DETECT_OPEN_WINDOW] = data.open_window_detected
            if data.open_window_detected and previous is not True:
                self._async_fire(TRIGGER_OPEN_WINDOW_DETECTED)

    def _apply_hot_water_state(self, data: ZoneStateData) -> None:
        if data.overlay is not None:
            self.hot_water_overlay = data.overlay
        if data.power is not None:
            self.hot_water_power = data.power
            if self.has_capability(CAP_HOT_WATER_ONOFF):
                self.values[CAP_HOT_WATER_ONOFF] = data.power
        if data.target_temperature is not None and self.has_capability(
            CAP_HOT_WATER_TEMPERATURE
        ):
            self.values[CAP_HOT_WATER_TEMPERATURE] = data.target_temperature

    def _apply_overlay(self, data: ZoneStateData) -> None:
        if data.overlay is None:
            return
        if data.overlay == CONST_OVERLAY_TADO_MODE and self.overlay != data.overlay:
            self._async_fire(TRIGGER_SMART_SCHEDULE_ACTIVATED)
        if (
            data.overlay != CONST_OVERLAY_TADO_MODE
            and self.overlay == CONST_OVERLAY_TADO_MODE
        ):
            self._async_fire(TRIGGER_SMART_SCHEDULE_DEACTIVATED)
        self.overlay = data.overlay

    async def async_set_values(
        self, values: Mapping[str, Any], duration: float | None = None
    ) -> None:
        """Apply capability values to the zone of the device.

        ``duration`` is in milliseconds; without it the configured fallback
        termination is used. Everything is validated before the request.
        """
        if self.is_hot_water:
            power = values.get(CAP_HOT_WATER_ONOFF)
            if power is None and CAP_POWER_MODE in values:
                power = values[CAP_POWER_MODE] == POWER_ON
            await self.async_set_hot_water(
                power,
                values.get(CAP_HOT_WATER_TEMPERATURE),
                duration,
            )
            return
        termination = build_termination(duration, self.fallback, self.timer_duration)
        setting = self._capability_set.build_overlay(values, self.values)
        await self.engine.async_set_overlay(
            self.descriptor.home_id,
            self.descriptor.zone_id,
            {"setting": setting, "termination": termination},
        )

    async def async_set_power_mode(
        self, power: str, duration: float | None = None
    ) -> None:
        await self.async_set_values({CAP_POWER_MODE: power}, duration)

    async def async_set_target_temperature(
        self, temperature: float, duration: float | None = None
    ) -> None:
        await self.async_set_values({CAP_TARGET_TEMPERATURE: temperature}, duration)

    async def async_boost_heating(self) -> None:
        """Heat at the maximum temperature for half an hour."""
        options = self.descriptor.capabilities_options.get(CAP_TARGET_TEMPERATURE)
        if not options or not self.has_capability(CAP_TARGET_TEMPERATURE):
            _LOGGER.debug("Device %s has no target temperature to boost", self.serial)
            return
        await self.async_set_values(
            {CAP_TARGET_TEMPERATURE: options["max"]}, BOOST_DURATION_MS
        )

    async def async_set_hot_water(
        self,
        power: bool | None = None,
        temperature: float | None = None,
        duration: float | None = None,
    ) -> None:
        """Switch the hot water or change its temperature."""
        zone_id = self.hot_water_zone_id
        if zone_id is None:
            raise ServiceValidationError(
                f"Device {self.serial} has no hot water zone"
            )
        values: dict[str, Any] = {}
        if power is not None:
            values[CAP_HOT_WATER_ONOFF] = power
        if temperature is not None:
            values[CAP_HOT_WATER_TEMPERATURE] = temperature
        termination = build_termination(duration, self.fallback, self.timer_duration)
        setting = self._hot_water_set.build_overlay(values, self.values)
        await self.engine.async_set_overlay(
            self.descriptor.home_id,
            zone_id,
            {"setting": setting, "termination": termination},
        )

    async def async_resume_schedule(self) -> None:
        """Remove the overlay from the zone of the device."""
        await self.engine.async_unset_overlay(
            self.descriptor.home_id, self.descriptor.zone_id
        )

    async def async_resume_hot_water_schedule(self) -> None:
        zone_id = self.hot_water_zone_id
        if zone_id is None:
            raise ServiceValidationError(
                f"Device {self.serial} has no hot water zone"
            )
        await self.engine.async_unset_overlay(self.descriptor.home_id, zone_id)
