"""Constants for the Tado Sync integration."""

from datetime import timedelta

DOMAIN = "tado_sync"
DEFAULT_NAME = "Tado"

API_URL = "https://my.tado.com/api/v2"
OAUTH2_AUTHORIZE = "https://auth.tado.com/oauth/authorize"
OAUTH2_TOKEN = "https://auth.tado.com/oauth/token"
OAUTH2_SCOPES = [
    "identity:read",
    "home.details:read",
    "home.operation:read",
    "home.operation.overlay:write",
    "home.webhooks",
]

# Config entry data
CONF_HOME_ID = "home_id"
CONF_HOME_NAME = "home_name"
CONF_DEVICES = "devices"

# Options
CONF_FALLBACK = "fallback"
CONF_TIMER_DURATION = "timer_duration"
CONF_SCAN_INTERVAL_SECONDS = "scan_interval_seconds"

DEFAULT_TIMER_DURATION = 60
DEFAULT_SCAN_INTERVAL_SECONDS = 15 * 60

# Scheduler
DEVICE_REGISTER_TIMEOUT = timedelta(milliseconds=200)
DATA_POLLING_INTERVAL = timedelta(seconds=DEFAULT_SCAN_INTERVAL_SECONDS)

# Zone types
TYPE_HEATING = "HEATING"
TYPE_AIR_CONDITIONING = "AIR_CONDITIONING"
TYPE_HOT_WATER = "HOT_WATER"

HOT_WATER_SUFFIX = "_HOT_WATER"

# Device kinds, stored on every paired device
KIND_THERMOSTAT = "thermostat"
KIND_VALVE = "valve"
KIND_AIR_CONDITIONING = "air_conditioning"
KIND_HOT_WATER = "hot_water"

# Overlay / termination types
CONST_OVERLAY_MANUAL = "MANUAL"
CONST_OVERLAY_TIMER = "TIMER"
CONST_OVERLAY_TADO_MODE = "TADO_MODE"
CONST_OVERLAY_TADO_OPTIONS = [
    CONST_OVERLAY_TADO_MODE,
    CONST_OVERLAY_MANUAL,
    CONST_OVERLAY_TIMER,
]
CONST_OVERLAY_TADO_DEFAULT = CONST_OVERLAY_MANUAL

# Overlay durations, in milliseconds like the duration fields of the services
MIN_OVERLAY_DURATION_MS = 1000
MAX_OVERLAY_DURATION_MS = 24 * 60 * 60 * 1000
BOOST_DURATION_MS = 30 * 60 * 1000

POWER_ON = "ON"
POWER_OFF = "OFF"

CONST_MODE_COOL = "COOL"
CONST_MODE_HEAT = "HEAT"
CONST_MODE_DRY = "DRY"
CONST_MODE_FAN = "FAN"
CONST_MODE_AUTO = "AUTO"
CONST_MODE_OFF = "OFF"
AC_MODES = [
    CONST_MODE_COOL,
    CONST_MODE_HEAT,
    CONST_MODE_DRY,
    CONST_MODE_FAN,
    CONST_MODE_AUTO,
    CONST_MODE_OFF,
]

BATTERY_NORMAL = "NORMAL"

# Webhooks
WEBHOOK_EVENTS = ["overlayType", "setting", "insideTemperature", "humidity"]

# Event bus
EVENT_ZONE_DATA = "zoneDataEvent"
EVENT_STATE_DATA = "stateDataEvent"
SIGNAL_TADO_EVENT = "tado_sync_{}_{}"

# Events fired on the Home Assistant bus
EVENT_TADO_SYNC = "tado_sync_event"
TRIGGER_SMART_SCHEDULE_ACTIVATED = "smart_schedule_activated"
TRIGGER_SMART_SCHEDULE_DEACTIVATED = "smart_schedule_deactivated"
TRIGGER_POWER_MODE_ON = "power_mode_on"
TRIGGER_POWER_MODE_OFF = "power_mode_off"
TRIGGER_OPEN_WINDOW_DETECTED = "open_window_detected"

# Capabilities
CAP_TARGET_TEMPERATURE = "target_temperature"
CAP_MEASURE_TEMPERATURE = "measure_temperature"
CAP_MEASURE_HUMIDITY = "measure_humidity"
CAP_POWER_MODE = "power_mode"
CAP_AC_MODE = "ac_mode"
CAP_FAN_SPEED = "fan_speed"
CAP_FAN_LEVEL = "fan_level"
CAP_SWING = "swing"
CAP_VERTICAL_SWING = "vertical_swing"
CAP_HORIZONTAL_SWING = "horizontal_swing"
CAP_AC_LIGHT = "ac_light"
CAP_HOT_WATER_TEMPERATURE = "target_temperature.hot_water"
CAP_HOT_WATER_ONOFF = "hot_water_onoff"
CAP_DETECT_OPEN_WINDOW = "detect_open_window"
CAP_ALARM_BATTERY = "alarm_battery"

# Services
SERVICE_SET_POWER_MODE = "set_power_mode"
SERVICE_RESUME_SCHEDULE = "resume_schedule"
SERVICE_BOOST_HEATING = "boost_heating"
SERVICE_SET_HOT_WATER = "set_hot_water"
SERVICE_SET_AC_MODE = "set_ac_mode"

CONF_CONFIG_ENTRY = "config_entry"
ATTR_DEVICE = "device"
ATTR_DURATION = "duration"
ATTR_POWER = "power"
ATTR_TEMPERATURE = "temperature"
ATTR_AC_MODE = "ac_mode"
ATTR_FAN_SPEED = "fan_speed"
ATTR_FAN_LEVEL = "fan_level"
ATTR_SWING = "swing"
ATTR_VERTICAL_SWING = "vertical_swing"
ATTR_HORIZONTAL_SWING = "horizontal_swing"
