"""Device type taxonomy and the per-type lookup tables.

Every device type maps to a fixed set of handler groups. Handler groups in
turn decide which command slots are meaningful for the type and which
attributes the device starts with.
"""

from enum import Enum
from typing import Any


class DeviceType(str, Enum):
    # Switches and outlets
    OUTLET = "Outlet"
    SWITCH = "Switch"
    SCENE = "Scene"
    # Lights
    LIGHT = "Light"
    DIMMABLE_LIGHT = "DimmableLight"
    COLOR_TEMPERATURE_LIGHT = "ColorTemperatureLight"
    EXTENDED_COLOR_LIGHT = "ExtendedColorLight"
    COLOR_LIGHT_HS = "ColorLightHS"
    COLOR_LIGHT_XY = "ColorLightXY"
    # Sensors
    CONTACT_SENSOR = "ContactSensor"
    MOTION_SENSOR = "MotionSensor"
    ILLUMINANCE_SENSOR = "IlluminanceSensor"
    TEMPERATURE_SENSOR = "TemperatureSensor"
    HUMIDITY_SENSOR = "HumiditySensor"
    PRESSURE_SENSOR = "PressureSensor"
    CLIMATE_SENSOR = "ClimateSensor"
    # Covers
    COVER_LIFT = "CoverLift"
    COVER_LIFT_TILT = "CoverLiftTilt"
    # Lock
    DOOR_LOCK = "DoorLock"
    # Thermostats
    THERMOSTAT_AUTO = "ThermostatAuto"
    THERMOSTAT_HEAT = "ThermostatHeat"
    THERMOSTAT_COOL = "ThermostatCool"
    # Mode select
    MODE_SELECT = "ModeSelect"
    # Mounted switches
    ON_OFF_MOUNTED_SWITCH = "OnOffMountedSwitch"
    DIMMER_MOUNTED_SWITCH = "DimmerMountedSwitch"

    @classmethod
    def parse(cls, value: str) -> "DeviceType":
        """Look up a device type by its configuration name.

        Raises:
            ValueError: If the name is not part of the taxonomy
        """
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown device type: {value}") from None


# Command slot names, as they appear in the configuration file
SLOT_ON = "on"
SLOT_OFF = "off"
SLOT_BRIGHTNESS = "brightness"
SLOT_COLOR_TEMPERATURE = "colorTemperature"
SLOT_COLOR_HUE = "colorHue"
SLOT_COLOR_SATURATION = "colorSaturation"
SLOT_COLOR_XY = "colorXY"
SLOT_COVER_POSITION = "coverPosition"
SLOT_COVER_TILT = "coverTilt"
SLOT_LOCK = "lock"
SLOT_UNLOCK = "unlock"
SLOT_SET_HEATING_POINT = "setHeatingPoint"
SLOT_SET_COOLING_POINT = "setCoolingPoint"
SLOT_SET_MODE = "setMode"
SLOT_SET_MODE_VALUE = "setModeValue"
SLOT_POLL_STATE = "pollState"

COMMAND_SLOTS = (
    SLOT_ON,
    SLOT_OFF,
    SLOT_BRIGHTNESS,
    SLOT_COLOR_TEMPERATURE,
    SLOT_COLOR_HUE,
    SLOT_COLOR_SATURATION,
    SLOT_COLOR_XY,
    SLOT_COVER_POSITION,
    SLOT_COVER_TILT,
    SLOT_LOCK,
    SLOT_UNLOCK,
    SLOT_SET_HEATING_POINT,
    SLOT_SET_COOLING_POINT,
    SLOT_SET_MODE,
    SLOT_SET_MODE_VALUE,
    SLOT_POLL_STATE,
)

# Cluster enum values
WINDOW_COVERING_STOPPED = 0
DOOR_LOCK_LOCKED = 1
DOOR_LOCK_UNLOCKED = 2
SYSTEM_MODE_AUTO = 1
SYSTEM_MODE_COOL = 3
SYSTEM_MODE_HEAT = 4

GROUP_ON_OFF = "on_off"
GROUP_SCENE = "scene"
GROUP_BRIGHTNESS = "brightness"
GROUP_COLOR_TEMPERATURE = "color_temperature"
GROUP_COLOR = "color"
GROUP_COLOR_XY = "color_xy"
GROUP_COVER = "cover"
GROUP_COVER_TILT = "cover_tilt"
GROUP_LOCK = "lock"
GROUP_THERMOSTAT = "thermostat"
GROUP_MODE_SELECT = "mode_select"

_T = DeviceType

HANDLER_GROUPS: dict[DeviceType, tuple[str, ...]] = {
    _T.OUTLET: (GROUP_ON_OFF,),
    _T.SWITCH: (GROUP_ON_OFF,),
    _T.SCENE: (GROUP_SCENE,),
    _T.LIGHT: (GROUP_ON_OFF,),
    _T.DIMMABLE_LIGHT: (GROUP_ON_OFF, GROUP_BRIGHTNESS),
    _T.COLOR_TEMPERATURE_LIGHT: (GROUP_ON_OFF, GROUP_BRIGHTNESS, GROUP_COLOR_TEMPERATURE),
    _T.EXTENDED_COLOR_LIGHT: (GROUP_ON_OFF, GROUP_BRIGHTNESS, GROUP_COLOR, GROUP_COLOR_TEMPERATURE),
    _T.COLOR_LIGHT_HS: (GROUP_ON_OFF, GROUP_BRIGHTNESS, GROUP_COLOR, GROUP_COLOR_TEMPERATURE),
    _T.COLOR_LIGHT_XY: (GROUP_ON_OFF, GROUP_BRIGHTNESS, GROUP_COLOR_XY, GROUP_COLOR_TEMPERATURE),
    _T.CONTACT_SENSOR: (),
    _T.MOTION_SENSOR: (),
    _T.ILLUMINANCE_SENSOR: (),
    _T.TEMPERATURE_SENSOR: (),
    _T.HUMIDITY_SENSOR: (),
    _T.PRESSURE_SENSOR: (),
    _T.CLIMATE_SENSOR: (),
    _T.COVER_LIFT: (GROUP_COVER,),
    _T.COVER_LIFT_TILT: (GROUP_COVER, GROUP_COVER_TILT),
    _T.DOOR_LOCK: (GROUP_LOCK,),
    _T.THERMOSTAT_AUTO: (GROUP_THERMOSTAT,),
    _T.THERMOSTAT_HEAT: (GROUP_THERMOSTAT,),
    _T.THERMOSTAT_COOL: (GROUP_THERMOSTAT,),
    _T.MODE_SELECT: (GROUP_MODE_SELECT,),
    _T.ON_OFF_MOUNTED_SWITCH: (GROUP_ON_OFF,),
    _T.DIMMER_MOUNTED_SWITCH: (GROUP_ON_OFF, GROUP_BRIGHTNESS),
}

GROUP_SLOTS: dict[str, tuple[str, ...]] = {
    GROUP_ON_OFF: (SLOT_ON, SLOT_OFF),
    GROUP_SCENE: (SLOT_ON,),
    GROUP_BRIGHTNESS: (SLOT_BRIGHTNESS,),
    GROUP_COLOR_TEMPERATURE: (SLOT_COLOR_TEMPERATURE,),
    GROUP_COLOR: (SLOT_COLOR_HUE, SLOT_COLOR_SATURATION),
    GROUP_COLOR_XY: (SLOT_COLOR_XY,),
    GROUP_COVER: (SLOT_COVER_POSITION,),
    GROUP_COVER_TILT: (SLOT_COVER_TILT,),
    GROUP_LOCK: (SLOT_LOCK, SLOT_UNLOCK),
    GROUP_THERMOSTAT: (SLOT_SET_HEATING_POINT, SLOT_SET_COOLING_POINT, SLOT_SET_MODE),
    GROUP_MODE_SELECT: (SLOT_SET_MODE_VALUE,),
}

GROUP_ATTRIBUTES: dict[str, dict[tuple[str, str], Any]] = {
    GROUP_ON_OFF: {("onOff", "onOff"): False},
    GROUP_SCENE: {("onOff", "onOff"): False},
    GROUP_BRIGHTNESS: {("levelControl", "currentLevel"): 0},
    GROUP_COLOR_TEMPERATURE: {("colorControl", "colorTemperatureMireds"): 250},
    GROUP_COLOR: {("colorControl", "currentHue"): 0, ("colorControl", "currentSaturation"): 0},
    GROUP_COLOR_XY: {("colorControl", "currentX"): 0, ("colorControl", "currentY"): 0},
    GROUP_COVER: {
        ("windowCovering", "currentPositionLiftPercent100ths"): 0,
        ("windowCovering", "targetPositionLiftPercent100ths"): 0,
        ("windowCovering", "operationalStatus"): WINDOW_COVERING_STOPPED,
    },
    GROUP_COVER_TILT: {
        ("windowCovering", "currentPositionTiltPercent100ths"): 0,
        ("windowCovering", "targetPositionTiltPercent100ths"): 0,
    },
    GROUP_LOCK: {("doorLock", "lockState"): DOOR_LOCK_LOCKED},
    GROUP_THERMOSTAT: {
        ("thermostat", "localTemperature"): 2000,
        ("thermostat", "occupiedHeatingSetpoint"): 1800,
        ("thermostat", "occupiedCoolingSetpoint"): 2200,
    },
    GROUP_MODE_SELECT: {("modeSelect", "currentMode"): 1},
}

TYPE_ATTRIBUTES: dict[DeviceType, dict[tuple[str, str], Any]] = {
    _T.CONTACT_SENSOR: {("booleanState", "stateValue"): False},
    _T.MOTION_SENSOR: {("occupancySensing", "occupancy"): {"occupied": False}},
    _T.ILLUMINANCE_SENSOR: {("illuminanceMeasurement", "measuredValue"): 0},
    _T.TEMPERATURE_SENSOR: {("temperatureMeasurement", "measuredValue"): 2000},
    _T.HUMIDITY_SENSOR: {("relativeHumidityMeasurement", "measuredValue"): 5000},
    _T.PRESSURE_SENSOR: {("pressureMeasurement", "measuredValue"): 1000},
    _T.CLIMATE_SENSOR: {
        ("temperatureMeasurement", "measuredValue"): 2000,
        ("relativeHumidityMeasurement", "measuredValue"): 5000,
        ("pressureMeasurement", "measuredValue"): 1000,
    },
    _T.THERMOSTAT_AUTO: {("thermostat", "systemMode"): SYSTEM_MODE_AUTO},
    _T.THERMOSTAT_HEAT: {("thermostat", "systemMode"): SYSTEM_MODE_HEAT},
    _T.THERMOSTAT_COOL: {("thermostat", "systemMode"): SYSTEM_MODE_COOL},
}

LIGHT_TYPES = frozenset(
    {
        _T.LIGHT,
        _T.DIMMABLE_LIGHT,
        _T.COLOR_TEMPERATURE_LIGHT,
        _T.EXTENDED_COLOR_LIGHT,
        _T.COLOR_LIGHT_HS,
        _T.COLOR_LIGHT_XY,
    }
)
COVER_TYPES = frozenset({_T.COVER_LIFT, _T.COVER_LIFT_TILT})
SENSOR_TYPES = frozenset(
    {
        _T.CONTACT_SENSOR,
        _T.MOTION_SENSOR,
        _T.ILLUMINANCE_SENSOR,
        _T.TEMPERATURE_SENSOR,
        _T.HUMIDITY_SENSOR,
        _T.PRESSURE_SENSOR,
        _T.CLIMATE_SENSOR,
    }
)


def applicable_slots(device_type: DeviceType) -> tuple[str, ...]:
    """Return the command slots a device of this type responds to.

    ``pollState`` applies to every type.
    """
    slots: list[str] = []
    for group in HANDLER_GROUPS[device_type]:
        for slot in GROUP_SLOTS[group]:
            if slot not in slots:
                slots.append(slot)
    slots.append(SLOT_POLL_STATE)
    return tuple(slots)


def initial_attributes(device_type: DeviceType) -> dict[tuple[str, str], Any]:
    """Return a fresh copy of the attributes a new device starts with."""
    attributes: dict[tuple[str, str], Any] = {}
    for group in HANDLER_GROUPS[device_type]:
        attributes.update(GROUP_ATTRIBUTES[group])
    attributes.update(TYPE_ATTRIBUTES.get(device_type, {}))
    # Nested values (occupancy) must not be shared between devices
    return {key: dict(value) if isinstance(value, dict) else value for key, value in attributes.items()}
