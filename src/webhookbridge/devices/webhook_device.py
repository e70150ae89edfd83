"""Device whose every action is backed by configured HTTP endpoints."""

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from webhookbridge.devices.base import BaseDevice
from webhookbridge.devices.types import (
    DOOR_LOCK_LOCKED,
    DOOR_LOCK_UNLOCKED,
    GROUP_BRIGHTNESS,
    GROUP_COLOR,
    GROUP_COLOR_TEMPERATURE,
    GROUP_COLOR_XY,
    GROUP_COVER,
    GROUP_COVER_TILT,
    GROUP_LOCK,
    GROUP_MODE_SELECT,
    GROUP_ON_OFF,
    GROUP_SCENE,
    GROUP_THERMOSTAT,
    HANDLER_GROUPS,
    SLOT_BRIGHTNESS,
    SLOT_COLOR_HUE,
    SLOT_COLOR_SATURATION,
    SLOT_COLOR_TEMPERATURE,
    SLOT_COLOR_XY,
    SLOT_COVER_POSITION,
    SLOT_COVER_TILT,
    SLOT_LOCK,
    SLOT_OFF,
    SLOT_ON,
    SLOT_SET_COOLING_POINT,
    SLOT_SET_HEATING_POINT,
    SLOT_SET_MODE,
    SLOT_SET_MODE_VALUE,
    SLOT_UNLOCK,
    WINDOW_COVERING_STOPPED,
    DeviceType,
    initial_attributes,
)
from webhookbridge.templating import MAX_LEVEL, level_to_percent, round_half_up

if TYPE_CHECKING:
    from webhookbridge.bridge.config import WebhookConfig
    from webhookbridge.bridge.dispatcher import CommandDispatcher, DispatchResult

logger = logging.getLogger(__name__)

SCENE_RESET_DELAY = 1.0  # seconds a scene reports "on" after being triggered
SETPOINT_MODE_HEAT = 0
SETPOINT_MODE_COOL = 1
SETPOINT_MODE_BOTH = 2


def _outcome(result: "DispatchResult") -> dict[str, Any]:
    return {"success": result.success, "message": result.message}


class WebhookDevice(BaseDevice):
    """A typed device that forwards its actions to a CommandDispatcher.

    Which handlers get registered depends on the device type (see
    ``HANDLER_GROUPS``) and, for optional actions, on whether the webhook
    configures the matching slot. Attributes are only updated when the
    dispatch did not fail.
    """

    def __init__(self, name: str, webhook: "WebhookConfig", dispatcher: "CommandDispatcher"):
        super().__init__(name)
        self._webhook = webhook
        self._dispatcher = dispatcher
        self._pending_resets: set[asyncio.TimerHandle] = set()
        self._attributes.update(initial_attributes(webhook.device_type))

        installers = {
            GROUP_ON_OFF: self._add_on_off_handlers,
            GROUP_SCENE: self._add_scene_handlers,
            GROUP_BRIGHTNESS: self._add_brightness_handlers,
            GROUP_COLOR_TEMPERATURE: self._add_color_temperature_handlers,
            GROUP_COLOR: self._add_color_handlers,
            GROUP_COLOR_XY: self._add_color_xy_handlers,
            GROUP_COVER: self._add_cover_handlers,
            GROUP_COVER_TILT: self._add_cover_tilt_handlers,
            GROUP_LOCK: self._add_lock_handlers,
            GROUP_THERMOSTAT: self._add_thermostat_handlers,
            GROUP_MODE_SELECT: self._add_mode_select_handlers,
        }
        for group in HANDLER_GROUPS[webhook.device_type]:
            installers[group]()

    @property
    def device_type(self) -> str:
        return self._webhook.device_type.value

    @property
    def webhook(self) -> "WebhookConfig":
        return self._webhook

    def close(self) -> None:
        """Cancel pending scene resets."""
        for handle in self._pending_resets:
            handle.cancel()
        self._pending_resets.clear()

    async def _dispatch(self, slot: str, params: dict[str, Any], **kwargs: Any) -> "DispatchResult":
        return await self._dispatcher.execute(self.name, slot, params, **kwargs)

    def _current_level(self) -> int:
        return self.get_attribute("levelControl", "currentLevel") or MAX_LEVEL

    def _current_hue(self, default: int = 0) -> int:
        hue = self.get_attribute("colorControl", "currentHue")
        return round_half_up(hue / 254 * 360) if hue else default

    def _current_saturation(self, default: int = 0) -> int:
        saturation = self.get_attribute("colorControl", "currentSaturation")
        return round_half_up(saturation / 254 * 100) if saturation else default

    # ===== SWITCHES, OUTLETS AND SCENES =====

    def _add_on_off_handlers(self) -> None:
        async def on(request: dict[str, Any]) -> dict[str, Any]:
            logger.info(f"{self.name}: Executing ON command")
            result = await self._dispatch(SLOT_ON, {})
            if result.success:
                self.set_attribute("onOff", "onOff", True)
            return _outcome(result)

        async def off(request: dict[str, Any]) -> dict[str, Any]:
            logger.info(f"{self.name}: Executing OFF command")
            result = await self._dispatch(SLOT_OFF, {})
            if result.success:
                self.set_attribute("onOff", "onOff", False)
            return _outcome(result)

        self.add_command_handler("on", on)
        self.add_command_handler("off", off)

    def _add_scene_handlers(self) -> None:
        async def trigger(request: dict[str, Any]) -> dict[str, Any]:
            logger.info(f"{self.name}: Triggering scene")
            result = await self._dispatch(SLOT_ON, {})
            if result.success:
                self.set_attribute("onOff", "onOff", True)
                loop = asyncio.get_running_loop()

                def reset() -> None:
                    self._pending_resets.discard(handle)
                    self.set_attribute("onOff", "onOff", False)

                handle = loop.call_later(SCENE_RESET_DELAY, reset)
                self._pending_resets.add(handle)
            return _outcome(result)

        self.add_command_handler("on", trigger)

    # ===== LIGHTS =====

    def _add_brightness_handlers(self) -> None:
        if not self._webhook.has_slot(SLOT_BRIGHTNESS):
            return

        async def move_to_level(request: dict[str, Any]) -> dict[str, Any]:
            level = int(request["level"])
            brightness = level_to_percent(level)
            logger.info(f"{self.name}: Setting brightness to {brightness}%")
            result = await self._dispatch(
                SLOT_BRIGHTNESS, {"brightness": brightness, "level": level}, level=level
            )
            if result.success:
                self.set_attribute("levelControl", "currentLevel", level)
            return _outcome(result)

        self.add_command_handler("moveToLevel", move_to_level)

    def _add_color_temperature_handlers(self) -> None:
        if not self._webhook.has_slot(SLOT_COLOR_TEMPERATURE):
            return

        async def move_to_color_temperature(request: dict[str, Any]) -> dict[str, Any]:
            mireds = request["colorTemperatureMireds"]
            level = self._current_level()
            logger.info(f"{self.name}: Setting color temperature to {mireds} mireds")
            result = await self._dispatch(
                SLOT_COLOR_TEMPERATURE,
                {"colorTemperatureMireds": mireds},
                level=level,
                hue=self._current_hue(),
                saturation=self._current_saturation(),
                brightness=level_to_percent(level),
            )
            if result.success:
                self.set_attribute("colorControl", "colorTemperatureMireds", mireds)
            return _outcome(result)

        self.add_command_handler("moveToColorTemperature", move_to_color_temperature)

    def _add_color_handlers(self) -> None:
        if self._webhook.has_slot(SLOT_COLOR_HUE):

            async def move_to_hue(request: dict[str, Any]) -> dict[str, Any]:
                hue = round_half_up(request["hue"] / 254 * 360)
                level = self._current_level()
                logger.info(f"{self.name}: Setting hue to {hue}°")
                result = await self._dispatch(
                    SLOT_COLOR_HUE,
                    {"hue": hue},
                    level=level,
                    hue=hue,
                    saturation=self._current_saturation(default=100),
                    brightness=level_to_percent(level),
                )
                if result.success:
                    self.set_attribute("colorControl", "currentHue", request["hue"])
                return _outcome(result)

            self.add_command_handler("moveToHue", move_to_hue)

        if self._webhook.has_slot(SLOT_COLOR_SATURATION):

            async def move_to_saturation(request: dict[str, Any]) -> dict[str, Any]:
                saturation = round_half_up(request["saturation"] / 254 * 100)
                level = self._current_level()
                logger.info(f"{self.name}: Setting saturation to {saturation}%")
                result = await self._dispatch(
                    SLOT_COLOR_SATURATION,
                    {"saturation": saturation},
                    level=level,
                    hue=self._current_hue(),
                    saturation=saturation,
                    brightness=level_to_percent(level),
                )
                if result.success:
                    self.set_attribute("colorControl", "currentSaturation", request["saturation"])
                return _outcome(result)

            self.add_command_handler("moveToSaturation", move_to_saturation)

    def _add_color_xy_handlers(self) -> None:
        if not self._webhook.has_slot(SLOT_COLOR_XY):
            return

        async def move_to_color(request: dict[str, Any]) -> dict[str, Any]:
            x = request["colorX"] / 65536
            y = request["colorY"] / 65536
            level = self._current_level()
            logger.info(f"{self.name}: Setting color XY to ({x:.3f}, {y:.3f})")
            result = await self._dispatch(
                SLOT_COLOR_XY,
                {"colorX": x, "colorY": y},
                level=level,
                hue=self._current_hue(),
                saturation=self._current_saturation(),
                brightness=level_to_percent(level),
            )
            if result.success:
                self.set_attribute("colorControl", "currentX", request["colorX"])
                self.set_attribute("colorControl", "currentY", request["colorY"])
            return _outcome(result)

        self.add_command_handler("moveToColor", move_to_color)

    # ===== COVERS =====

    def _set_lift(self, current: int, target: int) -> None:
        self.set_attribute("windowCovering", "currentPositionLiftPercent100ths", current)
        self.set_attribute("windowCovering", "targetPositionLiftPercent100ths", target)
        self.set_attribute("windowCovering", "operationalStatus", WINDOW_COVERING_STOPPED)

    def _add_cover_handlers(self) -> None:
        async def up_or_open(request: dict[str, Any]) -> dict[str, Any]:
            logger.info(f"{self.name}: Opening cover")
            result = await self._dispatch(SLOT_COVER_POSITION, {"position": 0}, level=0)
            if result.success:
                self._set_lift(0, 0)
            return _outcome(result)

        async def down_or_close(request: dict[str, Any]) -> dict[str, Any]:
            logger.info(f"{self.name}: Closing cover")
            result = await self._dispatch(SLOT_COVER_POSITION, {"position": 100}, level=MAX_LEVEL)
            if result.success:
                self._set_lift(10000, 10000)
            return _outcome(result)

        async def stop_motion(request: dict[str, Any]) -> dict[str, Any]:
            logger.info(f"{self.name}: Stopping cover")
            current = self.get_attribute("windowCovering", "currentPositionLiftPercent100ths", 0)
            self._set_lift(current, current)
            return {"success": True, "message": "Cover stopped"}

        self.add_command_handler("upOrOpen", up_or_open)
        self.add_command_handler("downOrClose", down_or_close)
        self.add_command_handler("stopMotion", stop_motion)

        if self._webhook.has_slot(SLOT_COVER_POSITION):

            async def go_to_lift_percentage(request: dict[str, Any]) -> dict[str, Any]:
                percent100ths = int(request["liftPercent100thsValue"])
                percent = round_half_up(percent100ths / 100)
                level = round_half_up(percent / 100 * MAX_LEVEL)
                logger.info(f"{self.name}: Moving to position {percent}%")
                result = await self._dispatch(SLOT_COVER_POSITION, {"position": percent}, level=level)
                if result.success:
                    self._set_lift(percent100ths, percent100ths)
                return _outcome(result)

            self.add_command_handler("goToLiftPercentage", go_to_lift_percentage)

    def _add_cover_tilt_handlers(self) -> None:
        if not self._webhook.has_slot(SLOT_COVER_TILT):
            return

        async def go_to_tilt_percentage(request: dict[str, Any]) -> dict[str, Any]:
            percent100ths = int(request["tiltPercent100thsValue"])
            percent = round_half_up(percent100ths / 100)
            level = round_half_up(percent / 100 * MAX_LEVEL)
            logger.info(f"{self.name}: Tilting to {percent}%")
            result = await self._dispatch(SLOT_COVER_TILT, {"tilt": percent}, level=level)
            if result.success:
                self.set_attribute("windowCovering", "currentPositionTiltPercent100ths", percent100ths)
                self.set_attribute("windowCovering", "targetPositionTiltPercent100ths", percent100ths)
            return _outcome(result)

        self.add_command_handler("goToTiltPercentage", go_to_tilt_percentage)

    # ===== LOCK =====

    def _add_lock_handlers(self) -> None:
        async def lock_door(request: dict[str, Any]) -> dict[str, Any]:
            logger.info(f"{self.name}: Locking")
            result = await self._dispatch(SLOT_LOCK, {})
            if result.success:
                self.set_attribute("doorLock", "lockState", DOOR_LOCK_LOCKED)
            return _outcome(result)

        async def unlock_door(request: dict[str, Any]) -> dict[str, Any]:
            logger.info(f"{self.name}: Unlocking")
            result = await self._dispatch(SLOT_UNLOCK, {})
            if result.success:
                self.set_attribute("doorLock", "lockState", DOOR_LOCK_UNLOCKED)
            return _outcome(result)

        self.add_command_handler("lockDoor", lock_door)
        self.add_command_handler("unlockDoor", unlock_door)

    # ===== THERMOSTATS =====

    async def _raise_lower(self, slot: str, attribute: str, amount: int) -> "DispatchResult":
        current = self.get_attribute("thermostat", attribute, 0)
        setpoint = current + amount * 10
        logger.info(f"{self.name}: Setting {attribute} to {setpoint / 100}°C")
        result = await self._dispatch(slot, {"temperature": setpoint / 100})
        if result.success:
            self.set_attribute("thermostat", attribute, setpoint)
        return result

    def _add_thermostat_handlers(self) -> None:
        has_heating = self._webhook.has_slot(SLOT_SET_HEATING_POINT)
        has_cooling = self._webhook.has_slot(SLOT_SET_COOLING_POINT)

        if has_heating or has_cooling:

            async def setpoint_raise_lower(request: dict[str, Any]) -> dict[str, Any]:
                mode = request.get("mode", SETPOINT_MODE_BOTH)
                amount = int(request.get("amount", 0))
                results = []
                if has_heating and mode in (SETPOINT_MODE_HEAT, SETPOINT_MODE_BOTH):
                    results.append(
                        await self._raise_lower(SLOT_SET_HEATING_POINT, "occupiedHeatingSetpoint", amount)
                    )
                if has_cooling and mode in (SETPOINT_MODE_COOL, SETPOINT_MODE_BOTH):
                    results.append(
                        await self._raise_lower(SLOT_SET_COOLING_POINT, "occupiedCoolingSetpoint", amount)
                    )
                if not results:
                    return {"success": True, "message": f"No setpoint endpoint for mode {mode}"}
                failed = [result for result in results if not result.success]
                return _outcome(failed[0] if failed else results[-1])

            self.add_command_handler("setpointRaiseLower", setpoint_raise_lower)

        if self._webhook.has_slot(SLOT_SET_MODE):

            async def set_system_mode(request: dict[str, Any]) -> dict[str, Any]:
                mode = request["systemMode"]
                logger.info(f"{self.name}: Setting mode to {mode}")
                result = await self._dispatch(SLOT_SET_MODE, {"mode": mode})
                if result.success:
                    self.set_attribute("thermostat", "systemMode", mode)
                return _outcome(result)

            self.add_command_handler("setSystemMode", set_system_mode)

    # ===== MODE SELECT =====

    def _add_mode_select_handlers(self) -> None:
        if not self._webhook.has_slot(SLOT_SET_MODE_VALUE):
            return

        async def change_to_mode(request: dict[str, Any]) -> dict[str, Any]:
            new_mode = request["newMode"]
            logger.info(f"{self.name}: Changing to mode {new_mode}")
            result = await self._dispatch(SLOT_SET_MODE_VALUE, {"mode": new_mode})
            if result.success:
                self.set_attribute("modeSelect", "currentMode", new_mode)
            return _outcome(result)

        self.add_command_handler("changeToMode", change_to_mode)

    @property
    def modes(self) -> list[dict[str, Any]]:
        """Supported modes for ModeSelect devices."""
        if self._webhook.device_type is not DeviceType.MODE_SELECT:
            return []
        return self._webhook.modes or [{"label": "Mode 1", "mode": 1}, {"label": "Mode 2", "mode": 2}]
