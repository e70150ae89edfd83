"""Periodic state polling for webhook devices (mostly sensors)."""

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Optional

from webhookbridge.bridge.config import WebhookConfig
from webhookbridge.bridge.http import DEFAULT_TIMEOUT_MS, HttpClient
from webhookbridge.devices.base import BaseDevice
from webhookbridge.devices.types import SLOT_POLL_STATE, DeviceType
from webhookbridge.exceptions import WebhookTransportError
from webhookbridge.extract import extract_value
from webhookbridge.templating import round_half_up

logger = logging.getLogger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _is_bool(value: Any) -> bool:
    return isinstance(value, bool)


def lux_to_measured_value(lux: float) -> int:
    """Convert lux into the logarithmic illuminance scale; 0 for lux <= 0."""
    if lux <= 0:
        return 0
    return round_half_up(10000 * math.log10(lux))


@dataclass(frozen=True)
class Measurement:
    """How one polled value lands on a device attribute.

    ``aliases`` are the top-level response fields tried, in order, when no
    poll template is configured. ``field`` is the key used when a climate
    sensor's template yields an object.
    """

    cluster: str
    attribute: str
    accepts: Callable[[Any], bool]
    convert: Callable[[Any], Any]
    aliases: tuple[str, ...]
    field: Optional[str] = None


CONTACT = Measurement("booleanState", "stateValue", _is_bool, lambda v: v, ("state", "contact"))
OCCUPANCY = Measurement(
    "occupancySensing", "occupancy", _is_bool, lambda v: {"occupied": v}, ("occupied", "motion")
)
ILLUMINANCE = Measurement(
    "illuminanceMeasurement", "measuredValue", _is_number, lux_to_measured_value, ("illuminance", "lux")
)
TEMPERATURE = Measurement(
    "temperatureMeasurement",
    "measuredValue",
    _is_number,
    lambda v: round_half_up(v * 100),
    ("temperature",),
    field="temperature",
)
HUMIDITY = Measurement(
    "relativeHumidityMeasurement",
    "measuredValue",
    _is_number,
    lambda v: round_half_up(v * 100),
    ("humidity",),
    field="humidity",
)
PRESSURE = Measurement(
    "pressureMeasurement",
    "measuredValue",
    _is_number,
    lambda v: round_half_up(v * 10),
    ("pressure",),
    field="pressure",
)

MEASUREMENTS: dict[DeviceType, tuple[Measurement, ...]] = {
    DeviceType.CONTACT_SENSOR: (CONTACT,),
    DeviceType.MOTION_SENSOR: (OCCUPANCY,),
    DeviceType.ILLUMINANCE_SENSOR: (ILLUMINANCE,),
    DeviceType.TEMPERATURE_SENSOR: (TEMPERATURE,),
    DeviceType.HUMIDITY_SENSOR: (HUMIDITY,),
    DeviceType.PRESSURE_SENSOR: (PRESSURE,),
    DeviceType.CLIMATE_SENSOR: (TEMPERATURE, HUMIDITY, PRESSURE),
}


class Poller:
    """Runs one polling task per device.

    Each task sleeps for the webhook's poll interval, then fetches the
    ``pollState`` endpoint and applies the result. A failed tick is logged and
    the next tick tries again; tasks never affect each other.
    """

    def __init__(self, http: HttpClient, default_timeout: int = DEFAULT_TIMEOUT_MS):
        self._http = http
        self._default_timeout = default_timeout
        self._tasks: dict[str, asyncio.Task] = {}

    @property
    def active(self) -> list[str]:
        """Names of devices with a running poll task."""
        return [name for name, task in self._tasks.items() if not task.done()]

    def start(self, device: BaseDevice, webhook: WebhookConfig) -> bool:
        """Start polling ``device`` if its webhook has a ``pollState`` endpoint.

        An existing task for the same device name is cancelled first.

        Returns:
            True if a task was started
        """
        if not webhook.has_slot(SLOT_POLL_STATE):
            return False
        self.stop(device.name)
        self._tasks[device.name] = asyncio.create_task(
            self._run(device, webhook), name=f"poll-{device.name}"
        )
        logger.info(f"{device.name}: Polling every {webhook.poll_interval}s")
        return True

    def stop(self, name: str) -> None:
        task = self._tasks.pop(name, None)
        if task is not None:
            task.cancel()

    async def stop_all(self) -> None:
        """Cancel every poll task and wait for them to finish."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"Stopped {len(tasks)} poll task(s)")

    async def _run(self, device: BaseDevice, webhook: WebhookConfig) -> None:
        while True:
            await asyncio.sleep(webhook.poll_interval)
            try:
                await self.poll_once(device, webhook)
            except Exception as e:
                logger.error(f"{device.name}: Error in poll tick: {e}")

    async def poll_once(self, device: BaseDevice, webhook: WebhookConfig) -> bool:
        """Fetch the poll endpoint once and update the device.

        Returns:
            True if at least one attribute value was applied
        """
        command = webhook.first_command(SLOT_POLL_STATE)
        if command is None:
            return False

        timeout = webhook.timeout if webhook.timeout is not None else self._default_timeout
        try:
            data = await self._http.call(command.url, command.method, dict(command.params), timeout)
        except WebhookTransportError as e:
            logger.error(f"{device.name}: Failed to poll sensor state: {e}")
            return False

        return self.apply(device, webhook, data)

    def apply(self, device: BaseDevice, webhook: WebhookConfig, data: Any) -> bool:
        """Apply a decoded poll response to the device's attributes."""
        measurements = MEASUREMENTS.get(webhook.device_type, ())

        if webhook.poll_template:
            value = extract_value(data, webhook.poll_template)
            if value is None:
                logger.warning(
                    f"{device.name}: Poll template '{webhook.poll_template}' did not extract a value from response"
                )
                return False
            logger.debug(f"{device.name}: Extracted value from template '{webhook.poll_template}': {value!r}")

            if webhook.device_type is DeviceType.CLIMATE_SENSOR and isinstance(value, dict):
                applied = False
                for measurement in measurements:
                    applied |= self._set(device, measurement, value.get(measurement.field))
                return applied
            # A bare value lands on the first measurement (temperature for climate sensors)
            return bool(measurements) and self._set(device, measurements[0], value)

        if not isinstance(data, dict):
            logger.debug(f"{device.name}: Poll response is not an object, nothing to apply")
            return False

        # Aliases are tried in order and the first one holding a value of the
        # expected type wins, so {"state": "open", "contact": true} uses contact.
        applied = False
        for measurement in measurements:
            for alias in measurement.aliases:
                if measurement.accepts(data.get(alias)):
                    applied |= self._set(device, measurement, data[alias])
                    break
        return applied

    @staticmethod
    def _set(device: BaseDevice, measurement: Measurement, value: Any) -> bool:
        if not measurement.accepts(value):
            return False
        device.set_attribute(measurement.cluster, measurement.attribute, measurement.convert(value))
        return True
