"""Name-keyed registry of the devices a platform exposes."""

import logging
from typing import Iterator, Optional

from webhookbridge.devices.base import BaseDevice

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Holds every live device by its configured webhook name."""

    def __init__(self):
        self._devices: dict[str, BaseDevice] = {}

    def register(self, device: BaseDevice, replace: bool = False) -> None:
        """Add a device under its own name.

        Args:
            device: Device to register
            replace: Allow overwriting a device with the same name

        Raises:
            ValueError: If the name is taken and ``replace`` is False
        """
        if device.name in self._devices and not replace:
            raise ValueError(f"Device already registered: {device.name}")
        self._devices[device.name] = device
        logger.debug(f"Registered {device.device_type} device '{device.name}'")

    def unregister(self, name: str) -> Optional[BaseDevice]:
        """Remove a device; returns it, or None if it was not registered."""
        return self._devices.pop(name, None)

    def get(self, name: str) -> Optional[BaseDevice]:
        return self._devices.get(name)

    def get_all(self) -> dict[str, BaseDevice]:
        """Return a snapshot of all registered devices."""
        return dict(self._devices)

    def names(self) -> list[str]:
        return list(self._devices)

    def clear(self) -> None:
        self._devices.clear()

    def __iter__(self) -> Iterator[BaseDevice]:
        return iter(list(self._devices.values()))

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, name: str) -> bool:
        return name in self._devices
