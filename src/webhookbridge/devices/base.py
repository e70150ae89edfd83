"""Base device: attribute store plus a table of command handlers."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

CommandHandler = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]
AttributeListener = Callable[[str, str, str, Any], None]


class BaseDevice(ABC):
    """Abstract base class for all bridged devices.

    A device keeps its attributes keyed by ``(cluster, attribute)`` and routes
    actions to handlers registered with :meth:`add_command_handler`. Anything
    that wants to observe attribute changes (state logging, tests) subscribes
    with :meth:`add_listener`.
    """

    def __init__(self, name: str):
        self._name = name
        self._attributes: dict[tuple[str, str], Any] = {}
        self._handlers: dict[str, CommandHandler] = {}
        self._listeners: list[AttributeListener] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    @abstractmethod
    def device_type(self) -> str:
        """Return the device type identifier (e.g. 'DimmableLight')."""
        pass

    @property
    def supported_actions(self) -> list[str]:
        """Return the names of all registered command handlers."""
        return list(self._handlers)

    def add_command_handler(self, action: str, handler: CommandHandler) -> None:
        """Register the handler for ``action``, replacing any previous one."""
        self._handlers[action] = handler

    def add_listener(self, listener: AttributeListener) -> None:
        self._listeners.append(listener)

    def get_attribute(self, cluster: str, attribute: str, default: Any = None) -> Any:
        return self._attributes.get((cluster, attribute), default)

    def has_attribute(self, cluster: str, attribute: str) -> bool:
        return (cluster, attribute) in self._attributes

    def set_attribute(self, cluster: str, attribute: str, value: Any) -> bool:
        """Store an attribute value and notify listeners if it changed.

        Returns:
            True if the stored value changed
        """
        key = (cluster, attribute)
        if key in self._attributes and self._attributes[key] == value:
            return False
        self._attributes[key] = value
        logger.debug(f"{self._name}: set {cluster}.{attribute} = {value!r}")
        for listener in self._listeners:
            try:
                listener(self._name, cluster, attribute, value)
            except Exception as e:
                logger.warning(f"{self._name}: attribute listener failed: {e}")
        return True

    def get_state(self) -> dict[str, Any]:
        """Return all attributes as ``{"cluster.attribute": value}``."""
        return {f"{cluster}.{attribute}": value for (cluster, attribute), value in self._attributes.items()}

    async def execute(self, action: str, parameters: dict[str, Any]) -> dict[str, Any]:
        """Execute an action on the device.

        Args:
            action: The action name (e.g., 'on', 'moveToLevel')
            parameters: Action parameters as a dictionary

        Returns:
            dict with keys:
                - success: bool indicating if action succeeded
                - message: str describing the result
                - state: dict with current device state after action
        """
        handler = self._handlers.get(action)
        if handler is None:
            return {
                "success": False,
                "message": f"Unknown action: {action}",
                "state": self.get_state(),
            }
        try:
            result = await handler(parameters)
        except Exception as e:
            logger.error(f"{self.name}: Error executing {action}: {e!r}")
            return {
                "success": False,
                "message": f"Error executing {action}: {e!r}",
                "state": self.get_state(),
            }
        return {**result, "state": self.get_state()}
