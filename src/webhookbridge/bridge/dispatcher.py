"""Translate a device action into one or more outbound HTTP requests."""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from webhookbridge.bridge.config import HttpCommand, WebhookConfig
from webhookbridge.bridge.http import DEFAULT_TIMEOUT_MS, HttpClient, stringify_param
from webhookbridge.exceptions import WebhookTransportError
from webhookbridge.templating import Number, render_color, render_level, render_template

logger = logging.getLogger(__name__)


class LevelState:
    """Last applied level (0-254) per device name.

    Used as the "previous" value for ``${level.previous_*}`` placeholders.
    Concurrent writers for the same device are last-write-wins.
    """

    def __init__(self):
        self._levels: dict[str, Number] = {}

    def get(self, device_name: str) -> Number:
        return self._levels.get(device_name, 0)

    def set(self, device_name: str, level: Number) -> None:
        self._levels[device_name] = level

    def clear(self) -> None:
        self._levels.clear()

    def __contains__(self, device_name: str) -> bool:
        return device_name in self._levels


@dataclass
class DispatchResult:
    """Outcome of executing one command slot.

    ``executed`` is False when nothing was sent (slot not configured).
    ``responses`` holds the decoded body of every request that completed.
    """

    success: bool
    executed: bool
    message: str
    responses: list[Any] = field(default_factory=list)


class CommandDispatcher:
    """Executes the HTTP commands configured for a device's command slot.

    The dispatcher is the only component that changes per-device level state
    and the only one sending action-driven requests.
    """

    def __init__(
        self,
        webhooks: Mapping[str, WebhookConfig],
        http: HttpClient,
        levels: LevelState,
        default_timeout: int = DEFAULT_TIMEOUT_MS,
    ):
        """Initialize the dispatcher.

        Args:
            webhooks: Device name to webhook configuration; read on every call
            http: HTTP primitive used for all requests
            levels: Per-device level state owned by the platform
            default_timeout: Request timeout (ms) for devices without an override
        """
        self._webhooks = webhooks
        self._http = http
        self._levels = levels
        self._default_timeout = default_timeout

    def timeout_for(self, webhook: WebhookConfig) -> int:
        return webhook.timeout if webhook.timeout is not None else self._default_timeout

    async def execute(
        self,
        device_name: str,
        slot: str,
        params: Optional[Mapping[str, Any]] = None,
        level: Optional[Number] = None,
        hue: Optional[Number] = None,
        saturation: Optional[Number] = None,
        brightness: Optional[Number] = None,
    ) -> DispatchResult:
        """Run every command of ``slot`` for ``device_name`` in order.

        Args:
            device_name: Configured webhook name
            slot: Command slot, e.g. ``'on'`` or ``'brightness'``
            params: Dynamic parameters, merged over each command's static params
            level: Level (0-254) being applied; stored once all commands succeed
            hue: Hue in degrees, enables color placeholders
            saturation: Saturation 0-100, enables color placeholders
            brightness: Brightness 0-100, enables color placeholders

        Returns:
            DispatchResult; a transport failure aborts the remaining commands
        """
        webhook = self._webhooks.get(device_name)
        if webhook is None:
            logger.info(f"{device_name}: no webhook configured, ignoring '{slot}'")
            return DispatchResult(True, False, f"Unknown device: {device_name}")

        commands = webhook.endpoint(slot)
        if not commands:
            logger.info(f"{device_name}: no '{slot}' endpoint configured")
            return DispatchResult(True, False, f"No '{slot}' endpoint configured")

        timeout = self.timeout_for(webhook)
        responses: list[Any] = []
        for index, command in enumerate(commands, start=1):
            try:
                response = await self._execute_command(
                    device_name, command, params, timeout, level, hue, saturation, brightness
                )
            except WebhookTransportError as e:
                logger.error(
                    f"{device_name}: HTTP request {index}/{len(commands)} for '{slot}' failed: {e}"
                )
                return DispatchResult(False, True, str(e), responses)
            responses.append(response)

        if level is not None:
            self._levels.set(device_name, level)

        logger.info(f"{device_name}: HTTP request successful ({slot})")
        return DispatchResult(True, True, f"Executed '{slot}'", responses)

    async def _execute_command(
        self,
        device_name: str,
        command: HttpCommand,
        params: Optional[Mapping[str, Any]],
        timeout: int,
        level: Optional[Number],
        hue: Optional[Number],
        saturation: Optional[Number],
        brightness: Optional[Number],
    ) -> Any:
        previous_level = self._levels.get(device_name)
        current_level = level if level is not None else previous_level
        has_color = hue is not None or saturation is not None or brightness is not None

        url = render_template(
            command.url, current_level, previous_level, hue, saturation, brightness
        )

        merged = {**command.params, **(params or {})}
        request_params: dict[str, Any] = {}
        if command.method == "GET":
            request_params.update(merged)
        else:
            # Placeholders like {zone} consume their parameter
            for key, value in merged.items():
                placeholder = "{" + key + "}"
                if placeholder in url:
                    url = url.replace(placeholder, stringify_param(value))
                else:
                    request_params[key] = value

        for key, value in request_params.items():
            if isinstance(value, str):
                value = render_level(value, current_level, previous_level)
                if has_color:
                    value = render_color(value, hue or 0, saturation or 0, brightness or 0)
                request_params[key] = value

        logger.debug(f"{device_name}: {command.method} {url} params={request_params}")
        return await self._http.call(url, command.method, request_params, timeout)
