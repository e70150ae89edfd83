"""Webhooks platform: owns the devices, the HTTP session and the pollers."""

import asyncio
import logging
from typing import Any, Mapping, Optional, Union

from aiohttp import ClientSession

from webhookbridge.bridge.config import PlatformConfig, WebhookConfig
from webhookbridge.bridge.device_registry import DeviceRegistry
from webhookbridge.bridge.dispatcher import CommandDispatcher, LevelState
from webhookbridge.bridge.http import HttpClient
from webhookbridge.bridge.poller import Poller
from webhookbridge.devices.types import SLOT_ON
from webhookbridge.devices.webhook_device import WebhookDevice
from webhookbridge.exceptions import WebhookConfigError, WebhookTransportError
from webhookbridge.logging import DynamoStateLogger

logger = logging.getLogger(__name__)


class WebhooksPlatform:
    """Bridge between configured webhooks and in-process devices.

    Handles:
    - Creating one typed device per allowed webhook
    - Routing device actions through a shared CommandDispatcher
    - Polling ``pollState`` endpoints on each webhook's interval
    - Optional DynamoDB logging of every attribute change
    - Orderly shutdown (pollers first, then devices, then the HTTP session)

    The aiohttp session is created on :meth:`start` unless an HttpClient is
    passed in, in which case the caller keeps ownership of its session.
    """

    def __init__(
        self,
        config: PlatformConfig,
        registry: Optional[DeviceRegistry] = None,
        http: Optional[HttpClient] = None,
        state_logger: Optional[DynamoStateLogger] = None,
    ):
        """Initialize the platform.

        Args:
            config: Platform configuration with parsed webhooks
            registry: Registry to publish devices into (a new one by default)
            http: HTTP client to use instead of creating a session
            state_logger: Attribute change logger; defaults to a DynamoDB
                logger when the config names a state log table
        """
        self._config = config
        self._registry = registry if registry is not None else DeviceRegistry()
        self._webhooks: dict[str, WebhookConfig] = dict(config.webhooks)
        self._levels = LevelState()
        self._http = http
        self._owns_session = False
        self._dispatcher: Optional[CommandDispatcher] = None
        self._poller: Optional[Poller] = None
        self._running = False
        self._log_tasks: set[asyncio.Task] = set()

        if state_logger is None and config.state_log_table:
            state_logger = DynamoStateLogger(table_name=config.state_log_table)
        self._state_logger = state_logger

    async def start(self) -> int:
        """Create a device for every allowed webhook and start polling.

        Returns:
            Number of devices registered
        """
        if self._running:
            logger.warning("Platform is already running")
            return len(self._registry)

        if self._http is None:
            self._http = HttpClient(ClientSession())
            self._owns_session = True

        self._dispatcher = CommandDispatcher(self._webhooks, self._http, self._levels, self._config.timeout)
        self._poller = Poller(self._http, self._config.timeout)

        for name, webhook in self._webhooks.items():
            if not self._config.is_allowed(name):
                logger.info(f"Skipping webhook {name}: excluded by white/black list")
                continue
            self._create_device(name, webhook)

        self._running = True
        logger.info(f"Platform {self._config.name} started with {len(self._registry)} devices")
        return len(self._registry)

    async def stop(self) -> None:
        """Stop polling, release devices and close the owned HTTP session."""
        self._running = False

        if self._poller is not None:
            await self._poller.stop_all()

        for device in self._registry:
            if isinstance(device, WebhookDevice):
                device.close()
        self._registry.clear()
        self._levels.clear()

        if self._log_tasks:
            await asyncio.gather(*self._log_tasks, return_exceptions=True)

        if self._owns_session and self._http is not None:
            await self._http.session.close()
            self._http = None
            self._owns_session = False

        self._dispatcher = None
        self._poller = None
        logger.info(f"Platform {self._config.name} stopped")

    def _create_device(self, name: str, webhook: WebhookConfig) -> WebhookDevice:
        logger.info(f"Registering device: {name} as {webhook.device_type.value}")
        device = WebhookDevice(name, webhook, self._dispatcher)
        if self._state_logger is not None:
            device.add_listener(self._on_attribute_change)
        self._registry.register(device, replace=True)
        self._poller.start(device, webhook)
        return device

    def _remove_device(self, name: str) -> None:
        if self._poller is not None:
            self._poller.stop(name)
        device = self._registry.unregister(name)
        if isinstance(device, WebhookDevice):
            device.close()

    def _on_attribute_change(self, device_name: str, cluster: str, attribute: str, value: Any) -> None:
        task = asyncio.get_running_loop().create_task(
            self._state_logger.log_state_change(device_name, cluster, attribute, value)
        )
        self._log_tasks.add(task)
        task.add_done_callback(self._log_tasks.discard)

    def _parse(self, name: str, config: Union[WebhookConfig, Mapping[str, Any]]) -> WebhookConfig:
        if isinstance(config, WebhookConfig):
            return config
        return WebhookConfig.from_dict(name, config, self._config.device_type)

    async def add_webhook(
        self, name: str, config: Union[WebhookConfig, Mapping[str, Any]]
    ) -> Optional[WebhookDevice]:
        """Add or replace a webhook.

        While running, the previous device (if any) is discarded together with
        its poller and a fresh device is created, so a type change takes
        effect immediately.

        Returns:
            The new device, or None if the platform is stopped or the name is
            excluded by the white/black list

        Raises:
            WebhookConfigError: If ``config`` is malformed
        """
        webhook = self._parse(name, config)
        self._webhooks[name] = webhook
        logger.info(f"Webhook {name} set to {webhook.device_type.value}")

        if not self._running:
            return None
        self._remove_device(name)
        if not self._config.is_allowed(name):
            return None
        return self._create_device(name, webhook)

    async def remove_webhook(self, name: str) -> bool:
        """Forget a webhook and discard its device; returns False if unknown."""
        if self._webhooks.pop(name, None) is None:
            return False
        self._remove_device(name)
        logger.info(f"Webhook {name} removed")
        return True

    async def test_webhook(
        self, name: str, config: Optional[Union[WebhookConfig, Mapping[str, Any]]] = None
    ) -> bool:
        """Fire the first ``on`` command of a stored or candidate webhook.

        Args:
            name: Webhook name
            config: Candidate configuration to test instead of the stored one

        Returns:
            True if the request completed successfully
        """
        try:
            webhook = self._parse(name, config) if config is not None else self._webhooks.get(name)
        except WebhookConfigError as e:
            logger.error(f"Webhook test {name} failed: {e}")
            return False
        if webhook is None:
            logger.error(f"Webhook test {name} failed: unknown webhook")
            return False

        command = webhook.first_command(SLOT_ON)
        if command is None:
            logger.error(f"Webhook test {name} failed: no 'on' endpoint configured")
            return False

        timeout = webhook.timeout if webhook.timeout is not None else self._config.timeout
        logger.info(f"Testing webhook {name} ON endpoint: {command.method} {command.url}")
        try:
            if self._http is not None:
                await self._http.call(command.url, command.method, dict(command.params), timeout)
            else:
                async with ClientSession() as session:
                    await HttpClient(session).call(command.url, command.method, dict(command.params), timeout)
        except WebhookTransportError as e:
            logger.error(f"Webhook test {name} ON failed: {e}")
            return False

        logger.info(f"Webhook test {name} ON successful!")
        return True

    async def configure(self) -> None:
        """Reset every on/off device to off."""
        for device in self._registry:
            if device.has_attribute("onOff", "onOff"):
                logger.info(f"Configuring device: {device.name}")
                device.set_attribute("onOff", "onOff", False)

    async def execute(self, name: str, action: str, parameters: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Run an action on a registered device.

        Returns:
            The device's result dict; unknown devices report ``success=False``
        """
        device = self._registry.get(name)
        if device is None:
            return {"success": False, "message": f"Unknown device: {name}", "state": {}}
        logger.info(f"Received command: device={name}, action={action}")
        return await device.execute(action, parameters or {})

    async def poll_now(self, name: str) -> bool:
        """Poll one device immediately, outside its regular interval."""
        device = self._registry.get(name)
        webhook = self._webhooks.get(name)
        if device is None or webhook is None or self._poller is None:
            return False
        return await self._poller.poll_once(device, webhook)

    @property
    def is_running(self) -> bool:
        """Check if the platform has been started and not stopped."""
        return self._running

    @property
    def devices(self) -> dict[str, WebhookDevice]:
        return self._registry.get_all()

    @property
    def webhooks(self) -> dict[str, WebhookConfig]:
        return dict(self._webhooks)

    @property
    def levels(self) -> LevelState:
        return self._levels
