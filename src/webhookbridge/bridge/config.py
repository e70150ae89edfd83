"""Configuration loader for the webhook bridge."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from webhookbridge.bridge.http import DEFAULT_TIMEOUT_MS
from webhookbridge.classify import classify_device, descriptor_from_webhook
from webhookbridge.devices.types import COMMAND_SLOTS, SLOT_ON, DeviceType
from webhookbridge.exceptions import WebhookConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.webhookbridge/config.json"
DEFAULT_PLATFORM_NAME = "webhookbridge"
DEFAULT_POLL_INTERVAL = 60
HTTP_METHODS = ("GET", "POST", "PUT")


@dataclass
class HttpCommand:
    """One outbound request template."""

    method: str
    url: str
    params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HttpCommand":
        if not isinstance(data, Mapping):
            raise WebhookConfigError(f"Command must be an object, got {type(data).__name__}")
        url = data.get("url")
        if not isinstance(url, str) or not url:
            raise WebhookConfigError("Command is missing a url")
        method = str(data.get("method", "GET")).upper()
        if method not in HTTP_METHODS:
            raise WebhookConfigError(f"Unsupported HTTP method: {method}")
        params = data.get("params") or {}
        if not isinstance(params, Mapping):
            raise WebhookConfigError("Command params must be an object")
        return cls(method=method, url=url, params=dict(params))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"method": self.method, "url": self.url}
        if self.params:
            data["params"] = dict(self.params)
        return data


def parse_endpoint(value: Any) -> list[HttpCommand]:
    """Normalize a slot value (one command or a list) into a command list."""
    items = value if isinstance(value, list) else [value]
    if not items:
        raise WebhookConfigError("Command list is empty")
    return [HttpCommand.from_dict(item) for item in items]


@dataclass
class WebhookConfig:
    """Configuration of one webhook-backed device."""

    device_type: DeviceType
    commands: dict[str, list[HttpCommand]] = field(default_factory=dict)
    timeout: Optional[int] = None
    poll_interval: int = DEFAULT_POLL_INTERVAL
    poll_template: Optional[str] = None
    modes: list[dict[str, Any]] = field(default_factory=list)
    unique_id: Optional[str] = None

    @classmethod
    def from_dict(
        cls,
        name: str,
        data: Mapping[str, Any],
        default_device_type: Optional[str] = None,
    ) -> "WebhookConfig":
        """Parse a webhook entry from the configuration file.

        Entries in the old single-URL format (``httpUrl`` + ``method``, no
        ``on`` and no ``deviceType``) become an ``on`` command. Entries without
        a ``deviceType`` are classified from the slots they define.

        Raises:
            WebhookConfigError: If the entry is malformed
        """
        if not isinstance(data, Mapping):
            raise WebhookConfigError(f"{name}: webhook must be an object")
        data = dict(data)

        if data.get("httpUrl") and data.get("method") and SLOT_ON not in data and not data.get("deviceType"):
            data[SLOT_ON] = {"method": data["method"], "url": data["httpUrl"]}
            data["deviceType"] = default_device_type or DeviceType.OUTLET.value

        raw_type = data.get("deviceType")
        if raw_type:
            try:
                device_type = DeviceType.parse(raw_type)
            except ValueError as e:
                raise WebhookConfigError(f"{name}: {e}") from e
        else:
            device_type = classify_device(descriptor_from_webhook(name, data))
            logger.debug(f"{name}: no deviceType configured, classified as {device_type.value}")

        commands: dict[str, list[HttpCommand]] = {}
        for slot in COMMAND_SLOTS:
            if data.get(slot) is None:
                continue
            try:
                commands[slot] = parse_endpoint(data[slot])
            except WebhookConfigError as e:
                raise WebhookConfigError(f"{name}: invalid '{slot}' endpoint: {e}") from e

        timeout = data.get("timeout")
        if timeout is not None and (not isinstance(timeout, (int, float)) or timeout <= 0):
            raise WebhookConfigError(f"{name}: timeout must be a positive number of milliseconds")

        poll_interval = data.get("pollInterval") or DEFAULT_POLL_INTERVAL
        if not isinstance(poll_interval, (int, float)) or poll_interval <= 0:
            raise WebhookConfigError(f"{name}: pollInterval must be a positive number of seconds")

        return cls(
            device_type=device_type,
            commands=commands,
            timeout=int(timeout) if timeout is not None else None,
            poll_interval=poll_interval,
            poll_template=data.get("pollTemplate") or None,
            modes=list(data.get("modes") or []),
            unique_id=data.get("uniqueId"),
        )

    def endpoint(self, slot: str) -> Optional[list[HttpCommand]]:
        return self.commands.get(slot)

    def first_command(self, slot: str) -> Optional[HttpCommand]:
        commands = self.commands.get(slot)
        return commands[0] if commands else None

    def has_slot(self, slot: str) -> bool:
        return slot in self.commands

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"deviceType": self.device_type.value}
        for slot, commands in self.commands.items():
            serialized = [command.to_dict() for command in commands]
            data[slot] = serialized[0] if len(serialized) == 1 else serialized
        if self.timeout is not None:
            data["timeout"] = self.timeout
        if self.poll_interval != DEFAULT_POLL_INTERVAL:
            data["pollInterval"] = self.poll_interval
        if self.poll_template:
            data["pollTemplate"] = self.poll_template
        if self.modes:
            data["modes"] = list(self.modes)
        if self.unique_id:
            data["uniqueId"] = self.unique_id
        return data


def _parse_timeout(value: Any, source: str) -> int:
    """Platform timeout in milliseconds; empty values fall back to the default."""
    if value is None or value == "" or value == 0:
        return DEFAULT_TIMEOUT_MS
    try:
        timeout = int(value)
    except (TypeError, ValueError) as e:
        raise WebhookConfigError(f"{source} must be a number of milliseconds, got {value!r}") from e
    if timeout <= 0:
        raise WebhookConfigError(f"{source} must be a positive number of milliseconds")
    return timeout


@dataclass
class PlatformConfig:
    """Platform-wide settings plus every webhook that parsed cleanly."""

    name: str = DEFAULT_PLATFORM_NAME
    timeout: int = DEFAULT_TIMEOUT_MS
    white_list: list[str] = field(default_factory=list)
    black_list: list[str] = field(default_factory=list)
    device_type: Optional[str] = None
    webhooks: dict[str, WebhookConfig] = field(default_factory=dict)
    state_log_table: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PlatformConfig":
        """Build the platform config; malformed webhooks are logged and skipped."""
        default_type = data.get("deviceType")
        webhooks: dict[str, WebhookConfig] = {}
        for name, entry in (data.get("webhooks") or {}).items():
            try:
                webhooks[name] = WebhookConfig.from_dict(name, entry, default_type)
            except WebhookConfigError as e:
                logger.error(f"Skipping webhook: {e}")

        return cls(
            name=data.get("name", DEFAULT_PLATFORM_NAME),
            timeout=_parse_timeout(data.get("timeout"), "timeout"),
            white_list=list(data.get("whiteList") or []),
            black_list=list(data.get("blackList") or []),
            device_type=default_type,
            webhooks=webhooks,
            state_log_table=data.get("stateLog"),
        )

    def is_allowed(self, device_name: str) -> bool:
        """Apply the white and black lists to a device name."""
        if self.white_list and device_name not in self.white_list:
            return False
        return device_name not in self.black_list


def load_config(config_path: Optional[str] = None) -> PlatformConfig:
    """Load platform configuration from file with environment variable overrides.

    Environment variables:
        WEBHOOKS_CONFIG_PATH: Override config file location
        WEBHOOKS_TIMEOUT: Override the default request timeout (milliseconds)
        DYNAMODB_TABLE_NAME: Enable the DynamoDB state log with this table

    Args:
        config_path: Path to config JSON file. Defaults to ~/.webhookbridge/config.json

    Returns:
        PlatformConfig with every valid webhook

    Raises:
        FileNotFoundError: If the config file does not exist
        WebhookConfigError: If the file is not a JSON object or a timeout is invalid
    """
    path_str = config_path or os.environ.get("WEBHOOKS_CONFIG_PATH", DEFAULT_CONFIG_PATH)
    config_file = Path(path_str).expanduser()

    if not config_file.exists():
        raise FileNotFoundError(
            f"Webhook config not found at {config_file}. "
            f"Run 'webhookbridge-migrate device.db {config_file}' to convert an ha-bridge database."
        )

    try:
        with open(config_file) as f:
            data = json.load(f)
    except ValueError as e:
        raise WebhookConfigError(f"{config_file} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise WebhookConfigError(f"{config_file} must contain a JSON object")

    config = PlatformConfig.from_dict(data)

    timeout_override = os.environ.get("WEBHOOKS_TIMEOUT")
    if timeout_override:
        config.timeout = _parse_timeout(timeout_override, "WEBHOOKS_TIMEOUT")
    table_override = os.environ.get("DYNAMODB_TABLE_NAME")
    if table_override:
        config.state_log_table = table_override

    logger.info(
        f"Loaded webhook config: {len(config.webhooks)} webhooks, default timeout={config.timeout}ms"
    )
    return config
