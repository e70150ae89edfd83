"""Webhook bridge: configuration, HTTP dispatch, polling and lifecycle."""

from webhookbridge.bridge.config import HttpCommand, PlatformConfig, WebhookConfig, load_config
from webhookbridge.bridge.device_registry import DeviceRegistry
from webhookbridge.bridge.dispatcher import CommandDispatcher, DispatchResult, LevelState
from webhookbridge.bridge.http import HttpClient
from webhookbridge.bridge.platform import WebhooksPlatform
from webhookbridge.bridge.poller import Poller

__all__ = [
    "CommandDispatcher",
    "DeviceRegistry",
    "DispatchResult",
    "HttpClient",
    "HttpCommand",
    "LevelState",
    "PlatformConfig",
    "Poller",
    "WebhookConfig",
    "WebhooksPlatform",
    "load_config",
]
