"""Device modules for webhook-backed devices."""

from .base import BaseDevice
from .types import DeviceType
from .webhook_device import WebhookDevice

__all__ = ["BaseDevice", "DeviceType", "WebhookDevice"]
