"""Exceptions raised by the webhook bridge."""


class WebhookError(Exception):
    """Base class for all webhook bridge errors."""


class WebhookConfigError(WebhookError):
    """A webhook or platform configuration entry is missing or malformed."""


class WebhookTransportError(WebhookError):
    """An outbound HTTP request did not produce a usable response."""


class WebhookHttpError(WebhookTransportError):
    """The endpoint answered with a status code of 300 or above."""

    def __init__(self, message: str, status: int):
        super().__init__(message)
        self.status = status


class WebhookTimeoutError(WebhookTransportError):
    pass


class WebhookConnectionError(WebhookTransportError):
    pass  # DNS, refused connections, TLS failures


class WebhookDecodeError(WebhookTransportError):
    """The response body was not valid JSON."""


class MigrationError(WebhookError):
    """A legacy device database could not be converted."""
