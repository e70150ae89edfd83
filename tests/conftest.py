"""Shared fixtures for webhook bridge tests."""

import sys
from pathlib import Path

import pytest

from webhookbridge.bridge.config import WebhookConfig
from webhookbridge.bridge.dispatcher import CommandDispatcher, LevelState

sys.path.insert(0, str(Path(__file__).parent))
from mocks.mock_http import MockHttpClient  # noqa: E402


@pytest.fixture
def http():
    """Return a recording HTTP client."""
    return MockHttpClient()


@pytest.fixture
def levels():
    return LevelState()


@pytest.fixture
def webhooks():
    """Mutable name -> WebhookConfig map shared with the dispatcher."""
    return {}


@pytest.fixture
def dispatcher(webhooks, http, levels):
    """Return a dispatcher wired to the mock HTTP client."""
    return CommandDispatcher(webhooks, http, levels)


@pytest.fixture
def make_webhook(webhooks):
    """Parse a raw webhook entry and register it under ``name``."""

    def _make(name: str, data: dict) -> WebhookConfig:
        webhook = WebhookConfig.from_dict(name, data)
        webhooks[name] = webhook
        return webhook

    return _make
