"""Tests for the aiohttp-based HTTP primitive."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from webhookbridge.bridge.http import HEADERS, HttpClient, build_query_url, stringify_param
from webhookbridge.exceptions import (
    WebhookConnectionError,
    WebhookDecodeError,
    WebhookHttpError,
    WebhookTimeoutError,
    WebhookTransportError,
)


def make_session(status=200, text='{"ok": true}', error=None, body=None, charset="utf-8"):
    """Build a MagicMock aiohttp session whose request() yields one response."""
    response = MagicMock()
    response.status = status
    response.charset = charset
    response.read = AsyncMock(return_value=body if body is not None else text.encode("utf-8"))

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    if error is not None:
        session.request.side_effect = error
    else:
        session.request.return_value = context
    return session


class TestStringifyParam:
    """Tests for query string value serialization."""

    def test_values(self):
        assert stringify_param(None) == ""
        assert stringify_param(True) == "true"
        assert stringify_param(False) == "false"
        assert stringify_param(2.0) == "2"
        assert stringify_param(2.5) == "2.5"
        assert stringify_param("abc") == "abc"
        assert stringify_param({"a": 1}) == '{"a":1}'
        assert stringify_param([1, 2]) == "[1,2]"

    def test_build_query_url(self):
        assert build_query_url("http://h/p", {}) == "http://h/p"
        assert build_query_url("http://h/p", {"a": 1, "b": True}) == "http://h/p?a=1&b=true"
        assert build_query_url("http://h/p?x=1", {"a": "b c"}) == "http://h/p?x=1&a=b+c"


class TestHttpClientCall:
    """Tests for HttpClient.call."""

    @pytest.mark.asyncio
    async def test_get_puts_params_in_query(self):
        session = make_session()
        client = HttpClient(session)

        result = await client.call("http://h/api", "GET", {"level": 50, "on": True})

        assert result == {"ok": True}
        args, kwargs = session.request.call_args
        assert args == ("GET", "http://h/api?level=50&on=true")
        assert kwargs["data"] is None
        assert kwargs["headers"] == HEADERS
        assert kwargs["timeout"] == aiohttp.ClientTimeout(total=5.0)

    @pytest.mark.asyncio
    async def test_post_sends_json_body(self):
        session = make_session()
        client = HttpClient(session)

        await client.call("http://h/api", "post", {"zone": "A"}, timeout_ms=1500)

        args, kwargs = session.request.call_args
        assert args == ("POST", "http://h/api")
        assert json.loads(kwargs["data"]) == {"zone": "A"}
        assert kwargs["timeout"] == aiohttp.ClientTimeout(total=1.5)

    @pytest.mark.asyncio
    async def test_status_300_is_http_error(self):
        client = HttpClient(make_session(status=302))

        with pytest.raises(WebhookHttpError) as exc_info:
            await client.call("http://h/api")

        assert exc_info.value.status == 302
        assert "302" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_status_299_is_success(self):
        client = HttpClient(make_session(status=299, text="[]"))
        assert await client.call("http://h/api") == []

    @pytest.mark.asyncio
    async def test_non_json_body_is_decode_error(self):
        client = HttpClient(make_session(text="<html>ok</html>"))

        with pytest.raises(WebhookDecodeError):
            await client.call("http://h/api")

    @pytest.mark.asyncio
    async def test_invalid_utf8_body_is_decode_error(self):
        client = HttpClient(make_session(body=b'{"t": "\xff\xfe"}'))

        with pytest.raises(WebhookDecodeError):
            await client.call("http://h/api")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ['{"t": NaN}', '{"t": Infinity}', "-Infinity"])
    async def test_non_finite_constants_are_decode_errors(self, text):
        client = HttpClient(make_session(text=text))

        with pytest.raises(WebhookDecodeError):
            await client.call("http://h/api")

    @pytest.mark.asyncio
    async def test_missing_charset_defaults_to_utf8(self):
        client = HttpClient(make_session(body='{"name": "Küche"}'.encode("utf-8"), charset=None))
        assert await client.call("http://h/api") == {"name": "Küche"}

    @pytest.mark.asyncio
    async def test_timeout(self):
        client = HttpClient(make_session(error=asyncio.TimeoutError()))

        with pytest.raises(WebhookTimeoutError):
            await client.call("http://h/api", timeout_ms=100)

    @pytest.mark.asyncio
    async def test_connection_error(self):
        client = HttpClient(make_session(error=aiohttp.ClientConnectionError("refused")))

        with pytest.raises(WebhookConnectionError):
            await client.call("http://h/api")

    @pytest.mark.asyncio
    async def test_all_failures_are_transport_errors(self):
        client = HttpClient(make_session(status=500))

        with pytest.raises(WebhookTransportError):
            await client.call("http://h/api")
