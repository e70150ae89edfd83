"""HTTP primitive shared by the dispatcher and the poller."""

import asyncio
import json
import logging
from typing import Any, Optional
from urllib.parse import urlencode

from aiohttp import ClientError, ClientSession, ClientTimeout

from webhookbridge.exceptions import (
    WebhookConnectionError,
    WebhookDecodeError,
    WebhookHttpError,
    WebhookTimeoutError,
)
from webhookbridge.templating import format_number

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 5000
HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}
BODY_METHODS = ("POST", "PUT")


def stringify_param(value: Any) -> str:
    """Serialize one parameter value for a query string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    if isinstance(value, (int, float)):
        return format_number(value)
    return str(value)


def build_query_url(url: str, params: dict[str, Any]) -> str:
    """Append ``params`` to ``url`` as a query string."""
    if not params:
        return url
    query = urlencode({key: stringify_param(value) for key, value in params.items()})
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{query}"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def decode_json(body: bytes, encoding: Optional[str] = None) -> Any:
    """Decode a response body as strict JSON.

    Raises:
        WebhookDecodeError: Body is not valid text in ``encoding``, not JSON,
            or uses NaN/Infinity
    """
    try:
        text = body.decode(encoding or "utf-8")
        return json.loads(text, parse_constant=_reject_constant)
    except (UnicodeDecodeError, LookupError, ValueError) as e:
        raise WebhookDecodeError(f"Failed to parse response JSON: {e}") from e


class HttpClient:
    """Thin JSON-over-HTTP client on top of an aiohttp session.

    GET requests carry their parameters in the query string, POST/PUT
    requests as a JSON body. Any status of 300 or above and any body that is
    not JSON is a failure. There are no retries.
    """

    def __init__(self, session: ClientSession):
        self._session = session

    @property
    def session(self) -> ClientSession:
        return self._session

    async def call(
        self,
        url: str,
        method: str = "GET",
        params: Optional[dict[str, Any]] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> Any:
        """Send one request and return the decoded JSON response.

        Args:
            url: Fully rendered request URL
            method: GET, POST or PUT
            params: Query parameters (GET) or JSON body (POST/PUT)
            timeout_ms: Total request timeout in milliseconds

        Returns:
            Decoded JSON response body

        Raises:
            WebhookHttpError: Response status >= 300
            WebhookTimeoutError: No complete response within the timeout
            WebhookConnectionError: Connection could not be established
            WebhookDecodeError: Response body is not JSON
        """
        params = params or {}
        method = method.upper()
        data: Optional[str] = None
        if method in BODY_METHODS:
            request_url = url
            data = json.dumps(params)
        else:
            request_url = build_query_url(url, params)

        logger.debug(f"{method} {request_url} body={data}")

        try:
            async with self._session.request(
                method,
                request_url,
                data=data,
                headers=HEADERS,
                timeout=ClientTimeout(total=timeout_ms / 1000),
            ) as resp:
                if resp.status >= 300:
                    raise WebhookHttpError(
                        f"Request failed with status code: {resp.status}", resp.status
                    )
                body = await resp.read()
                encoding = resp.charset
        except asyncio.TimeoutError as e:
            raise WebhookTimeoutError(
                f"Request timed out after {timeout_ms / 1000} seconds"
            ) from e
        except ClientError as e:
            raise WebhookConnectionError(f"Request failed: {e}") from e

        return decode_json(body, encoding)
