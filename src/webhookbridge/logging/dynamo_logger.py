"""DynamoDB audit log of device attribute changes."""

import logging
import os
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

DEFAULT_TABLE_NAME = "webhookbridge-state-log"
DEFAULT_REGION = "eu-central-1"
TTL_DAYS = 30


def to_dynamo_value(value: Any) -> Any:
    """Convert a value into something the DynamoDB resource API accepts.

    Floats become Decimal; dicts and lists are converted recursively.
    """
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {str(key): to_dynamo_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamo_value(item) for item in value]
    return value


class DynamoStateLogger:
    """Fire-and-forget logger that writes attribute changes to DynamoDB.

    Lazy-initializes the boto3 Table resource on first write.
    After any connection/table failure, sets ``_disabled`` to avoid retrying.
    """

    def __init__(self, table_name: Optional[str] = None, profile_name: Optional[str] = None) -> None:
        self._table_name = table_name
        self._profile_name = profile_name
        self._table = None
        self._disabled = False

    @property
    def disabled(self) -> bool:
        return self._disabled

    def _get_table(self):
        """Lazily create and return the DynamoDB Table resource."""
        if self._table is not None:
            return self._table

        table_name = self._table_name or os.environ.get("DYNAMODB_TABLE_NAME", DEFAULT_TABLE_NAME)
        region = os.environ.get("AWS_DEFAULT_REGION", DEFAULT_REGION)

        session_kwargs = {"region_name": region}
        if self._profile_name:
            session_kwargs["profile_name"] = self._profile_name

        session = boto3.Session(**session_kwargs)
        self._table = session.resource("dynamodb").Table(table_name)
        logger.info(f"Logging attribute changes to DynamoDB table {table_name}")
        return self._table

    async def log_state_change(self, device_id: str, cluster: str, attribute: str, value: Any) -> None:
        """Record one attribute change.

        Failures are logged as warnings and never propagate to the caller.

        Args:
            device_id: Webhook name of the device
            cluster: Attribute cluster (e.g. ``onOff``)
            attribute: Attribute name within the cluster
            value: New attribute value
        """
        if self._disabled:
            return

        try:
            table = self._get_table()
            now = datetime.now(timezone.utc)
            table.put_item(
                Item={
                    "device_id": device_id,
                    "timestamp": now.isoformat(timespec="microseconds"),
                    "cluster": cluster,
                    "attribute": attribute,
                    "value": to_dynamo_value(value),
                    "ttl": int((now + timedelta(days=TTL_DAYS)).timestamp()),
                }
            )
        except (BotoCoreError, ClientError, Exception) as exc:
            logger.warning("DynamoDB logging failed, disabling logger: %s", exc)
            self._disabled = True
