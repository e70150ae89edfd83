"""Persistent logging of device state changes."""

from webhookbridge.logging.dynamo_logger import DynamoStateLogger

__all__ = ["DynamoStateLogger"]
