"""
Error taxonomy for the queue driver.

- FormatError: message body is not "<ttr>;<payload>"
- UnsupportedFeatureError: the SQS backend cannot do what was asked (priority, status)
- AdapterError: network/auth/service failures from the SQS adapter
- NotFoundError: receipt handle is stale (deleted, or visibility expired and redelivered)
"""

from __future__ import annotations

from typing import Optional


class QueueError(Exception):
    """Base class for every error raised by sqs_queue."""


class FormatError(QueueError, ValueError):
    """Malformed wire body."""


class UnsupportedFeatureError(QueueError, NotImplementedError):
    """Capability the backend does not provide. Never retried, never degraded."""


class AdapterError(QueueError):
    """Failure reported by (or while talking to) the queue service."""

    def __init__(self, message: str, *, operation: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message)
        self.operation = operation
        self.code = code


class NotFoundError(AdapterError):
    """Receipt handle no longer refers to an in-flight message."""


__all__ = [
    "QueueError",
    "FormatError",
    "UnsupportedFeatureError",
    "AdapterError",
    "NotFoundError",
]
