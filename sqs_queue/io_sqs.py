"""
SQS adapter: receive one message, change visibility, delete, send, purge.

Thin by intent:
- SQSClient class owns one lazily created boto3 client (inject your own for tests)
- Every botocore failure comes out as AdapterError / NotFoundError
- No client-side retry loop; botocore's transport retries are the only ones
- Size/delay/visibility guards mirror the hard SQS limits
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .errors import AdapterError, NotFoundError
from .logging import get_logger


# ============================================================================
# TYPES & CONSTANTS
# ============================================================================

RawMessage = Dict[str, Any]

SQS_MAX_BODY_BYTES = 256 * 1024
SQS_MAX_VISIBILITY = 43_200  # 12h hard SQS limit
SQS_MAX_DELAY = 900
SQS_MAX_WAIT = 20

# Error codes meaning "this receipt handle is no longer valid"
STALE_HANDLE_CODES = {
    "ReceiptHandleIsInvalid",
    "AWS.SimpleQueueService.ReceiptHandleIsInvalid",
    "MessageNotInflight",
    "AWS.SimpleQueueService.MessageNotInflight",
    "InvalidParameterValue",
}


@dataclass
class Message:
    """One delivery of a queue message. Valid for a single loop iteration."""
    body: str
    receipt_handle: Optional[str]
    receive_count: int = 1
    message_id: Optional[str] = None

    @classmethod
    def from_raw(cls, raw_msg: RawMessage) -> "Message":
        if not isinstance(raw_msg, dict):
            raise ValueError("Message.from_raw: expected dict")
        attributes = raw_msg.get("Attributes") or {}
        return cls(
            body=raw_msg.get("Body", ""),
            receipt_handle=raw_msg.get("ReceiptHandle"),
            receive_count=int(attributes.get("ApproximateReceiveCount", 1)),
            message_id=raw_msg.get("MessageId"),
        )


# ============================================================================
# SQS CLIENT CLASS
# ============================================================================

class SQSClient:
    """
    Adapter between the queue driver and one SQS queue.

    - Easy to test: pass a fake or stubbed boto3 client as sqs_client
    - Credentials: explicit key/secret when both are set, otherwise boto3's default chain
    """

    def __init__(
        self,
        queue_url: str,
        sqs_client=None,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        logger=None,
    ):
        if not isinstance(queue_url, str) or not queue_url.strip():
            raise ValueError("SQSClient: queue_url required")
        self.queue_url = queue_url
        self._sqs = sqs_client
        self._region = region
        self._endpoint_url = endpoint_url
        self._access_key = access_key
        self._secret_key = secret_key
        self.logger = logger or get_logger("io_sqs")

    @property
    def sqs(self):
        """Lazy-load SQS client with long-polling config."""
        if self._sqs is None:
            kwargs: Dict[str, Any] = {
                "region_name": self._region,
                "config": Config(
                    retries={"max_attempts": 3, "mode": "standard"},
                    read_timeout=70,     # > 20s long-poll
                    connect_timeout=3,
                ),
            }
            if self._endpoint_url:
                kwargs["endpoint_url"] = self._endpoint_url
            if self._access_key is not None and self._secret_key is not None:
                kwargs["aws_access_key_id"] = self._access_key
                kwargs["aws_secret_access_key"] = self._secret_key
            self._sqs = boto3.client("sqs", **kwargs)
        return self._sqs

    # ------------------------------------------------------------------------
    # RECEIVING
    # ------------------------------------------------------------------------

    def receive(self, wait_seconds: int = 0) -> Optional[Message]:
        """Long-poll for at most one message. None when the wait ends empty."""
        wait_s = max(0, min(int(wait_seconds), SQS_MAX_WAIT))
        self.logger.debug("Receiving message", {"queue_url": self.queue_url, "wait_seconds": wait_s})

        resp = self._call(
            "receive_message",
            QueueUrl=self.queue_url,
            AttributeNames=["ApproximateReceiveCount"],
            MaxNumberOfMessages=1,
            WaitTimeSeconds=wait_s,
        )
        messages = (resp or {}).get("Messages") or []
        if not messages:
            return None
        return Message.from_raw(messages[-1])

    # ------------------------------------------------------------------------
    # ACKNOWLEDGEMENT & VISIBILITY
    # ------------------------------------------------------------------------

    def change_visibility(self, receipt_handle: str, seconds: int) -> None:
        """Hide (or re-show) an in-flight message for `seconds` from now."""
        if not isinstance(receipt_handle, str) or not receipt_handle.strip():
            raise ValueError("change_visibility: receipt_handle required")
        if isinstance(seconds, bool) or not isinstance(seconds, int) or seconds < 0:
            raise ValueError("change_visibility: timeout must be non-negative int")

        if seconds > SQS_MAX_VISIBILITY:
            self.logger.warning("Visibility timeout capped at SQS maximum", {
                "requested": seconds,
                "applied": SQS_MAX_VISIBILITY,
            })
            seconds = SQS_MAX_VISIBILITY

        self._call(
            "change_message_visibility",
            QueueUrl=self.queue_url,
            ReceiptHandle=receipt_handle,
            VisibilityTimeout=seconds,
        )

    def delete(self, receipt_handle: str) -> Dict[str, Any]:
        """ACK message: permanently remove it. Returns the service response."""
        if not isinstance(receipt_handle, str) or not receipt_handle.strip():
            raise ValueError("delete: receipt_handle required")

        return self._call(
            "delete_message",
            QueueUrl=self.queue_url,
            ReceiptHandle=receipt_handle,
        )

    # ------------------------------------------------------------------------
    # PUBLISHING
    # ------------------------------------------------------------------------

    def send(self, body: str, delay_seconds: int = 0) -> str:
        """Enqueue one message, optionally invisible for delay_seconds. Returns MessageId."""
        if not isinstance(body, str):
            raise ValueError("send: body must be str")
        if len(body.encode("utf-8")) > SQS_MAX_BODY_BYTES:
            raise ValueError("send: SQS message > 256KB")
        if isinstance(delay_seconds, bool) or not isinstance(delay_seconds, int) \
                or not 0 <= delay_seconds <= SQS_MAX_DELAY:
            raise ValueError(f"send: delay_seconds must be an int in 0..{SQS_MAX_DELAY}")

        resp = self._call(
            "send_message",
            QueueUrl=self.queue_url,
            MessageBody=body,
            DelaySeconds=delay_seconds,
        )
        message_id = (resp or {}).get("MessageId")
        self.logger.debug("Message sent", {"message_id": message_id, "delay_seconds": delay_seconds})
        return message_id

    def purge(self) -> None:
        """Drop every message. SQS applies this asynchronously (up to 60s)."""
        self._call("purge_queue", QueueUrl=self.queue_url)
        self.logger.info("Queue purge requested", {"queue_url": self.queue_url})

    # ------------------------------------------------------------------------
    # OPERATIONAL HELPERS
    # ------------------------------------------------------------------------

    def get_queue_stats(self) -> Dict[str, int]:
        """Approximate queue counts, for dashboards and CLI output."""
        resp = self._call(
            "get_queue_attributes",
            QueueUrl=self.queue_url,
            AttributeNames=[
                "ApproximateNumberOfMessages",
                "ApproximateNumberOfMessagesNotVisible",
                "ApproximateNumberOfMessagesDelayed",
            ],
        )
        attrs = (resp or {}).get("Attributes", {})
        return {
            "visible": int(attrs.get("ApproximateNumberOfMessages", 0)),
            "inflight": int(attrs.get("ApproximateNumberOfMessagesNotVisible", 0)),
            "delayed": int(attrs.get("ApproximateNumberOfMessagesDelayed", 0)),
        }

    # ------------------------------------------------------------------------
    # INTERNAL
    # ------------------------------------------------------------------------

    def _call(self, operation: str, **params):
        """Invoke one boto3 operation, translating botocore errors."""
        try:
            return getattr(self.sqs, operation)(**params)
        except ClientError as e:
            code = self._error_code(e)
            if "ReceiptHandle" in params and code in STALE_HANDLE_CODES:
                raise NotFoundError(
                    f"{operation}: receipt handle is stale ({code})",
                    operation=operation,
                    code=code,
                ) from e
            raise AdapterError(f"{operation} failed: {e}", operation=operation, code=code) from e
        except BotoCoreError as e:
            raise AdapterError(f"{operation} failed: {e}", operation=operation) from e

    @staticmethod
    def _error_code(error: ClientError) -> str:
        return error.response.get("Error", {}).get("Code", "")


__all__ = [
    "Message",
    "RawMessage",
    "SQSClient",
    "SQS_MAX_BODY_BYTES",
    "SQS_MAX_DELAY",
    "SQS_MAX_VISIBILITY",
    "SQS_MAX_WAIT",
]
