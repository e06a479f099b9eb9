"""
Shared fixtures: an in-memory stand-in for the boto3 SQS client.

FakeSQS keeps the parts of SQS the driver relies on:
- receive hides a message for `default_visibility` seconds and mints a new receipt handle
- change_message_visibility / delete_message reject stale handles with ClientError
- send_message honours DelaySeconds
Time is a manual clock (`fake.now`); call `advance()` to move it.
"""

import uuid
from typing import Any, Dict, List, Optional

import pytest
from botocore.exceptions import ClientError

from sqs_queue.io_sqs import SQSClient
from sqs_queue.logging import StructuredLogger

QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/jobs"


def client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} (fake)"}}, operation)


class FakeSQS:
    def __init__(self, default_visibility: int = 30):
        self.default_visibility = default_visibility
        self.now = 0.0
        self.messages: List[Dict[str, Any]] = []
        self.calls: List[tuple] = []

    # -- clock ---------------------------------------------------------------
    def advance(self, seconds: float) -> None:
        self.now += seconds

    # -- helpers -------------------------------------------------------------
    def _by_handle(self, handle: str) -> Optional[Dict[str, Any]]:
        for m in self.messages:
            if m["handle"] == handle:
                return m
        return None

    def visible(self) -> List[Dict[str, Any]]:
        return [m for m in self.messages if m["visible_at"] <= self.now]

    def calls_to(self, operation: str) -> List[Dict[str, Any]]:
        return [kwargs for op, kwargs in self.calls if op == operation]

    def enqueue(self, body: str, delay: int = 0) -> str:
        message_id = str(uuid.uuid4())
        self.messages.append({
            "id": message_id,
            "body": body,
            "visible_at": self.now + delay,
            "receive_count": 0,
            "handle": None,
        })
        return message_id

    # -- boto3 surface -------------------------------------------------------
    def receive_message(self, **kwargs):
        self.calls.append(("receive_message", kwargs))
        out = []
        for m in self.visible()[: kwargs.get("MaxNumberOfMessages", 1)]:
            m["receive_count"] += 1
            m["handle"] = f"rh-{uuid.uuid4().hex[:12]}"
            m["visible_at"] = self.now + self.default_visibility
            out.append({
                "MessageId": m["id"],
                "ReceiptHandle": m["handle"],
                "Body": m["body"],
                "Attributes": {"ApproximateReceiveCount": str(m["receive_count"])},
            })
        # boto3 omits the key entirely when nothing arrived
        return {"Messages": out} if out else {}

    def change_message_visibility(self, **kwargs):
        self.calls.append(("change_message_visibility", kwargs))
        m = self._by_handle(kwargs["ReceiptHandle"])
        if m is None:
            raise client_error("ReceiptHandleIsInvalid", "ChangeMessageVisibility")
        if m["visible_at"] <= self.now:
            raise client_error("MessageNotInflight", "ChangeMessageVisibility")
        m["visible_at"] = self.now + kwargs["VisibilityTimeout"]
        return {}

    def delete_message(self, **kwargs):
        self.calls.append(("delete_message", kwargs))
        m = self._by_handle(kwargs["ReceiptHandle"])
        if m is None:
            raise client_error("ReceiptHandleIsInvalid", "DeleteMessage")
        self.messages.remove(m)
        return {"ResponseMetadata": {"HTTPStatusCode": 200}}

    def send_message(self, **kwargs):
        self.calls.append(("send_message", kwargs))
        return {"MessageId": self.enqueue(kwargs["MessageBody"], kwargs.get("DelaySeconds", 0))}

    def purge_queue(self, **kwargs):
        self.calls.append(("purge_queue", kwargs))
        self.messages.clear()
        return {}

    def get_queue_attributes(self, **kwargs):
        self.calls.append(("get_queue_attributes", kwargs))
        visible = len(self.visible())
        return {"Attributes": {
            "ApproximateNumberOfMessages": str(visible),
            "ApproximateNumberOfMessagesNotVisible": str(len(self.messages) - visible),
            "ApproximateNumberOfMessagesDelayed": "0",
        }}


class RecordingHandler:
    """Handler that records calls and returns a scripted result."""

    def __init__(self, result=True):
        self.result = result
        self.calls = []

    def __call__(self, payload, ttr, attempt, priority):
        self.calls.append((payload, ttr, attempt, priority))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture
def quiet_logger():
    return StructuredLogger("test", level="ERROR")


@pytest.fixture
def fake_sqs():
    return FakeSQS()


@pytest.fixture
def client(fake_sqs, quiet_logger):
    return SQSClient(QUEUE_URL, sqs_client=fake_sqs, logger=quiet_logger)
