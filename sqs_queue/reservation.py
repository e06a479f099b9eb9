"""
Reservation protocol over the SQS visibility timeout.

    Visible -> receive -> Received -> reserve(ttr) -> Reserved -> release -> Deleted

A reserved message that is never released becomes visible again once its
hidden window elapses; SQS does that, not this process. There is no local
lock: exclusion between workers is whatever the visibility timeout gives.
"""

from __future__ import annotations

from .io_sqs import Message, SQSClient


def reserve(client: SQSClient, message: Message, ttr: int) -> None:
    """Hide the message from other consumers for ttr seconds."""
    client.change_visibility(message.receipt_handle, ttr)


def release(client: SQSClient, message: Message) -> bool:
    """Delete a handled message. False when there is no receipt handle to act on."""
    if not message.receipt_handle:
        return False

    response = client.delete(message.receipt_handle)
    return response is not None


__all__ = ["reserve", "release"]
