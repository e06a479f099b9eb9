"""SQS job queue driver: reserve-by-visibility consumer loop and producer."""

from .codec import decode, encode
from .errors import AdapterError, FormatError, NotFoundError, QueueError, UnsupportedFeatureError
from .hooks import JobHandler
from .io_sqs import Message, SQSClient
from .queue import Queue
from .reservation import release, reserve

__all__ = [
    "AdapterError",
    "FormatError",
    "JobHandler",
    "Message",
    "NotFoundError",
    "Queue",
    "QueueError",
    "SQSClient",
    "UnsupportedFeatureError",
    "decode",
    "encode",
    "release",
    "reserve",
]
