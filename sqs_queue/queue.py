"""
SQS job queue: consumer loop + producer.

Consumer, one message per iteration:
    receive(timeout) -> decode "<ttr>;<payload>" -> reserve(ttr) -> handler -> release

- Success deletes the message.
- Failure (False, an exception, or a malformed body) deletes nothing; SQS makes
  the message visible again once its hidden window runs out. That expiry is the
  only retry mechanism.
- Adapter errors are not retried here; they propagate to whoever runs the loop.
- A handler that runs longer than ttr can see its message redelivered to
  another worker while it is still working. Keep ttr above the worst case.
"""

from __future__ import annotations

from typing import Callable, Optional

from .codec import decode, encode
from .errors import FormatError, UnsupportedFeatureError
from .io_sqs import Message, SQSClient, SQS_MAX_WAIT
from .logging import get_logger
from .reservation import release, reserve

Handler = Callable[[str, int, int, int], bool]

# SQS has no priority; handlers always see this value
DEFAULT_PRIORITY = 1
DEFAULT_TTR = 300


class Queue:
    """Worker-side and producer-side API for one SQS queue."""

    def __init__(
        self,
        client: SQSClient,
        handler: Optional[Handler] = None,
        *,
        ttr: int = DEFAULT_TTR,
        delay: int = 0,
        logger=None,
    ):
        self.client = client
        self.handler = handler
        self.ttr = ttr
        self.delay = delay
        self.logger = logger or get_logger("queue")
        self._stopped = False

    # ------------------------------------------------------------------------
    # CONSUMER
    # ------------------------------------------------------------------------

    def run(self, repeat: bool = False, timeout: int = 0,
            can_continue: Optional[Callable[[], bool]] = None) -> int:
        """
        Listen to the queue and handle each job.

        Args:
            repeat: keep polling once the queue is empty (False = drain and exit)
            timeout: long-poll seconds per receive, 0..20
            can_continue: checked before every iteration; defaults to "stop() not called"

        Returns:
            exit code (0)
        """
        if isinstance(timeout, bool) or not isinstance(timeout, int) or not 0 <= timeout <= SQS_MAX_WAIT:
            raise ValueError(f"run: timeout must be an int in 0..{SQS_MAX_WAIT}, got {timeout!r}")
        if self.handler is None:
            raise RuntimeError("Queue has no handler; pass one to Queue(handler=...)")
        if can_continue is None:
            can_continue = self.can_continue

        self.logger.info("Worker started", {"repeat": repeat, "timeout": timeout})

        handled = 0
        while can_continue():
            message = self.client.receive(timeout)
            if message is not None:
                self.process(message)
                handled += 1
            elif not repeat:
                break

        # a stop() requested before run() is honoured; clear it so the queue can run again
        self._stopped = False
        self.logger.info("Worker stopped", {"handled": handled})
        return 0

    def listen(self, timeout: int = 3) -> int:
        """Continuous mode: block waiting for new jobs until stop() is called."""
        return self.run(repeat=True, timeout=timeout)

    def stop(self) -> None:
        """Ask the loop to exit before its next iteration. In-flight work finishes."""
        self._stopped = True

    def can_continue(self) -> bool:
        return not self._stopped

    def process(self, message: Message) -> bool:
        """Reserve, handle and release one received message. True when it was deleted."""
        log = self.logger.bind(receipt_handle=message.receipt_handle, attempt=message.receive_count)

        try:
            ttr, payload = decode(message.body)
        except FormatError as e:
            # Left undeleted: it comes back and fails the same way until SQS redrive moves it
            log.error(e, {"message_id": message.message_id})
            return False

        # Hide it for the whole processing budget before any handler work
        reserve(self.client, message, ttr)
        log.debug("Message reserved", {"ttr": ttr})

        if not self.handle_message(payload, ttr, message.receive_count, DEFAULT_PRIORITY, log):
            log.warning("Job failed; message left for redelivery", {"ttr": ttr})
            return False

        released = release(self.client, message)
        log.info("Job done", {"released": released})
        return released

    def handle_message(self, payload: str, ttr: int, attempt: int, priority: int, log=None) -> bool:
        """Dispatch a payload to the handler. Exceptions count as failure."""
        log = log or self.logger
        if self.handler is None:
            raise RuntimeError("Queue has no handler; pass one to Queue(handler=...)")

        try:
            return bool(self.handler(payload, ttr, attempt, priority))
        except Exception as e:
            log.error(e, {"context": "handler"})
            return False

    # ------------------------------------------------------------------------
    # PRODUCER
    # ------------------------------------------------------------------------

    def push(self, payload: str, ttr: Optional[int] = None, delay: Optional[int] = None,
             priority: Optional[int] = None) -> str:
        """Push a job using the queue defaults for anything not given. Returns the message id."""
        ttr = self.ttr if ttr is None else ttr
        delay = self.delay if delay is None else delay
        message_id = self.push_message(payload, ttr, delay, priority)
        self.logger.info("Job pushed", {"message_id": message_id, "ttr": ttr, "delay": delay})
        return message_id

    def push_message(self, payload: str, ttr: int, delay: int, priority: Optional[int]) -> str:
        if priority:
            raise UnsupportedFeatureError("Priority is not supported by the SQS driver")
        return self.client.send(encode(ttr, payload), delay)

    def clear(self) -> None:
        """Purge the queue. Messages in flight or just sent may survive for up to a minute."""
        self.client.purge()

    def status(self, message_id: str):
        raise UnsupportedFeatureError("Status is not supported by the SQS driver")


__all__ = ["DEFAULT_PRIORITY", "DEFAULT_TTR", "Handler", "Queue"]
