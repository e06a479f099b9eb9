from __future__ import annotations

from typing import Any


class JobHandler:
    """
    Services implement ONLY:
      - handle(payload, ttr, attempt, priority) -> bool

    Return True to have the message deleted. False (or an exception) leaves it
    on the queue; SQS delivers it again once the ttr window runs out.
    `attempt` is the SQS ApproximateReceiveCount; `priority` is always 1.
    """
    logger: Any = None

    def handle(self, payload: str, ttr: int, attempt: int, priority: int) -> bool:
        raise NotImplementedError

    def __call__(self, payload: str, ttr: int, attempt: int, priority: int) -> bool:
        return self.handle(payload, ttr, attempt, priority)


class LoggingHandler(JobHandler):
    """Acknowledges every job after logging it. Default for the CLI runner."""

    def handle(self, payload, ttr, attempt, priority):
        if self.logger is not None:
            self.logger.info("Handled job", {"payload": payload, "ttr": ttr, "attempt": attempt})
        return True


__all__ = ["JobHandler", "LoggingHandler"]
