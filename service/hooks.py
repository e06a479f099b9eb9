# service/hooks.py
import json

from sqs_queue.hooks import JobHandler
from sqs_queue.logging import get_logger


class ServiceHooks(JobHandler):
    """Example service: payloads are JSON objects with a "task" key."""

    def handle(self, payload, ttr, attempt, priority):
        # runner.load_handler injects its logger; plain Queue(handler=...) use does not
        log = self.logger or get_logger("service")
        try:
            job = json.loads(payload)
        except json.JSONDecodeError as e:
            # Not deleted: SQS redrive moves it to the DLQ after maxReceiveCount
            log.error(f"Payload is not JSON: {e}", {"attempt": attempt})
            return False

        log.info("Processing job", {"task": job.get("task"), "ttr": ttr, "attempt": attempt})

        # Do your work here; finish within ttr or another worker may pick the job up
        return True
