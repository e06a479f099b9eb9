import argparse
import importlib
import signal
import sys
from typing import List, Optional

from .config import Settings, load_config, parse_logging_config
from .errors import AdapterError, QueueError
from .hooks import JobHandler
from .io_sqs import SQSClient
from .logging import get_logger
from .queue import Queue

DEFAULT_HANDLER = "sqs_queue.hooks.LoggingHandler"


# ==========================================================
# Helpers
# ==========================================================

def load_handler(path: str, logger) -> JobHandler:
    """Import "package.module.Class" and instantiate it."""
    if "." not in path:
        raise ValueError(f"Handler path must be module.Class, got {path!r}")
    mod, cls = path.rsplit(".", 1)
    handler = getattr(importlib.import_module(mod), cls)()
    handler.logger = logger
    return handler


def build_queue(settings: Settings, handler=None, logger=None) -> Queue:
    """Wire adapter + queue from settings."""
    q = settings.queue
    client = SQSClient(
        q.url,
        region=q.region,
        endpoint_url=q.endpoint_url,
        access_key=q.access_key,
        secret_key=q.secret_key,
        logger=get_logger("io_sqs", level=settings.logging.level),
    )
    return Queue(
        client,
        handler,
        ttr=settings.worker.ttr,
        delay=settings.worker.delay,
        logger=logger or get_logger("queue", level=settings.logging.level),
    )


def install_signal_handlers(queue: Queue, logger) -> None:
    """SIGTERM/SIGINT finish the current iteration, then stop the loop."""
    def _stop(signum, frame):
        logger.info("Shutdown requested", {"signal": signum})
        queue.stop()

    signal.signal(signal.SIGTERM, _stop)
    signal.signal(signal.SIGINT, _stop)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sqs-queue", description="SQS job queue worker")
    parser.add_argument("--config", default=None, help="YAML config file (default: $SQS_QUEUE_CONFIG or bundled default)")
    parser.add_argument("--log-level", default=None, help="Override logging level")
    parser.add_argument("--handler", default=DEFAULT_HANDLER, help="Job handler class path (module.Class)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("run", help="Handle every queued job, then exit")

    listen = sub.add_parser("listen", help="Handle jobs until SIGTERM/SIGINT")
    listen.add_argument("--timeout", type=int, default=None, help="Long-poll seconds (0-20)")

    sub.add_parser("clear", help="Purge the queue")
    sub.add_parser("stats", help="Print approximate message counts")

    push = sub.add_parser("push", help="Push one job")
    push.add_argument("payload")
    push.add_argument("--ttr", type=int, default=None, help="Seconds a worker may hold the job")
    push.add_argument("--delay", type=int, default=None, help="Seconds before the job becomes visible (0-900)")
    return parser


# ==========================================================
# Entrypoint
# ==========================================================

def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_config(args.config)
    if args.log_level:
        settings.logging = parse_logging_config({"level": args.log_level})

    logger = get_logger("runner", level=settings.logging.level)

    if args.command in ("run", "listen"):
        handler = load_handler(args.handler, logger)
        queue = build_queue(settings, handler)
        install_signal_handlers(queue, logger)
        logger.info("Starting worker", {"command": args.command, "queue_url": settings.queue.url, "handler": args.handler})
        try:
            if args.command == "run":
                return queue.run(repeat=False, timeout=settings.worker.wait_time)
            timeout = settings.worker.listen_timeout if args.timeout is None else args.timeout
            return queue.listen(timeout)
        except AdapterError as e:
            # Supervisor decides whether to restart
            logger.error(e, {"context": "main_loop", "operation": e.operation, "code": e.code})
            return 1

    queue = build_queue(settings)
    try:
        if args.command == "clear":
            queue.clear()
            logger.info("Queue cleared", {"queue_url": settings.queue.url})
        elif args.command == "stats":
            logger.info("Queue stats", queue.client.get_queue_stats())
        elif args.command == "push":
            message_id = queue.push(args.payload, ttr=args.ttr, delay=args.delay)
            print(message_id)
    except (QueueError, ValueError) as e:
        logger.error(e, {"context": args.command})
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
