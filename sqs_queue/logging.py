from __future__ import annotations
import json
import sys
import time
import traceback
from typing import Any, Dict, Optional

LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}


class StructuredLogger:
    """JSON-lines logger shared by the queue, the SQS adapter and the runner."""

    def __init__(self, name: str = "sqs_queue", level: str = "INFO", context: Optional[Dict[str, Any]] = None):
        self.name = name
        self.level = level.upper()
        self.context: Dict[str, Any] = dict(context or {})

    # ----------------------------------------------------------------------
    # Core logging method
    # ----------------------------------------------------------------------
    def _log(self, level: str, msg: str, extra: Optional[Dict[str, Any]] = None):
        """Format one record and print it to stdout."""
        if LEVELS.get(level, 100) < LEVELS.get(self.level, 20):
            return

        try:
            record = {
                "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
                "level": level,
                "logger": self.name,
                "msg": str(msg),
            }

            fields = dict(self.context)
            if extra and isinstance(extra, dict):
                fields.update(extra)
            for k, v in fields.items():
                # core keys win
                if k not in record:
                    record[k] = v

            line = json.dumps(record, ensure_ascii=False, default=str)
            print(line, file=sys.stdout, flush=True)

        except Exception as e:
            # Never crash the worker due to logging errors
            print(f"[logger-error] failed to log: {e}", file=sys.stderr, flush=True)

    # ----------------------------------------------------------------------
    # Public convenience methods
    # ----------------------------------------------------------------------
    def debug(self, msg: str, extra: Optional[Dict[str, Any]] = None):
        self._log("DEBUG", msg, extra)

    def info(self, msg: str, extra: Optional[Dict[str, Any]] = None):
        self._log("INFO", msg, extra)

    def warning(self, msg: str, extra: Optional[Dict[str, Any]] = None):
        self._log("WARNING", msg, extra)

    def error(self, msg: Any, extra: Optional[Dict[str, Any]] = None):
        # Exception objects get their type and traceback attached
        if isinstance(msg, BaseException):
            err_str = f"{type(msg).__name__}: {msg}"
            tb = "".join(traceback.format_exception(type(msg), msg, msg.__traceback__))
            self._log("ERROR", err_str, dict(extra or {}, traceback=tb))
        else:
            self._log("ERROR", msg, extra)

    def set_level(self, level: str) -> None:
        level = level.upper()
        if level not in LEVELS:
            raise ValueError(f"Invalid log level: {level}")
        self.level = level

    # ----------------------------------------------------------------------
    # Context binding
    # ----------------------------------------------------------------------
    def bind(self, **context: Any) -> "StructuredLogger":
        """
        Return a child logger with context attached to every record.
        Example:
            log = get_logger("queue").bind(receipt_handle=rh, attempt=2)
        """
        return StructuredLogger(name=self.name, level=self.level, context={**self.context, **context})


# ----------------------------------------------------------------------
# Module-level logger registry (one logger per name)
# ----------------------------------------------------------------------

_loggers: Dict[str, StructuredLogger] = {}


def get_logger(name: str = "sqs_queue", level: Optional[str] = None) -> StructuredLogger:
    """Get or create a logger for the given name. A given level is applied to an existing logger too."""
    if name not in _loggers:
        _loggers[name] = StructuredLogger(name=name, level=level or "INFO")
    elif level:
        _loggers[name].set_level(level)
    return _loggers[name]


__all__ = ["LEVELS", "StructuredLogger", "get_logger"]
