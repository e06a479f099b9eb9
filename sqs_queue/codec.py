"""
Wire body codec: "<ttr>;<payload>".

TTR travels inside the body because SQS has no per-message processing budget;
the consumer turns it into a visibility timeout when it reserves the message.
The payload is never escaped, so decode splits on the first separator only.
"""

from __future__ import annotations

import re
from typing import Tuple

from .errors import FormatError

SEPARATOR = ";"

_TTR_RE = re.compile(r"[0-9]+")


def encode(ttr: int, payload: str) -> str:
    """Build the message body for a job."""
    if isinstance(ttr, bool) or not isinstance(ttr, int) or ttr < 0:
        raise ValueError(f"encode: ttr must be a non-negative int, got {ttr!r}")
    if not isinstance(payload, str):
        raise ValueError(f"encode: payload must be str, got {type(payload).__name__}")
    return f"{ttr}{SEPARATOR}{payload}"


def decode(body: str) -> Tuple[int, str]:
    """Split a message body into (ttr, payload)."""
    if not isinstance(body, str):
        raise FormatError(f"decode: body must be str, got {type(body).__name__}")

    ttr_raw, sep, payload = body.partition(SEPARATOR)
    if not sep:
        raise FormatError("decode: missing ';' separator")
    # ASCII digits only: int() would also accept " 5", "+5" and "٥"
    if not _TTR_RE.fullmatch(ttr_raw):
        raise FormatError(f"decode: ttr is not a non-negative integer: {ttr_raw!r}")

    return int(ttr_raw), payload


__all__ = ["SEPARATOR", "encode", "decode"]
