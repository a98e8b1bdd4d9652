"""
Error Handling Utilities

Provides:
- SinkError for failed persistence destinations
- describe_exception for one-line log messages that name the failure's origin
"""

import traceback


class SinkError(Exception):
    """Raised when a persistence destination (local file or S3) fails."""

    def __init__(self, sink: str, message: str):
        super().__init__(f"{sink}: {message}")
        self.sink = sink


def describe_exception(exc: BaseException) -> str:
    """Return ``<Type>: <message> (at <file>:<line> in <func>)``."""
    frames = traceback.extract_tb(exc.__traceback__)
    origin = ""
    if frames:
        last = frames[-1]
        origin = f" (at {last.filename}:{last.lineno} in {last.name})"
    return f"{type(exc).__name__}: {exc}{origin}"
