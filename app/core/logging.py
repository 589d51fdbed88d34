"""
Logging utilities for the FastAPI application and maintenance scripts.

Every analysis request is tagged with a trace identifier so the gate, the
router, and the model call can be correlated in the log stream.
"""

import logging
import sys
import uuid
from typing import Any, MutableMapping


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )


def new_trace_id() -> str:
    return uuid.uuid4().hex


class TraceLoggerAdapter(logging.LoggerAdapter):
    """Prefix messages with ``[trace=<id>]``."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        trace_id = (self.extra or {}).get("trace_id", "-")
        return f"[trace={trace_id}] {msg}", kwargs


def trace_logger(logger: logging.Logger, trace_id: str) -> TraceLoggerAdapter:
    """Bind ``trace_id`` to ``logger`` for the lifetime of one request."""
    return TraceLoggerAdapter(logger, {"trace_id": trace_id})


__all__ = ["TraceLoggerAdapter", "configure_logging", "new_trace_id", "trace_logger"]
