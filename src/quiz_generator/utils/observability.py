"""
Observability capability injected into the orchestrator.

Wraps a standard library logger so the pipeline has no process-wide logging
state of its own; callers and tests supply whichever logger they want.
"""
import logging
import os
import time
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from quiz_generator.utils.errors import sanitize_for_logging

DEFAULT_LOGGER_NAME = "quiz_generator"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging, honouring LOG_LEVEL when no level is given."""
    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)


class Observability:
    """Structured logging and timing for one pipeline instance."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(DEFAULT_LOGGER_NAME)

    def _log(self, level: int, message: str, context: dict) -> None:
        if context:
            self.logger.log(level, "%s | %s", message, sanitize_for_logging(context))
        else:
            self.logger.log(level, "%s", message)

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, context)

    def error(self, message: str, **context: Any) -> None:
        self._log(logging.ERROR, message, context)

    @contextmanager
    def timer(self, operation: str, **context: Any) -> Iterator[dict]:
        """
        Time a block and log its duration when it exits.

        The yielded dict can be filled with extra context inside the block;
        it is merged into the performance log line.
        """
        extra: dict = {}
        start = time.perf_counter()
        try:
            yield extra
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 1)
            self.info("Performance metric", operation=operation, duration_ms=duration_ms, **context, **extra)
