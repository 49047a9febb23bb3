"""Logging utilities."""

import logging
import sys
from typing import Any, Mapping, MutableMapping, Optional, Tuple


def get_logger(name: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """Get a configured logger instance.

    Args:
        name: Logger name (defaults to this module)
        level: Logging level

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name or __name__)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(level)
    return logger


class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    Prefix records with an explicit run context.

    The context (session id, idea id, component) travels with the session
    config instead of living in module globals.

    Example:
        log = ContextLoggerAdapter(logger, {"session_id": "abc", "idea_id": 42})
        log.info("Starting")   # -> "[session=abc idea=42] Starting"
    """

    LABELS = (("session_id", "session"), ("idea_id", "idea"), ("component", "component"))

    def __init__(self, logger: logging.Logger, context: Optional[Mapping[str, Any]] = None):
        super().__init__(logger, dict(context or {}))

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        parts = [
            f"{label}={self.extra[key]}"
            for key, label in self.LABELS
            if self.extra.get(key) not in (None, "")
        ]
        if parts:
            msg = f"[{' '.join(parts)}] {msg}"
        return msg, kwargs
