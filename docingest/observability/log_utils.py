"""
Logging utilities for structured pipeline logging.

Converts arbitrary context values (vectors, payloads, chunk lists) into
short log-safe strings and stamps records with the correlation ID.

Dependencies: logging (stdlib), observability.correlation
System role: Logging helper functions
"""

import logging
from typing import Any

from docingest.observability.correlation import get_correlation_id


def safe_log_value(value: Any, max_length: int = 300) -> str:
    """
    Render a value for a log record without dumping large payloads.

    Sequences and mappings are summarised by size; long strings are cut.

    Args:
        value: Value to render
        max_length: Maximum rendered length before truncation

    Returns:
        str: Log-safe representation
    """
    if value is None:
        return "None"
    if isinstance(value, (bytes, bytearray)):
        return f"bytes({len(value)})"
    if isinstance(value, (list, tuple, set)):
        return f"{type(value).__name__}[{len(value)}]"
    if isinstance(value, dict):
        return f"dict[{len(value)}]"

    try:
        text = value if isinstance(value, str) else str(value)
    except Exception as e:
        return f"<unrenderable {type(e).__name__}>"
    if len(text) > max_length:
        return f"{text[:max_length]}...(+{len(text) - max_length} chars)"
    return text


def _build_extra(context: dict[str, Any]) -> dict[str, str]:
    extra = {key: safe_log_value(val) for key, val in context.items()}
    extra.setdefault("correlation_id", get_correlation_id() or "-")
    return extra


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **context: Any,
) -> None:
    """
    Log a message with structured context.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        message: Log message
        **context: Arbitrary key-value pairs attached as record attributes
    """
    logger.log(level, message, extra=_build_extra(context))


def log_exception_with_context(
    logger: logging.Logger,
    message: str,
    exc: BaseException,
    **context: Any,
) -> None:
    """
    Log an exception with traceback and context.

    Args:
        logger: Logger instance
        message: Log message
        exc: Exception instance
        **context: Additional context
    """
    extra = _build_extra(context)
    extra["error_type"] = type(exc).__name__
    extra["error_msg"] = safe_log_value(str(exc))
    logger.error(message, exc_info=exc, extra=extra)
