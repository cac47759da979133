"""
Helpers for logging failures on the request path without ever raising from the
logging code itself. Exception groups (raised by anyio task groups inside
Starlette's streaming machinery) are unpacked so each sub-exception is visible.
"""

import logging


def _safe_str(obj) -> str:
    """Convert an object to string, falling back to repr or the type name."""
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} object (string conversion failed)>"


def _sub_exceptions(exception) -> list:
    try:
        return list(getattr(exception, "exceptions", None) or [])
    except Exception:
        return []


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: BaseException,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception, one record per sub-exception for exception groups.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g., "[Proxy]", "[Upstream]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
    """
    safe_prefix = _safe_str(prefix) if prefix is not None else ""
    sub_exceptions = _sub_exceptions(exception)

    try:
        if sub_exceptions:
            logger.log(
                level,
                f"{safe_prefix} Exception with {len(sub_exceptions)} sub-exceptions: "
                f"{_safe_str(exception)}",
            )
            for i, sub_exc in enumerate(sub_exceptions):
                logger.log(
                    level,
                    f"{safe_prefix} Sub-exception {i + 1}: "
                    f"{type(sub_exc).__name__}: {_safe_str(sub_exc)}",
                    exc_info=sub_exc,
                )
        else:
            logger.log(
                level,
                f"{safe_prefix} Exception: {_safe_str(exception)}",
                exc_info=exception if exception is not None else False,
            )
    except Exception:
        # Last resort: the record without formatting or traceback
        try:
            logger.log(level, f"{safe_prefix} Exception (logging failed)")
        except Exception:
            pass


def format_exception_message(exception: BaseException) -> str:
    """
    Format an exception for an error response or log line, including the
    sub-exceptions of an exception group.
    """
    if exception is None:
        return "None"

    sub_exceptions = _sub_exceptions(exception)
    if not sub_exceptions:
        return _safe_str(exception)

    parts = [f"{type(sub).__name__}: {_safe_str(sub)}" for sub in sub_exceptions]
    return f"{_safe_str(exception)} (Sub-exceptions: {'; '.join(parts)})"
