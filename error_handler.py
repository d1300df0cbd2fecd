"""
Exception types and logging shortcuts shared by the database, table engine
and app setup.
"""

import os
from typing import Optional, Any, Callable
from functools import wraps
from logging_helper import logger


class TicketDeskError(Exception):
    """Root of the Ticket Desk exception tree."""
    pass


class DatabaseError(TicketDeskError):
    """A sqlite read or write failed."""
    pass


class ValidationError(TicketDeskError):
    """A ticket or request field was rejected."""
    pass


class ConfigurationError(TicketDeskError):
    """The data directory or an environment setting is unusable."""
    pass


class PersistenceError(TicketDeskError):
    """Persisted view state could not be read, decoded or written."""
    pass


def _log_failure(exc: Exception, message: str, level: str) -> None:
    log = getattr(logger, level, logger.error)
    log(f"{message}: {exc}")


def log_and_suppress(
    exc: Exception,
    message: str,
    level: str = "error",
    return_value: Any = None,
    log_traceback: bool = True
) -> Any:
    """
    Log `exc` under `message` and hand back `return_value` instead.

    The traceback goes to the debug level unless log_traceback is False,
    for failures that are expected (a missing store, a corrupt entry).
    """
    _log_failure(exc, message, level)
    if log_traceback:
        logger.debug("Suppressed exception", exc_info=exc)
    return return_value


def log_and_reraise(
    exc: Exception,
    message: str,
    level: str = "error",
    as_type: Optional[type] = None
) -> None:
    """
    Log `exc` and raise it again, optionally wrapped in `as_type`.

    A wrapped exception keeps the original as its __cause__.
    """
    _log_failure(exc, message, level)
    logger.debug("Re-raised exception", exc_info=exc)
    if as_type is None:
        raise exc
    raise as_type(f"{message}: {exc}") from exc


def validate_environment_variable(
    var_name: str,
    default: Any,
    validator: Optional[Callable[[Any], bool]] = None,
    converter: Optional[Callable[[str], Any]] = None
) -> Any:
    """
    Read a setting from the environment.

    `converter` turns the raw string into a value and `validator` accepts or
    rejects that value. An unset variable, a conversion error or a rejected
    value all yield `default`; the last two are logged as warnings.
    """
    raw = os.getenv(var_name)
    if raw is None:
        logger.debug(f"{var_name} unset, defaulting to {default!r}")
        return default

    value = raw
    if converter is not None:
        try:
            value = converter(raw)
        except (ValueError, TypeError) as exc:
            logger.warning(f"Ignoring {var_name}={raw!r} ({exc}); using {default!r}")
            return default

    if validator is not None and not validator(value):
        logger.warning(f"Ignoring {var_name}={raw!r}: out of range; using {default!r}")
        return default

    logger.debug(f"{var_name}={value!r}")
    return value


def safe_db_operation(operation_name: str, return_on_error: Any = None) -> Callable:
    """
    Decorate a read that should degrade to `return_on_error` when sqlite fails.

    Only for methods: the owning class name is added to the log line.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except Exception as exc:
                logger.error(f"{type(self).__name__}: could not {operation_name}: {exc}")
                logger.debug("Database failure", exc_info=exc)
                return return_on_error
        return wrapper
    return decorator
