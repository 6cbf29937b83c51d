"""
Logging for the relay: console lines for humans, JSON for machines.

Every record is enriched with the current correlation id (the HTTP request
id, or the relay ``connection_id``) and with the fields placed in the log
context by the connection handler. Errors additionally go to a JSON file
and, when enabled, everything from INFO upwards is shipped to Loki.
"""

import json
import logging
import sys
from contextvars import ContextVar
from typing import Any

from signal_relay.constants import LOKI_MAX_LOG_SIZE_BYTES
from signal_relay.settings import app_settings

log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

# Attributes every LogRecord carries; anything else came in through `extra`.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "correlation_id", "peer"}

_DATE_FMT = "%Y-%m-%d %H:%M:%S"


def get_correlation_id() -> str:
    """
    Correlation id of the current HTTP request or relay connection.

    Returns:
        The id, or an empty string outside of both.
    """
    from signal_relay.middlewares.correlation_id import (
        get_correlation_id as get_request_id,
    )

    return get_request_id() or log_context.get().get("connection_id", "")


def set_log_context(**fields: Any) -> None:
    """
    Attach fields to every record logged from the current task.

    Each relay connection is served by its own task, so fields set by one
    handler never leak into another.

    Example:
        >>> set_log_context(connection_id="a1b2c3d4", identity="bob")
        >>> logger.info("Peer registered")  # carries connection_id and identity
    """
    log_context.set({**log_context.get(), **fields})


def get_log_context() -> dict[str, Any]:
    return log_context.get()


def clear_log_context() -> None:
    log_context.set({})


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _STANDARD_ATTRS
    }


class StructuredJSONFormatter(logging.Formatter):
    """
    Render a record as a single JSON object.

    Context fields and ``extra`` fields are merged into the top level. Over-long
    messages are cut so the line stays within Loki's entry limit.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "environment": app_settings.ENVIRONMENT,
        }

        if correlation_id := get_correlation_id():
            payload["request_id"] = correlation_id

        payload.update(get_log_context())
        payload.update(_extra_fields(record))

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        line = json.dumps(payload, default=str)
        if len(line) > LOKI_MAX_LOG_SIZE_BYTES:
            overflow = len(line) - LOKI_MAX_LOG_SIZE_BYTES
            payload["message"] = (
                payload["message"][: -(overflow + 1000)] + "... [TRUNCATED]"
            )
            line = json.dumps(payload, default=str)

        return line


class HumanReadableFormatter(logging.Formatter):
    """
    Console formatter.

    INFO lines stay short; every other level also shows where the record
    came from. Records logged inside a registered connection show the peer
    identity next to the correlation id.
    """

    SHORT_FMT = "%(asctime)s - [%(correlation_id)s]%(peer)s %(levelname)s: %(message)s"
    LONG_FMT = (
        "%(asctime)s - [%(correlation_id)s]%(peer)s %(levelname)s: "
        "%(module)s.%(funcName)s:%(lineno)d - %(message)s"
    )

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._short = logging.Formatter(self.SHORT_FMT, datefmt=_DATE_FMT)
        self._long = logging.Formatter(self.LONG_FMT, datefmt=_DATE_FMT)

    def format(self, record: logging.LogRecord) -> str:
        record.correlation_id = get_correlation_id() or "-"
        identity = get_log_context().get("identity")
        record.peer = f" <{identity}>" if identity else ""

        if record.levelno == logging.INFO:
            return self._short.format(record)
        return self._long.format(record)


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(HumanReadableFormatter())
    return handler


def _error_file_handler() -> logging.Handler:
    handler = logging.FileHandler(app_settings.LOG_FILE_PATH)
    handler.setLevel(logging.ERROR)
    handler.setFormatter(StructuredJSONFormatter())
    return handler


def _loki_handler() -> logging.Handler:
    from logging_loki import LokiHandler

    handler = LokiHandler(
        url=f"{app_settings.LOKI_URL}/loki/api/v{app_settings.LOKI_VERSION}/push",
        tags={
            "application": "signal-relay",
            "environment": app_settings.ENVIRONMENT,
        },
        version=app_settings.LOKI_VERSION,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(StructuredJSONFormatter())
    return handler


def setup_logging() -> logging.Logger:
    """
    Configure the root logger from settings.

    Returns:
        The root logger.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, app_settings.LOG_LEVEL.upper()))
    root.handlers.clear()
    root.addHandler(_console_handler())

    try:
        root.addHandler(_error_file_handler())
    except OSError as e:
        root.warning(f"Could not create file handler: {e}")

    if app_settings.LOKI_ENABLED:
        try:
            root.addHandler(_loki_handler())
            root.info("Loki handler configured successfully")
        except Exception as e:
            root.warning(f"Could not configure Loki handler: {e}")

    # Keep pytest output clean
    if sys.argv[0].split("/")[-1] in ["pytest"]:
        logging.disable(logging.ERROR)

    return root


logger = setup_logging()
