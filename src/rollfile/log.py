import logging
import sys
from typing import Optional

import orjson
import pendulum
import structlog
from structlog.processors import add_log_level

from .errors import SinkError

_handler: Optional[logging.Handler] = None

# silent until configure_logging() or the host application sets up logging
logging.getLogger("rollfile").addHandler(logging.NullHandler())


def _add_pendulum_timestamp(logger, method_name, event_dict: dict) -> dict:
    # structlog processors receive (logger, method_name, event_dict)
    event_dict["timestamp"] = pendulum.now("UTC").isoformat()
    return event_dict


def orjson_renderer(_, __, event_dict: dict) -> str:
    # orjson.dumps -> bytes; default=str covers paths and exceptions
    return orjson.dumps(event_dict, default=str).decode("utf-8")


def configure_logging(
    logfile_path: Optional[str] = None, level: int = logging.INFO
) -> logging.Handler:
    """Configure structlog to emit one JSON line per event.

    Events go through stdlib logging to ``logfile_path`` when given,
    otherwise to stderr. Calling it again replaces the previous handler.
    """
    global _handler

    if logfile_path:
        handler: logging.Handler = logging.FileHandler(
            logfile_path, encoding="utf-8"
        )
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger("rollfile")
    if _handler is not None:
        root.removeHandler(_handler)
        try:
            _handler.close()
        except OSError:
            pass
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False
    _handler = handler

    structlog.configure(
        processors=[
            add_log_level,
            _add_pendulum_timestamp,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            orjson_renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    return handler


def get_logger(name: str = "rollfile"):
    # bound to stdlib logging so events never bypass its handlers
    return structlog.wrap_logger(
        logging.getLogger(name), wrapper_class=structlog.stdlib.BoundLogger
    )


def log_error_observer(error: SinkError) -> None:
    """Default error channel: log the error and carry on."""
    get_logger("rollfile.errors").error(
        "sink_error",
        kind=type(error).__name__,
        path=error.path,
        error=str(error),
        cause=repr(error.cause) if error.cause is not None else None,
    )
