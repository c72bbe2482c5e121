"""Error kinds reported by the rotating sink.

Only ConfigurationError is raised to callers. Everything else is handed to
the sink's error observer so that logging never stops on an I/O hiccup.
"""
from __future__ import annotations

from typing import Optional


class SinkError(Exception):
    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class ConfigurationError(SinkError):
    """Configuration is unusable (e.g. no path). Raised at construction."""


class StreamError(SinkError):
    """Opening or writing the live file failed."""


class RotationError(SinkError):
    """Rename or reopen failed while rotating."""


class ScanError(SinkError):
    """The log directory could not be listed."""


class TrimError(SinkError):
    """A single backup could not be deleted."""
