"""Resolved sink configuration.

Trigger and retention modes are chosen once here, from the raw options.
"""
from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from typing import Optional, Union

from .errors import ConfigurationError

DEFAULT_PATTERN = ".yyyyMMdd.hhmmss.ms"
DEFAULT_RETAIN_COUNT = 1


class TriggerMode(enum.Enum):
    NONE = "none"
    SIZE = "size"


class RetentionMode(enum.Enum):
    UNBOUNDED = "unbounded"
    COUNT = "count"


@dataclass(frozen=True)
class SinkConfig:
    path: str
    max_size_bytes: int = 0
    retain_count: int = DEFAULT_RETAIN_COUNT
    pattern: str = DEFAULT_PATTERN
    compress: bool = False

    def __post_init__(self) -> None:
        if not self.path:
            raise ConfigurationError("rotating sink requires a path to the log file")
        # frozen: normalize through object.__setattr__
        if self.max_size_bytes is None or self.max_size_bytes < 0:
            object.__setattr__(self, "max_size_bytes", 0)
        if self.retain_count is None or self.retain_count <= 0:
            object.__setattr__(self, "retain_count", DEFAULT_RETAIN_COUNT)

    @property
    def trigger(self) -> TriggerMode:
        return TriggerMode.SIZE if self.max_size_bytes > 0 else TriggerMode.NONE

    @property
    def retention(self) -> RetentionMode:
        if self.trigger is TriggerMode.NONE:
            return RetentionMode.UNBOUNDED
        return RetentionMode.COUNT

    @property
    def directory(self) -> str:
        return os.path.dirname(self.path) or "."

    @property
    def basename(self) -> str:
        return os.path.basename(self.path)

    @classmethod
    def from_options(
        cls,
        path: Optional[str],
        max_size: Optional[int] = None,
        retain: Optional[int] = None,
        pattern: Optional[str] = None,
        compress: bool = False,
    ) -> "SinkConfig":
        """Normalize raw options.

        - empty path -> ConfigurationError
        - max_size missing or <= 0 disables rotation
        - retain missing or <= 0 falls back to DEFAULT_RETAIN_COUNT
        """
        if not path:
            raise ConfigurationError("rotating sink requires a path to the log file")
        max_size_bytes = max_size if max_size and max_size > 0 else 0
        retain_count = retain if retain and retain > 0 else DEFAULT_RETAIN_COUNT
        return cls(
            path=os.path.abspath(os.fspath(path)),
            max_size_bytes=max_size_bytes,
            retain_count=retain_count,
            pattern=pattern or DEFAULT_PATTERN,
            compress=bool(compress),
        )

    @classmethod
    def coerce(cls, value: Union["SinkConfig", str, os.PathLike, None]) -> "SinkConfig":
        # a bare path means "append only, never rotate"
        if isinstance(value, SinkConfig):
            return value
        if value is None:
            raise ConfigurationError("rotating sink requires a path to the log file")
        return cls.from_options(os.fspath(value))
