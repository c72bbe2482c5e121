"""Rotation trigger and retention policies."""
import os
from dataclasses import dataclass, field
from typing import List, Optional

import pendulum

from .errors import TrimError
from .log import get_logger
from .scanner import BackupEntry

logger = get_logger("rollfile.policies")

UNKNOWN_SIZE = -1


class SizeTrigger:
    """Decide before each write whether the live file must rotate first.

    The file size is read from disk once (missing file -> 0) and tracked
    from accepted writes afterwards. ``max_size_bytes == 0`` disables it.
    """

    def __init__(self, path: str, max_size_bytes: int) -> None:
        self.path = path
        self.max_size_bytes = max_size_bytes
        self.current_size = UNKNOWN_SIZE

    @property
    def enabled(self) -> bool:
        return self.max_size_bytes > 0

    def resolve_size(self) -> int:
        try:
            self.current_size = os.stat(self.path).st_size
        except OSError:
            self.current_size = 0
        return self.current_size

    @property
    def needs_stat(self) -> bool:
        return self.enabled and self.current_size == UNKNOWN_SIZE

    def must_rotate(self) -> bool:
        if not self.enabled:
            return False
        if self.current_size == UNKNOWN_SIZE:
            self.resolve_size()
        return self.current_size >= self.max_size_bytes

    def record(self, nbytes: int) -> None:
        if self.enabled and self.current_size != UNKNOWN_SIZE:
            self.current_size += nbytes

    def reset(self, size: int = 0) -> None:
        self.current_size = size

    def invalidate(self) -> None:
        self.current_size = UNKNOWN_SIZE


@dataclass
class TrimResult:
    last_timestamp: Optional[pendulum.DateTime] = None
    removed: List[str] = field(default_factory=list)
    errors: List[TrimError] = field(default_factory=list)


class CountRetention:
    """Keep at most ``retain_count`` backups; a count of None keeps all."""

    def __init__(self, retain_count: Optional[int]) -> None:
        self.retain_count = retain_count

    def trim(self, backups: List[BackupEntry]) -> TrimResult:
        """Delete the oldest backups beyond the retain count.

        ``backups`` must be ordered oldest first. The result carries the
        timestamp of the newest remaining backup (None if there is none).
        A failed delete is collected in ``errors`` and the pass continues.
        """
        result = TrimResult()
        remaining = list(backups)
        if self.retain_count is not None:
            while len(remaining) > self.retain_count:
                oldest = remaining.pop(0)
                try:
                    os.unlink(oldest.path)
                except FileNotFoundError:
                    continue
                except OSError as e:
                    result.errors.append(
                        TrimError(
                            f"cannot delete backup {oldest.path}",
                            path=oldest.path,
                            cause=e,
                        )
                    )
                    continue
                result.removed.append(oldest.path)
                logger.debug("backup_trimmed", path=oldest.path)
        if remaining:
            result.last_timestamp = remaining[-1].timestamp
        return result
