"""Size-rotating file sink with timestamped, count-bounded backups."""
from .config import (
    DEFAULT_PATTERN,
    DEFAULT_RETAIN_COUNT,
    RetentionMode,
    SinkConfig,
    TriggerMode,
)
from .errors import (
    ConfigurationError,
    RotationError,
    ScanError,
    SinkError,
    StreamError,
    TrimError,
)
from .naming import compute_backup_path, parse_backup_timestamp
from .policies import CountRetention, SizeTrigger, TrimResult
from .registry import SinkRegistry
from .scanner import BackupEntry, scan
from .sink import RotatingSink, RotationOutcome, SinkStatus

__version__ = "0.1.0"

__all__ = [
    "BackupEntry",
    "ConfigurationError",
    "CountRetention",
    "DEFAULT_PATTERN",
    "DEFAULT_RETAIN_COUNT",
    "RetentionMode",
    "RotatingSink",
    "RotationError",
    "RotationOutcome",
    "ScanError",
    "SinkConfig",
    "SinkError",
    "SinkRegistry",
    "SinkStatus",
    "SizeTrigger",
    "StreamError",
    "TrimError",
    "TriggerMode",
    "TrimResult",
    "compute_backup_path",
    "parse_backup_timestamp",
    "scan",
]
