"""Discover existing backups of a log file."""
import os
from dataclasses import dataclass
from typing import List

import pendulum

from .errors import ScanError
from .naming import parse_backup_timestamp


@dataclass(frozen=True, order=True)
class BackupEntry:
    timestamp: pendulum.DateTime
    path: str


def scan(directory: str, prefix: str) -> List[BackupEntry]:
    """Return backups of ``prefix`` found in ``directory``, oldest first.

    The live file itself and names that do not carry a backup timestamp are
    skipped. Entries with equal timestamps are ordered by path.

    Raises ScanError when the directory cannot be listed.
    """
    try:
        names = os.listdir(directory)
    except OSError as e:
        raise ScanError(
            f"cannot list log directory {directory}", path=directory, cause=e
        ) from e

    backups: List[BackupEntry] = []
    for name in names:
        timestamp = parse_backup_timestamp(name, prefix)
        if timestamp is None:
            continue
        backups.append(BackupEntry(timestamp, os.path.join(directory, name)))
    backups.sort()
    return backups
