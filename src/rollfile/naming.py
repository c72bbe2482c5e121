"""Backup file naming.

Backups are named ``<basename>.<YYYYMMDD>[_<HHMMSS>[_<mmm>]][.gz]``, all
fields in UTC. The finer fields are only added when the previous rotation
happened in the same day (and same second), which keeps names unique.
"""
import re
from datetime import datetime
from typing import Optional

import pendulum

BACKUP_NAME_RE = re.compile(
    r"\.(?P<year>\d{4})(?P<month>\d{2})(?P<day>\d{2})"
    r"(?:_(?P<hour>\d{2})(?P<minute>\d{2})(?P<second>\d{2}))?"
    r"(?:_(?P<millis>\d{3}))?"
    r"(?:\.gz)?$"
)


def to_utc(moment: datetime) -> pendulum.DateTime:
    # naive datetimes are taken as UTC
    return pendulum.instance(moment).in_timezone("UTC")


def format_date(moment: datetime) -> str:
    return to_utc(moment).strftime("%Y%m%d")


def format_time(moment: datetime) -> str:
    return to_utc(moment).strftime("%H%M%S")


def format_millis(moment: datetime) -> str:
    return f"{to_utc(moment).microsecond // 1000:03d}"


def compute_backup_path(
    base_path: str, now: datetime, last_rotation: Optional[datetime] = None
) -> str:
    """Return the backup path for a rotation happening at ``now``.

    ``last_rotation`` is the timestamp of the most recent retained backup
    (None on the very first rotation).
    """
    current = to_utc(now)
    backup = f"{base_path}.{format_date(current)}"
    if last_rotation is None:
        return backup
    last = to_utc(last_rotation)
    if current.date() == last.date():
        backup += "_" + format_time(current)
        if (current.hour, current.minute, current.second) == (
            last.hour,
            last.minute,
            last.second,
        ):
            backup += "_" + format_millis(current)
    return backup


def parse_backup_timestamp(name: str, prefix: str) -> Optional[pendulum.DateTime]:
    """Parse the UTC timestamp embedded in a backup filename.

    Returns None when ``name`` is not ``prefix`` followed by the backup
    suffix, or when the digits do not form a real date.
    """
    if not name.startswith(prefix) or name == prefix:
        return None
    m = BACKUP_NAME_RE.match(name, len(prefix))
    if not m:
        return None
    fields = {k: int(v) if v else 0 for k, v in m.groupdict().items()}
    try:
        return pendulum.datetime(
            fields["year"],
            fields["month"],
            fields["day"],
            fields["hour"],
            fields["minute"],
            fields["second"],
            fields["millis"] * 1000,
            tz="UTC",
        )
    except ValueError:
        return None
