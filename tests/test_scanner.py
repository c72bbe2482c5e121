import pendulum
import pytest

from rollfile.errors import ScanError
from rollfile.scanner import BackupEntry, scan


def touch(path):
    path.write_bytes(b"x")
    return path


def test_scan_orders_oldest_first_and_skips_strangers(tmp_path):
    touch(tmp_path / "app.log")
    touch(tmp_path / "app.log.20261017_120000")
    touch(tmp_path / "app.log.20261016")
    touch(tmp_path / "app.log.20261017")
    touch(tmp_path / "app.log.20261017_120000_500")
    touch(tmp_path / "app.log.notes")
    touch(tmp_path / "other.log.20261001")

    names = [e.path.rsplit("/", 1)[-1] for e in scan(str(tmp_path), "app.log")]
    assert names == [
        "app.log.20261016",
        "app.log.20261017",
        "app.log.20261017_120000",
        "app.log.20261017_120000_500",
    ]


def test_scan_entries_carry_utc_timestamps(tmp_path):
    touch(tmp_path / "app.log.20261017_093000")
    [entry] = scan(str(tmp_path), "app.log")
    assert isinstance(entry, BackupEntry)
    assert entry.timestamp == pendulum.datetime(2026, 10, 17, 9, 30, tz="UTC")
    assert entry.path == str(tmp_path / "app.log.20261017_093000")


def test_scan_ties_are_ordered_by_path(tmp_path):
    touch(tmp_path / "app.log.20261017.gz")
    touch(tmp_path / "app.log.20261017")
    first = scan(str(tmp_path), "app.log")
    assert [e.path for e in first] == sorted(e.path for e in first)
    assert scan(str(tmp_path), "app.log") == first


def test_scan_empty_directory(tmp_path):
    assert scan(str(tmp_path), "app.log") == []


def test_scan_missing_directory_raises_scan_error(tmp_path):
    missing = tmp_path / "nope"
    with pytest.raises(ScanError) as info:
        scan(str(missing), "app.log")
    assert info.value.path == str(missing)
    assert isinstance(info.value.cause, FileNotFoundError)
