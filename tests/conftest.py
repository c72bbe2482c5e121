from datetime import timedelta
from pathlib import Path
import sys

import pendulum
import pytest

# Ensure repo's src/ is importable during tests and
# by linters that invoke pytest
_REPO_ROOT = Path(__file__).resolve().parents[1]
_SRC = str(_REPO_ROOT / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)


class FakeClock:
    """Returns ``start`` on the first call and moves forward ``step`` per call."""

    def __init__(self, start, step=timedelta(seconds=1)):
        self.current = start
        self.step = step
        self.calls = 0

    def __call__(self):
        now = self.current
        self.current = self.current + self.step
        self.calls += 1
        return now


@pytest.fixture
def clock():
    return FakeClock(pendulum.datetime(2026, 10, 17, 12, 0, 0, tz="UTC"))


@pytest.fixture
def errors():
    """Error observer that records every reported SinkError."""

    class _Collected(list):
        def __call__(self, error):
            self.append(error)

    return _Collected()
