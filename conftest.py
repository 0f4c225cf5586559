"""pytest configuration — add src/ to sys.path and provide shared fixtures."""
import itertools
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent / "src"))

from passbook.session import FormSession  # noqa: E402
from passbook.store import RecordRepository, SqliteClient  # noqa: E402


class CountingIds:
    """Predictable ids: id-1, id-2, ..."""

    def __init__(self):
        self._counter = itertools.count(1)

    def new_id(self):
        return f"id-{next(self._counter)}"


class SteppingClock:
    """Timestamps one minute apart, starting 2024-01-01T00:00:00+00:00."""

    def __init__(self, start=datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self._current = start - timedelta(minutes=1)

    def now(self):
        self._current += timedelta(minutes=1)
        return self._current.isoformat()


@pytest.fixture
def client(tmp_path):
    with SqliteClient(tmp_path / "pass.db") as c:
        yield c


@pytest.fixture
def repo(client):
    repository = RecordRepository(client)
    repository.load_all()
    return repository


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def session(repo, clock):
    return FormSession(repo, ids=CountingIds(), clock=clock)
