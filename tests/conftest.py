import pytest

from leitner_tutor.progress import ProgressStore
from leitner_tutor.storage import KeyValueStore

T0 = 1_700_000_000_000


class FakeClock:
    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_progress.db")
    return db_path


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv(tmp_db):
    return KeyValueStore(tmp_db)


@pytest.fixture
def store(kv, clock):
    return ProgressStore(kv, clock=clock)
