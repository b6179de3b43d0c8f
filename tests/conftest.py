"""Shared pytest fixtures for unit tests."""

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Tuple

import pytest

from database import Storage
from models import Signal

# Friday of 2024-W17; week i of `weekly_dates` ends with this week
AS_OF = datetime(2024, 4, 26, 12, 0, tzinfo=timezone.utc)
FIRST_MONDAY = date(2024, 3, 4)  # 2024-W10


def week_date(i: int) -> str:
    """Monday of the i-th week starting at 2024-W10."""
    return (FIRST_MONDAY + timedelta(weeks=i)).isoformat()


@pytest.fixture
def storage(tmp_path) -> Storage:
    """File-backed SQLite store with all tables created."""
    s = Storage(f"sqlite:///{tmp_path / 'test.db'}")
    s.create_db_and_tables()
    yield s
    s.dispose()


@pytest.fixture
def add_signals(storage):
    """Insert (date, keyword, source, value) rows directly into the signals table."""

    def _add(rows: Iterable[Tuple[str, str, str, float]]) -> List[Signal]:
        objs = [Signal(date=d, keyword=k, source=s, value=v) for d, k, s, v in rows]
        with storage.write_session("test signals") as session:
            session.add_all(objs)
        return objs

    return _add


@pytest.fixture
def add_weekly_series(add_signals):
    """One signal per week for a keyword/source, starting at 2024-W10."""

    def _add(keyword: str, source: str, values: Iterable[float]):
        return add_signals([(week_date(i), keyword, source, v) for i, v in enumerate(values)])

    return _add
