from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional

from sqlmodel import select

from config import SOURCES
from database import Storage
from engine.entities import map_entity
from engine.ingest import source_alias
from models import Signal


def iso_week(d: str | date | datetime) -> str:
    """ISO-8601 week id, e.g. 2024-W17 (Thursday-anchored, so 2021-01-01 is 2020-W53)."""
    if isinstance(d, str):
        d = date.fromisoformat(d[:10])
    elif isinstance(d, datetime):
        d = d.date()
    y, w, _ = d.isocalendar()
    return f"{y}-W{w:02d}"


def previous_week(week: str) -> str:
    """ISO week id seven days before `week`, e.g. 2021-W01 -> 2020-W53."""
    y, w = week.split("-W")
    return iso_week(date.fromisocalendar(int(y), int(w), 1) - timedelta(days=7))


def _empty_vector() -> Dict[str, float]:
    return {s: 0.0 for s in SOURCES}


@dataclass
class WeeklyBucket:
    theme: str
    week: str
    src: Dict[str, float] = field(default_factory=_empty_vector)

    def value(self, source: str) -> float:
        return float(self.src.get(source, 0.0))


def is_trackable(keyword: str) -> bool:
    return map_entity(keyword).mapped is not None


def load_signals(storage: Storage, since: str) -> List[Signal]:
    with storage.get_session() as session:
        return list(session.exec(select(Signal).where(Signal.date >= since)).all())


def build_theme_series(
    rows: Iterable[Signal],
    max_weeks: int = 8,
    until_week: Optional[str] = None,
) -> Dict[str, List[WeeklyBucket]]:
    """
    theme -> ascending weekly buckets (last `max_weeks` only).
    Stop-word keywords and sources outside the four canonical ones are ignored;
    themes without signals are simply absent.
    """
    buckets: Dict[str, Dict[str, WeeklyBucket]] = defaultdict(dict)

    for r in rows:
        theme = (r.keyword or "").lower().strip()
        if not theme or not is_trackable(theme):
            continue
        src = source_alias(r.source)
        if src not in SOURCES:
            continue

        w = iso_week(r.date)
        if until_week and w > until_week:
            continue

        b = buckets[theme].get(w)
        if b is None:
            b = buckets[theme][w] = WeeklyBucket(theme=theme, week=w)
        b.src[src] += float(r.value or 0)

    out: Dict[str, List[WeeklyBucket]] = {}
    for theme, by_week in buckets.items():
        series = sorted(by_week.values(), key=lambda b: b.week)
        out[theme] = series[-max_weeks:]
    return out
