from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlmodel import select

from config import settings
from database import Storage
from engine.locks import single_writer
from engine.score import score_series, sources_payload
from engine.weekly import build_theme_series, load_signals
from models import ResearchHit, Signal, ThemeSnapshot

logger = logging.getLogger(__name__)


@dataclass
class ScoredTheme:
    theme: str
    week: str
    heat: float
    momentum: float
    forecast_heat: Optional[float]
    confidence: Optional[float]
    decision: str
    sources: List[Dict[str, Any]] = field(default_factory=list)
    top_links: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None

    def as_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["created_at"] = self.created_at.isoformat() if self.created_at else None
        return d


def _as_utc(dt: datetime) -> datetime:
    # naive input is taken as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _loads_list(s: Optional[str]) -> List[Any]:
    try:
        v = json.loads(s or "[]")
    except (TypeError, ValueError):
        return []
    return v if isinstance(v, list) else []


def top_links_for(storage: Storage, theme: str, now: datetime, limit: Optional[int] = None) -> List[str]:
    """Best-scored evidence URLs from recent research runs for a theme."""
    limit = limit or settings.top_links
    since = (now - timedelta(days=settings.links_days)).date().isoformat()

    with storage.get_session() as session:
        hits = session.exec(
            select(ResearchHit)
            .where(or_(ResearchHit.entity_mapped == theme, func.lower(ResearchHit.entity_raw) == theme))
            .where(ResearchHit.url.is_not(None))
            .where(ResearchHit.ts_iso >= since)
            .order_by(ResearchHit.score.desc(), ResearchHit.id)
        ).all()

    links: List[str] = []
    for h in hits:
        if h.url and h.url not in links:
            links.append(h.url)
        if len(links) >= limit:
            break
    return links


def save_snapshots(storage: Storage, themes: List[ScoredTheme]) -> None:
    """Upsert one row per (week, theme); replaces on conflict."""
    rows = [
        {
            "week": t.week,
            "theme": t.theme,
            "heat": t.heat,
            "momentum": t.momentum,
            "forecast_heat": t.forecast_heat,
            "confidence": t.confidence,
            "decision": t.decision,
            "sources_json": json.dumps(t.sources),
            "top_links_json": json.dumps(t.top_links),
            "created_at": t.created_at or datetime.now(timezone.utc),
        }
        for t in themes
    ]
    with storage.write_session(f"{len(themes)} theme snapshots") as session:
        storage.upsert(session, ThemeSnapshot, rows, keys=("week", "theme"))


def compute_themes(
    storage: Storage,
    region: Optional[str] = None,
    week: Optional[str] = None,
    lookback_days: Optional[int] = None,
    as_of: Optional[datetime] = None,
) -> List[ScoredTheme]:
    """
    Full recompute: signals in the lookback window -> weekly series -> scores,
    persisted as one snapshot per (week, theme). Without `week` each theme is
    scored at its latest week; with `week` only themes that have signals in
    that week are scored, using history up to it.
    """
    region = region or settings.default_region
    lookback_days = lookback_days or settings.lookback_days
    now = as_of or datetime.now(timezone.utc)
    created_at = _as_utc(now)
    since = (now - timedelta(days=lookback_days)).date().isoformat()

    with single_writer(region):
        rows = load_signals(storage, since)
        if not rows:
            logger.info("[themes] %s: no signals since %s", region, since)
            return []

        series_by_theme = build_theme_series(rows, max_weeks=settings.window_weeks, until_week=week)

        out: List[ScoredTheme] = []
        for theme in sorted(series_by_theme):
            series = series_by_theme[theme]
            if not series or (week and series[-1].week != week):
                continue

            sc = score_series(series)
            out.append(
                ScoredTheme(
                    theme=theme,
                    week=series[-1].week,
                    heat=sc.heat,
                    momentum=sc.momentum,
                    forecast_heat=sc.forecast_heat,
                    confidence=sc.confidence,
                    decision=sc.decision,
                    sources=sources_payload(sc.per_source_z),
                    top_links=top_links_for(storage, theme, now),
                    created_at=created_at,
                )
            )

        save_snapshots(storage, out)

    logger.info("[themes] %s: scored %d themes (lookback %dd)", region, len(out), lookback_days)
    out.sort(key=lambda t: (-t.heat, t.theme))
    return out


def _row_to_scored(r: ThemeSnapshot) -> ScoredTheme:
    return ScoredTheme(
        theme=r.theme,
        week=r.week,
        heat=r.heat,
        momentum=r.momentum,
        forecast_heat=r.forecast_heat,
        confidence=r.confidence,
        decision=r.decision,
        sources=_loads_list(r.sources_json),
        top_links=_loads_list(r.top_links_json),
        created_at=r.created_at,
    )


def latest_week(storage: Storage) -> Optional[str]:
    with storage.get_session() as session:
        return session.exec(select(ThemeSnapshot.week).order_by(ThemeSnapshot.week.desc())).first()


def get_top_themes(storage: Storage, week: Optional[str] = None, limit: int = 10) -> List[ScoredTheme]:
    target = week or latest_week(storage)
    if not target:
        return []

    with storage.get_session() as session:
        rows = session.exec(
            select(ThemeSnapshot)
            .where(ThemeSnapshot.week == target)
            .order_by(ThemeSnapshot.heat.desc(), ThemeSnapshot.theme)
            .limit(int(limit))
        ).all()
    return [_row_to_scored(r) for r in rows]


def get_theme_one(storage: Storage, theme: str, weeks: int = 8, as_of: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Raw signal history of one theme for charting, oldest first."""
    now = as_of or datetime.now(timezone.utc)
    since = (now - timedelta(days=weeks * 7)).date().isoformat()
    key = (theme or "").lower().strip()

    with storage.get_session() as session:
        rows = session.exec(
            select(Signal)
            .where(Signal.keyword == key, Signal.date >= since)
            .order_by(Signal.date, Signal.id)
        ).all()
    return [{"date": r.date, "source": r.source, "value": r.value} for r in rows]
