import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from urllib.parse import quote_plus

from pytrends.request import TrendReq

from config import settings
from connectors.registry import RawHit, geo_for_region

logger = logging.getLogger(__name__)


def slope_pct(vals: List[float]) -> float:
    """Relative change of the second half's mean vs the first half's mean."""
    if not vals:
        return 0.0
    mid = len(vals) // 2
    first, second = vals[:mid], vals[mid:]

    def avg(xs):
        return sum(xs) / max(len(xs), 1)

    a, b = avg(first), avg(second)
    return (b - a) / a if a else 0.0


def _timeframe(days: int) -> str:
    end = datetime.now(timezone.utc).date()
    start = end - timedelta(days=days)
    return f"{start.isoformat()} {end.isoformat()}"


def _explore_url(q: str, geo: str = "") -> str:
    url = f"https://trends.google.com/trends/explore?q={quote_plus(q)}"
    return f"{url}&geo={geo}" if geo else url


def fetch_google_trends(keyword: str, days: int = 28, region: str = "", trends: Optional[TrendReq] = None) -> List[RawHit]:
    """
    Search interest: one hit per geo (latest interest index as volume) plus
    the rising/top related queries of the first geo.
    """
    req = trends or TrendReq(hl=settings.pytrends_hl, tz=settings.pytrends_tz)
    tf = _timeframe(days)
    geos = geo_for_region(region)
    now_iso = datetime.now(timezone.utc).isoformat()
    hits: List[RawHit] = []

    for g in geos:
        try:
            req.build_payload([keyword], timeframe=tf, geo=g)
            df = req.interest_over_time()
        except Exception as e:
            logger.warning("[trends] interest_over_time failed for %r geo=%s: %s: %s", keyword, g or "GLOBAL", type(e).__name__, e)
            continue
        if df is None or df.empty or keyword not in df.columns:
            continue

        vals = [float(v) for v in df[keyword].tolist()]
        hits.append(
            RawHit(
                source="trends",
                entity_raw=keyword,
                timestamp=now_iso,
                volume=vals[-1],
                trend_hint=slope_pct(vals),
                freshness=1.0,
                url=_explore_url(keyword, g),
                metadata={"geo": g or "GLOBAL", "points": vals},
            )
        )

    try:
        req.build_payload([keyword], timeframe=tf, geo=geos[0])
        related = (req.related_queries() or {}).get(keyword) or {}
    except Exception as e:
        logger.warning("[trends] related_queries failed for %r: %s: %s", keyword, type(e).__name__, e)
        related = {}

    for tag, trend_hint, fresh in (("rising", 0.5, 0.8), ("top", 0.1, 0.8)):
        df = related.get(tag)
        if df is None or df.empty:
            continue
        for row in df.head(20).to_dict("records"):
            q = str(row.get("query") or "").strip()
            if not q:
                continue
            try:
                v = float(row.get("value") or 0)
            except (TypeError, ValueError):
                v = 0.0
            hits.append(
                RawHit(
                    source="trends",
                    entity_raw=q,
                    timestamp=now_iso,
                    volume=v,
                    trend_hint=trend_hint,
                    freshness=fresh,
                    url=_explore_url(q),
                    metadata={"from": "relatedQueries", "tag": tag},
                )
            )

    return hits
