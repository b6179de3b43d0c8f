from __future__ import annotations

import json
import logging
import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from sqlmodel import select

from config import DEFAULT_KEYWORDS, settings
from connectors.registry import ConnectorSpec, RawHit, default_connectors
from database import Storage
from engine.entities import map_entity
from engine.ingest import ingest_hits
from engine.themes import ScoredTheme, compute_themes
from engine.watchlist import get_keywords
from models import ResearchHit, ResearchRun

logger = logging.getLogger(__name__)

# editorial > search > creators > community chatter
HIT_SOURCE_WEIGHTS = {
    "news": 1.0,
    "trends": 0.8,
    "youtube": 0.6,
    "creator": 0.6,
    "reddit": 0.2,
}


def score_hit(hit: RawHit) -> float:
    w = HIT_SOURCE_WEIGHTS.get(hit.source, 0.5)
    v = math.log10(max(float(hit.volume or 0), 1.0))
    t = math.tanh(float(hit.trend_hint or 0) * 3)
    f = float(hit.freshness or 0)
    return v + 0.7 * t + 0.3 * w + 0.3 * f


def _safe_fetch(spec: ConnectorSpec, keyword: str, days: int, region: str) -> List[RawHit]:
    if spec.max_days:
        days = min(days, spec.max_days)
    try:
        return list(spec.fetch(keyword, days=days, region=region) or [])
    except Exception as e:
        logger.warning("[research] connector %s failed for %r: %s: %s", spec.name, keyword, type(e).__name__, e)
        return []


def fetch_all(keyword: str, days: int, region: str, connectors: Sequence[ConnectorSpec]) -> Dict[str, List[RawHit]]:
    """
    Fan out every connector for one keyword and wait for all of them.
    A failing connector contributes no hits.
    """
    results: Dict[str, List[RawHit]] = {spec.name: [] for spec in connectors}
    if not connectors:
        return results

    workers = max(1, min(settings.connector_workers, len(connectors)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(_safe_fetch, spec, keyword, days, region): spec for spec in connectors}
        for future in as_completed(futures):
            results[futures[future].name] = future.result()
    return results


def _bullets(leaders: List[Dict[str, Any]], n: int = 6) -> List[str]:
    out = []
    for lead in leaders[:n]:
        meta = []
        if lead["trend"]:
            meta.append(f"trend {round(lead['trend'] * 100)}%")
        if lead["volume"]:
            meta.append(f"vol {round(lead['volume'])}")
        suffix = f" ({', '.join(meta)})" if meta else ""
        out.append(f"- {lead['entity']}: {lead['type']}{suffix}")
    return out


def aggregate_leaders(scored: List[Dict[str, Any]], max_urls: int = 6) -> List[Dict[str, Any]]:
    agg: Dict[tuple, Dict[str, Any]] = {}
    for h in scored:
        if not h["entity_mapped"]:
            continue
        k = (h["entity_mapped"], h["type"])
        a = agg.get(k)
        if a is None:
            a = agg[k] = {"entity": k[0], "type": k[1], "volume": 0.0, "trend": 0.0, "fresh": 0.0, "score": 0.0, "urls": []}
        hit: RawHit = h["hit"]
        a["volume"] += float(hit.volume or 0)
        a["trend"] += float(hit.trend_hint or 0)
        a["fresh"] = max(a["fresh"], float(hit.freshness or 0))
        a["score"] += h["score"]
        if hit.url and hit.url not in a["urls"] and len(a["urls"]) < max_urls:
            a["urls"].append(hit.url)

    return sorted(agg.values(), key=lambda x: (-x["score"], x["entity"]))


def _resolve_keywords(storage: Storage, region: str, keywords: Optional[Sequence[str]]) -> List[str]:
    kws = [str(k).strip() for k in (keywords or []) if str(k).strip()]
    if kws:
        return kws
    return get_keywords(storage, region) or list(DEFAULT_KEYWORDS)


def run_research(
    storage: Storage,
    region: Optional[str] = None,
    keywords: Optional[Sequence[str]] = None,
    window_days: Optional[int] = None,
    connectors: Optional[Sequence[ConnectorSpec]] = None,
) -> Dict[str, Any]:
    """
    Pull fresh hits for each keyword from all connectors, append them as signals
    and return a light entity ranking for display.
    """
    region = region or settings.default_region
    window_days = window_days or settings.research_window_days
    connectors = list(default_connectors() if connectors is None else connectors)
    keywords = _resolve_keywords(storage, region, keywords)
    now = datetime.now(timezone.utc)

    source_counts = {spec.name: 0 for spec in connectors}
    scored: List[Dict[str, Any]] = []

    for kw in keywords:
        by_connector = fetch_all(kw, window_days, region, connectors)

        hits: List[RawHit] = []
        for spec in connectors:
            got = by_connector.get(spec.name, [])
            source_counts[spec.name] += len(got)
            hits.extend(got)

        ingest_hits(storage, hits, fallback_keyword=kw)

        for h in hits:
            m = map_entity(h.entity_raw or kw)
            scored.append({"hit": h, "entity_mapped": m.mapped, "type": m.type, "score": score_hit(h)})

    leaders = aggregate_leaders(scored)

    if len(leaders) < 3:
        have = {(x["entity"], x["type"]) for x in leaders}
        for kw in keywords:
            m = map_entity(kw)
            if not m.mapped or (m.mapped, m.type) in have:
                continue
            have.add((m.mapped, m.type))
            leaders.append({"entity": m.mapped, "type": m.type, "volume": 0.0, "trend": 0.0, "fresh": 0.0, "score": 0.1, "urls": []})
        leaders = leaders[:6]

    rising = _bullets(leaders, 6)
    citations = [{"entity": lead["entity"], "url": u} for lead in leaders[:6] for u in lead["urls"]]

    with storage.write_session("research run") as session:
        run = ResearchRun(
            region=region,
            keywords_json=json.dumps(keywords),
            content_json=json.dumps({"rising": rising, "sourceCounts": source_counts}),
            status="done",
            created_at=now,
        )
        session.add(run)
        session.flush()
        run_id = run.id

        session.add_all(
            ResearchHit(
                run_id=run_id,
                source=h["hit"].source,
                entity_raw=h["hit"].entity_raw or "",
                entity_mapped=h["entity_mapped"] or "",
                type=h["type"],
                ts_iso=h["hit"].timestamp or now.isoformat(),
                volume=float(h["hit"].volume or 0),
                trend=float(h["hit"].trend_hint or 0),
                fresh=float(h["hit"].freshness or 0),
                weight=HIT_SOURCE_WEIGHTS.get(h["hit"].source),
                score=h["score"],
                url=h["hit"].url,
                meta_json=json.dumps(h["hit"].metadata or {}, default=str),
            )
            for h in scored
        )

    logger.info("[research] %s: sourceCounts=%s", region, source_counts)
    logger.info("[research] %s: leaders(top3)=%s", region, [x["entity"] for x in leaders[:3]])

    return {
        "run_id": run_id,
        "created_at": now.isoformat(),
        "region": region,
        "keywords": keywords,
        "leaders": leaders[:20],
        "rising": rising,
        "citations": citations,
        "sourceCounts": source_counts,
    }


def refresh_research(
    storage: Storage,
    region: Optional[str] = None,
    window_days: Optional[int] = None,
    connectors: Optional[Sequence[ConnectorSpec]] = None,
    limit: int = 10,
) -> List[ScoredTheme]:
    """Research the region's watchlist (skipped when it is empty), then recompute themes."""
    region = region or settings.default_region
    keywords = get_keywords(storage, region)
    if keywords:
        run_research(storage, region=region, keywords=keywords, window_days=window_days, connectors=connectors)
    else:
        logger.info("[research] %s: empty watchlist, recomputing themes only", region)
    return compute_themes(storage, region=region)[:limit]


def latest_research(storage: Storage, region: str, hits_limit: int = 100) -> Optional[Dict[str, Any]]:
    with storage.get_session() as session:
        run = session.exec(
            select(ResearchRun)
            .where(ResearchRun.region == region)
            .order_by(ResearchRun.created_at.desc(), ResearchRun.id.desc())
        ).first()
        if run is None:
            return None

        hits = session.exec(
            select(ResearchHit).where(ResearchHit.run_id == run.id).order_by(ResearchHit.score.desc()).limit(hits_limit)
        ).all()

        try:
            content = json.loads(run.content_json or "{}")
        except ValueError:
            content = {}

        return {
            "run_id": run.id,
            "region": region,
            "created_at": run.created_at.isoformat(),
            "keywords": json.loads(run.keywords_json or "[]"),
            **content,
            "hits": [
                {
                    "source": h.source,
                    "entity_raw": h.entity_raw,
                    "entity_mapped": h.entity_mapped,
                    "type": h.type,
                    "ts_iso": h.ts_iso,
                    "score": h.score,
                    "url": h.url,
                }
                for h in hits
            ],
        }
