# engine/ingest.py
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Set

from sqlmodel import select

from config import SOURCE_ALIASES, settings
from connectors.registry import RawHit
from database import Storage
from engine.dedup import canonical_uid, dedup_signals
from models import Signal

logger = logging.getLogger(__name__)


def source_alias(label: Optional[str]) -> str:
    src = (label or "").strip().lower()
    return SOURCE_ALIASES.get(src, src)


def _num(x: Any) -> float:
    try:
        return float(x or 0)
    except (TypeError, ValueError):
        return 0.0


def derive_value(source: str, hit: RawHit) -> float:
    """
    video  -> raw volume (views)
    search -> raw volume (latest interest index)
    social -> 1 + upvotes + comments
    news / anything else -> 1 (presence only)
    """
    if source in ("video", "search"):
        return max(0.0, _num(hit.volume))
    if source == "social":
        meta = hit.metadata or {}
        ups = meta.get("ups", meta.get("upvotes"))
        comments = meta.get("numComments", meta.get("comment_count"))
        return max(0.0, 1.0 + _num(ups) + _num(comments))
    return 1.0


def signal_from_hit(hit: RawHit, fallback_keyword: Optional[str] = None, now: Optional[datetime] = None) -> Optional[Signal]:
    """One Signal row for a hit, or None when no keyword can be derived."""
    ts = hit.timestamp or (now or datetime.now(timezone.utc)).isoformat()
    day = ts[:10]

    keyword = (hit.entity_raw or fallback_keyword or "").lower().strip()
    if not keyword:
        return None

    source = source_alias(hit.source)
    return Signal(
        date=day,
        keyword=keyword,
        source=source,
        value=derive_value(source, hit),
        meta_json=json.dumps(hit.metadata or {}, default=str),
        event_uid=canonical_uid(source, hit.url, keyword, day),
    )


def _existing_event_uids(session, uids: List[str]) -> Set[str]:
    if not uids:
        return set()
    rows = session.exec(select(Signal.event_uid).where(Signal.event_uid.in_(uids))).all()
    return set(rows)


def ingest_hits(
    storage: Storage,
    hits: Sequence[RawHit],
    fallback_keyword: Optional[str] = None,
    dedup: Optional[bool] = None,
) -> int:
    """
    Append one Signal per hit. Hits without a keyword are dropped silently.
    Returns the number of rows written.
    """
    dedup = settings.dedup_signals if dedup is None else dedup
    now = datetime.now(timezone.utc)

    rows = [s for s in (signal_from_hit(h, fallback_keyword, now) for h in hits) if s is not None]
    if not rows:
        return 0

    with storage.write_session("signals") as session:
        if dedup:
            existing = _existing_event_uids(session, [s.event_uid for s in rows])
            rows = dedup_signals(rows, seen=existing)
        session.add_all(rows)

    logger.debug("[ingest] %s: %d signals", fallback_keyword or "-", len(rows))
    return len(rows)
