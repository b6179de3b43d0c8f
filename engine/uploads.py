"""
Uploaded-dataset mode: social posts -> per (entity, type, week, region) aggregates
scored with the same normalize -> weight -> score profile machinery as themes.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlmodel import select

from config import COLORS, ITEMS, settings
from database import Storage
from engine.entities import entity_type, extract_entities, region_for_country, split_hashtags, tokens
from engine.score import ENTITY_PROFILE, ScoringProfile
from engine.stats import upper_median
from engine.weekly import iso_week, previous_week
from models import EntityScore, SocialPost

logger = logging.getLogger(__name__)

VOCAB = {"colors": set(COLORS), "items": set(ITEMS)}

Key = Tuple[str, str, str, str]  # entity, type, week, region


def _int(x: Any) -> int:
    try:
        return int(float(x or 0))
    except (TypeError, ValueError):
        return 0


def engagement_of(row: Dict[str, Any]) -> int:
    return _int(row.get("like_count")) + _int(row.get("comment_count")) + _int(row.get("share_count")) + _int(row.get("save_count"))


def _post_from_row(r: Dict[str, Any]) -> SocialPost:
    return SocialPost(
        platform=str(r.get("platform") or ""),
        post_id=str(r.get("post_id") or ""),
        post_url=str(r.get("post_url") or ""),
        author=str(r.get("author") or ""),
        author_followers=_int(r.get("author_followers")),
        ts_iso=str(r.get("ts_iso") or ""),
        language=str(r.get("language") or ""),
        text=str(r.get("text") or ""),
        hashtags=str(r.get("hashtags") or ""),
        like_count=_int(r.get("like_count")),
        comment_count=_int(r.get("comment_count")),
        share_count=_int(r.get("share_count")),
        save_count=_int(r.get("save_count")),
        video_views=_int(r.get("video_views")),
        geo_country=str(r.get("geo_country") or ""),
    )


def aggregate_posts(rows: Iterable[Dict[str, Any]], now: Optional[datetime] = None) -> Dict[Key, Dict[str, Any]]:
    """Group post entities by (entity, type, week, region): posts, eng_sum, eng_rate_median."""
    now = now or datetime.now(timezone.utc)
    groups: Dict[Key, Dict[str, Any]] = {}

    for r in rows:
        try:
            wk = iso_week(r.get("ts_iso") or now)
        except ValueError:
            logger.warning("[uploads] skipping post %r: bad ts_iso %r", r.get("post_id"), r.get("ts_iso"))
            continue

        engagement = engagement_of(r)
        eng_rate = engagement / max(_int(r.get("author_followers")), 1)
        region = region_for_country(r.get("geo_country"))

        for e in extract_entities(str(r.get("text") or ""), split_hashtags(r.get("hashtags"))):
            k = (e, entity_type(e), wk, region)
            g = groups.get(k)
            if g is None:
                g = groups[k] = {"posts": 0, "eng_sum": 0, "eng_rates": []}
            g["posts"] += 1
            g["eng_sum"] += engagement
            g["eng_rates"].append(eng_rate)

    return {
        k: {"posts": g["posts"], "eng_sum": g["eng_sum"], "eng_rate_median": upper_median(g["eng_rates"])}
        for k, g in groups.items()
    }


def score_entity(
    current: Dict[str, Any],
    history: List[Dict[str, Any]],
    week: str,
    profile: ScoringProfile = ENTITY_PROFILE,
) -> Tuple[float, Optional[float]]:
    """
    (score, growth) of one weekly aggregate against the other weeks of its key.
    Bonus +1 when posts beat the immediately preceding ISO week by
    settings.growth_bonus_ratio; with a gap there is no bonus and no growth.
    """
    hist = {m: [float(h[m]) for h in history] for m in profile.weights}
    comps = profile.components(hist, current)
    score = profile.weighted_sum(comps)

    prior = previous_week(week)
    prev = next((h for h in history if h["week"] == prior), None)
    if prev is not None and current["posts"] > settings.growth_bonus_ratio * prev["posts"]:
        score += 1.0

    growth = current["posts"] / max(prev["posts"], 1) if prev is not None else None
    return score, growth


def _entity_dict(r: EntityScore) -> Dict[str, Any]:
    return {
        "entity": r.entity,
        "type": r.type,
        "week": r.week,
        "region": r.region,
        "posts": r.posts,
        "eng_sum": r.eng_sum,
        "eng_rate_median": r.eng_rate_median,
        "score": r.score,
        "growth": r.growth,
    }


def score_uploaded_posts(storage: Storage, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Store uploaded posts, then upsert one scored row per (entity, type, week, region)."""
    by_key = aggregate_posts(rows)

    with storage.write_session("entity scores") as session:
        session.add_all(_post_from_row(r) for r in rows)

        # history index per (entity, type, region): stored weeks, replaced by this upload's weeks
        index: Dict[Tuple[str, str, str], Dict[str, Dict[str, Any]]] = defaultdict(dict)
        for e in session.exec(select(EntityScore)).all():
            index[(e.entity, e.type, e.region)][e.week] = {
                "week": e.week, "posts": e.posts, "eng_sum": e.eng_sum, "eng_rate_median": e.eng_rate_median,
            }
        for (entity, etype, week, region), agg in by_key.items():
            index[(entity, etype, region)][week] = {"week": week, **agg}

        out: List[Dict[str, Any]] = []
        for (entity, etype, week, region), agg in sorted(by_key.items()):
            history = [h for w, h in index[(entity, etype, region)].items() if w != week]
            score, growth = score_entity(agg, history, week)
            out.append({
                "entity": entity,
                "type": etype,
                "week": week,
                "region": region,
                "posts": agg["posts"],
                "eng_sum": agg["eng_sum"],
                "eng_rate_median": agg["eng_rate_median"],
                "score": score,
                "growth": growth,
            })

        storage.upsert(session, EntityScore, out, keys=("entity", "type", "week", "region"))

    logger.info("[uploads] %d posts -> %d entity rows", len(rows), len(out))
    return out


def get_top_entities(storage: Storage, type: str, region: str, week: Optional[str] = None, limit: int = 20) -> List[Dict[str, Any]]:
    with storage.get_session() as session:
        q = select(EntityScore).where(EntityScore.type == type, EntityScore.region == region)
        if week:
            q = q.where(EntityScore.week == week)
        rows = session.exec(q.order_by(EntityScore.score.desc()).limit(int(limit))).all()
        return [_entity_dict(r) for r in rows]


def get_entity_series(storage: Storage, entity: str, type: str, region: str, weeks: int = 8) -> List[Dict[str, Any]]:
    with storage.get_session() as session:
        rows = session.exec(
            select(EntityScore)
            .where(EntityScore.entity == entity, EntityScore.type == type, EntityScore.region == region)
            .order_by(EntityScore.week.desc())
            .limit(int(weeks))
        ).all()
        return [_entity_dict(r) for r in reversed(rows)]


def _posts_in(storage: Storage, region: str, week: Optional[str]) -> List[SocialPost]:
    with storage.get_session() as session:
        posts = session.exec(select(SocialPost)).all()

    out = []
    for p in posts:
        if region_for_country(p.geo_country) != region:
            continue
        if week:
            try:
                if iso_week(p.ts_iso) != week:
                    continue
            except ValueError:
                continue
        out.append(p)
    return out


def get_cooccurrence(storage: Storage, left: str, right: str, region: str, week: Optional[str] = None) -> List[Dict[str, Any]]:
    """Posts mentioning a `left` and a `right` vocabulary word together (e.g. colors x items)."""
    lv, rv = VOCAB.get(left, set()), VOCAB.get(right, set())
    counts: Dict[Tuple[str, str], int] = defaultdict(int)

    for p in _posts_in(storage, region, week):
        words = tokens(p.text)
        lefts = {w for w in words if w in lv}
        rights = {w for w in words if w in rv}
        for lw in lefts:
            for rw in rights:
                counts[(lw, rw)] += 1

    return [
        {"left": lw, "right": rw, "count": n}
        for (lw, rw), n in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    ]


def get_top_creators(storage: Storage, entity: str, region: str, week: Optional[str] = None, limit: int = 20) -> List[Dict[str, Any]]:
    needle = entity.replace("#", "").lower()
    stats: Dict[str, Dict[str, Any]] = {}

    for p in _posts_in(storage, region, week):
        text = f"{p.text} {p.hashtags}".lower()
        if needle not in text:
            continue
        engagement = p.like_count + p.comment_count + p.share_count + p.save_count
        s = stats.setdefault(p.author, {"author": p.author, "posts": 0, "eng_rates": []})
        s["posts"] += 1
        s["eng_rates"].append(engagement / max(p.author_followers, 1))

    out = [
        {"author": s["author"], "posts": s["posts"], "avg_eng_rate": sum(s["eng_rates"]) / len(s["eng_rates"])}
        for s in stats.values()
    ]
    out.sort(key=lambda x: (-x["avg_eng_rate"], x["author"]))
    return out[:limit]
