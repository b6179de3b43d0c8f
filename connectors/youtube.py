import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import httpx

from config import settings
from connectors.base import get_json
from connectors.registry import RawHit, geo_for_region

logger = logging.getLogger(__name__)

YT_SEARCH = "https://www.googleapis.com/youtube/v3/search"
YT_VIDEOS = "https://www.googleapis.com/youtube/v3/videos"


def fetch_youtube(
    keyword: str,
    days: int = 14,
    region: str = "",
    client: Optional[httpx.Client] = None,
    api_key: Optional[str] = None,
) -> List[RawHit]:
    """
    Creator video metrics. Two calls: search (ids) then videos (statistics).
    Videos under settings.youtube_min_views are skipped (small creators).
    """
    key = api_key if api_key is not None else settings.youtube_api_key
    if not key:
        return []

    published_after = (datetime.now(timezone.utc) - timedelta(days=days)).strftime("%Y-%m-%dT%H:%M:%SZ")
    params = {
        "key": key,
        "part": "snippet",
        "type": "video",
        "maxResults": 25,
        "q": keyword,
        "publishedAfter": published_after,
        "order": "date",
    }
    geos = geo_for_region(region)
    if len(geos) == 1 and len(geos[0]) == 2:
        params["regionCode"] = geos[0]

    search = get_json(YT_SEARCH, params=params, tag="youtube", client=client)
    if not isinstance(search, dict):
        return []
    items = search.get("items") or []
    ids = [(it.get("id") or {}).get("videoId") for it in items]
    ids = [i for i in ids if i]
    if not ids:
        return []

    stats = get_json(
        YT_VIDEOS,
        params={"part": "statistics,snippet", "id": ",".join(ids), "key": key},
        tag="youtube",
        client=client,
    )
    if not isinstance(stats, dict):
        return []
    by_id = {v.get("id"): v for v in stats.get("items") or []}

    out: List[RawHit] = []
    for it in items:
        vid_id = (it.get("id") or {}).get("videoId")
        vid = by_id.get(vid_id) or {}
        s = vid.get("statistics") or {}
        sn = vid.get("snippet") or it.get("snippet") or {}

        views = int(s.get("viewCount") or 0)
        if views < settings.youtube_min_views:
            continue

        out.append(
            RawHit(
                source="youtube",
                entity_raw=keyword,
                timestamp=sn.get("publishedAt") or datetime.now(timezone.utc).isoformat(),
                volume=views,
                trend_hint=0.3,
                freshness=1.0,
                url=f"https://www.youtube.com/watch?v={vid_id}",
                metadata={
                    "title": sn.get("title"),
                    "channel": sn.get("channelTitle"),
                    "viewCount": views,
                    "likeCount": int(s.get("likeCount") or 0),
                    "commentCount": int(s.get("commentCount") or 0),
                },
            )
        )
    return out
