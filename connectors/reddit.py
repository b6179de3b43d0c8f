import logging
from datetime import datetime, timezone
from typing import List, Optional

import httpx

from connectors.base import get_json
from connectors.registry import RawHit

logger = logging.getLogger(__name__)

REDDIT_SEARCH = "https://www.reddit.com/search.json"


def fetch_reddit(keyword: str, days: int = 14, region: str = "", client: Optional[httpx.Client] = None) -> List[RawHit]:
    """Community chatter via the public (no-auth) search endpoint; rate limits apply."""
    data = get_json(REDDIT_SEARCH, params={"q": keyword, "limit": 25, "sort": "new"}, tag="reddit", client=client)
    if not isinstance(data, dict):
        return []

    cutoff = datetime.now(timezone.utc).timestamp() - days * 86400
    children = (data.get("data") or {}).get("children") or []

    out: List[RawHit] = []
    for c in children:
        d = (c or {}).get("data")
        if not d:
            continue
        created = float(d.get("created_utc") or 0)
        if created < cutoff:
            continue

        ups = int(d.get("ups") or 0)
        comments = int(d.get("num_comments") or 0)
        out.append(
            RawHit(
                source="reddit",
                entity_raw=keyword,
                timestamp=datetime.fromtimestamp(created, tz=timezone.utc).isoformat(),
                volume=1 + ups + comments,
                trend_hint=0.2,
                freshness=0.9,
                url=f"https://www.reddit.com{d.get('permalink', '')}",
                metadata={"title": d.get("title"), "ups": ups, "numComments": comments, "subreddit": d.get("subreddit")},
            )
        )
    return out
