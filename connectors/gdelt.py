import logging
from datetime import datetime, timezone
from typing import List, Optional

import httpx

from config import settings
from connectors.base import get_json
from connectors.registry import RawHit
from engine.sources import SourcesConfig, is_editorial, load_sources_config

logger = logging.getLogger(__name__)

GDELT_API = "https://api.gdeltproject.org/api/v2/doc/doc"


def _seen_iso(seendate: Optional[str]) -> str:
    if seendate:
        try:
            dt = datetime.strptime(seendate, "%Y%m%dT%H%M%SZ").replace(tzinfo=timezone.utc)
            return dt.isoformat()
        except ValueError:
            pass
    return datetime.now(timezone.utc).isoformat()


def fetch_gdelt(
    keyword: str,
    days: int = 28,
    region: str = "",
    client: Optional[httpx.Client] = None,
    sources: Optional[SourcesConfig] = None,
) -> List[RawHit]:
    """Editorial news mentions: one presence hit per article from an allow-listed domain."""
    params = {
        "query": keyword,
        "mode": "ArtList",
        "maxrecords": 50,
        "format": "json",
        "timespan": f"{days}d",
    }
    data = get_json(GDELT_API, params=params, tag="gdelt", client=client)
    if not isinstance(data, dict):
        return []

    cfg = sources or load_sources_config(settings.sources_path)

    out: List[RawHit] = []
    for a in data.get("articles") or []:
        url = a.get("url") or ""
        if not is_editorial(url, cfg):
            continue
        out.append(
            RawHit(
                source="news",
                entity_raw=keyword,
                timestamp=_seen_iso(a.get("seendate")),
                volume=1,
                trend_hint=0.0,
                freshness=0.9,
                url=url,
                metadata={"title": a.get("title"), "source": a.get("domain") or a.get("sourceurl"), "lang": a.get("language")},
            )
        )

    logger.debug("[gdelt] %s: %d editorial articles", keyword, len(out))
    return out
