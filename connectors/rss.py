import logging
from datetime import datetime, timezone
from typing import List, Optional

import feedparser
import httpx

from config import settings
from connectors.base import get_bytes
from connectors.registry import RawHit
from engine.sources import SourcesConfig, enabled_feeds, load_sources_config

logger = logging.getLogger(__name__)


def parse_feed(content: bytes, keyword: str, days: int, feed_name: str = "") -> List[RawHit]:
    feed = feedparser.parse(content)

    kw = keyword.lower().strip()
    cutoff = datetime.now(timezone.utc).timestamp() - (days * 86400)
    out: List[RawHit] = []

    for entry in feed.entries:
        if getattr(entry, "published_parsed", None):
            dt = datetime(*entry.published_parsed[:6], tzinfo=timezone.utc)
        elif getattr(entry, "updated_parsed", None):
            dt = datetime(*entry.updated_parsed[:6], tzinfo=timezone.utc)
        else:
            continue

        if dt.timestamp() < cutoff:
            continue

        title = getattr(entry, "title", "").strip()
        summary = getattr(entry, "summary", "") or getattr(entry, "description", "") or ""
        if kw not in f"{title} {summary}".lower():
            continue

        out.append(
            RawHit(
                source="news",
                entity_raw=keyword,
                timestamp=dt.isoformat(),
                volume=1,
                trend_hint=0.0,
                freshness=0.9,
                url=getattr(entry, "link", "") or None,
                metadata={"title": title, "source": feed_name},
            )
        )

    return out


def fetch_editorial_rss(
    keyword: str,
    days: int = 28,
    region: str = "",
    client: Optional[httpx.Client] = None,
    sources: Optional[SourcesConfig] = None,
) -> List[RawHit]:
    """Editorial mentions from the RSS feeds configured in sources.yaml."""
    cfg = sources or load_sources_config(settings.sources_path)

    out: List[RawHit] = []
    for feed in enabled_feeds(cfg):
        content = get_bytes(feed.url, tag="rss", client=client)
        if content is None:
            continue
        out.extend(parse_feed(content, keyword, days, feed_name=feed.name))
    return out
