from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from config import REGION_GEOS


@dataclass
class RawHit:
    source: str  # raw connector label: trends|news|youtube|reddit
    entity_raw: Optional[str]
    timestamp: Optional[str]  # ISO-8601
    volume: float = 0.0
    trend_hint: float = 0.0
    freshness: float = 0.0
    url: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ConnectorSpec:
    name: str
    fetch: Callable[..., List[RawHit]]  # fetch(keyword, days, region)
    max_days: Optional[int] = None  # cap the window passed to fetch


CONNECTORS: List[ConnectorSpec] = []


def register(spec: ConnectorSpec):
    CONNECTORS.append(spec)


def geo_for_region(region: str) -> List[str]:
    """Country codes for a region; [""] means global."""
    return list(REGION_GEOS.get(region, [""]))


def default_connectors() -> List[ConnectorSpec]:
    """
    Keep this idempotent-ish: if registry already has connectors, don't double register.
    """
    if CONNECTORS:
        return CONNECTORS

    from connectors.gdelt import fetch_gdelt
    from connectors.google_trends import fetch_google_trends
    from connectors.reddit import fetch_reddit
    from connectors.rss import fetch_editorial_rss
    from connectors.youtube import fetch_youtube

    register(ConnectorSpec(name="google_trends", fetch=fetch_google_trends))
    register(ConnectorSpec(name="youtube", fetch=fetch_youtube, max_days=14))
    register(ConnectorSpec(name="gdelt", fetch=fetch_gdelt))
    register(ConnectorSpec(name="reddit", fetch=fetch_reddit, max_days=14))
    register(ConnectorSpec(name="editorial_rss", fetch=fetch_editorial_rss))
    return CONNECTORS
