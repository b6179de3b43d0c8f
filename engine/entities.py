import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from config import COLORS, ITEMS, REGION_GEOS, STOP_WORDS

_TOKEN_SPLIT = re.compile(r"[^a-z0-9#]+")


@dataclass(frozen=True)
class EntityMatch:
    mapped: Optional[str]  # None = rejected (stop word / empty)
    type: str  # hashtag|color|item|topic


def map_entity(raw: Optional[str]) -> EntityMatch:
    """
    Canonical entity for a keyword/phrase. First match wins:
    hashtag, stop word (rejected), color substring, item substring, topic.
    Colors are checked before items, so "red loafers" maps to "red".
    """
    k = (raw or "").lower().strip()
    if not k:
        return EntityMatch(None, "topic")
    if k.startswith("#"):
        return EntityMatch(k, "hashtag")
    if k in STOP_WORDS:
        return EntityMatch(None, "topic")
    for c in COLORS:
        if c in k:
            return EntityMatch(c, "color")
    for it in ITEMS:
        if it in k:
            return EntityMatch(it, "item")
    return EntityMatch(k, "topic")


def entity_type(entity: str) -> str:
    if entity.startswith("#"):
        return "hashtag"
    if entity in COLORS:
        return "color"
    if entity in ITEMS:
        return "item"
    return "topic"


def split_hashtags(s: Optional[str]) -> List[str]:
    if not s:
        return []
    return [x.strip().lower() for x in s.split("|") if x.strip()]


def tokens(text: str) -> List[str]:
    return [w for w in _TOKEN_SPLIT.split((text or "").lower()) if w]


def extract_entities(text: str, hashtags: Iterable[str] = ()) -> List[str]:
    """Entities of an uploaded post: its hashtags plus whole-word colors and items."""
    out: List[str] = []
    for h in hashtags:
        tag = h.strip().lower().lstrip("#")
        if tag:
            out.append("#" + tag)

    words = set(tokens(text))
    out.extend(c for c in COLORS if c in words)
    out.extend(it for it in ITEMS if it in words)

    # stable de-dup
    return list(dict.fromkeys(out))


def region_for_country(cc: Optional[str]) -> str:
    code = (cc or "").upper()
    for region, geos in REGION_GEOS.items():
        if code in geos:
            return region
    return "Other"
