import hashlib
from typing import Iterable, List, Optional, Set

from models import Signal


def canonical_uid(source: str, url: Optional[str], keyword: str, date: str) -> str:
    base = f"{source}|{(url or '').strip()}|{keyword.strip()}|{date}"
    return hashlib.sha256(base.encode("utf-8")).hexdigest()[:32]


def dedup_signals(signals: Iterable[Signal], seen: Optional[Set[str]] = None) -> List[Signal]:
    seen = set(seen or ())
    out = []
    for s in signals:
        if s.event_uid in seen:
            continue
        seen.add(s.event_uid)
        out.append(s)
    return out
