import json
from datetime import datetime, timezone
from typing import Iterable, List

from sqlmodel import select

from database import Storage
from models import Watchlist


def _clean(keywords: Iterable[str]) -> List[str]:
    # lowercase, trimmed, first occurrence wins
    out = (str(k).lower().strip() for k in keywords or [])
    return list(dict.fromkeys(k for k in out if k))


def _load(row: Watchlist) -> List[str]:
    try:
        v = json.loads(row.keywords_json or "[]")
    except ValueError:
        return []
    return _clean(v) if isinstance(v, list) else []


def get_keywords(storage: Storage, region: str) -> List[str]:
    with storage.get_session() as session:
        row = session.exec(select(Watchlist).where(Watchlist.region == region)).first()
        return _load(row) if row else []


def set_keywords(storage: Storage, region: str, keywords: Iterable[str]) -> List[str]:
    kws = _clean(keywords)
    row = {"region": region, "keywords_json": json.dumps(kws), "updated_at": datetime.now(timezone.utc)}
    with storage.write_session(f"watchlist {region}") as session:
        storage.upsert(session, Watchlist, [row], keys=("region",))
    return kws


def update_keywords(storage: Storage, region: str, add: Iterable[str] = (), remove: Iterable[str] = ()) -> List[str]:
    """Append `add` (new ones go last), then drop `remove`."""
    drop = set(_clean(remove))
    merged = _clean(list(get_keywords(storage, region)) + list(add or []))
    return set_keywords(storage, region, [k for k in merged if k not in drop])


def add_keywords(storage: Storage, region: str, add: Iterable[str]) -> List[str]:
    return update_keywords(storage, region, add=add)


def remove_keywords(storage: Storage, region: str, remove: Iterable[str]) -> List[str]:
    return update_keywords(storage, region, remove=remove)


def clear_keywords(storage: Storage, region: str) -> List[str]:
    return set_keywords(storage, region, [])
