from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterator

_REGISTRY_LOCK = Lock()
_REGION_LOCKS: Dict[str, Lock] = {}


def region_lock(region: str) -> Lock:
    key = (region or "").strip().lower()
    with _REGISTRY_LOCK:
        lock = _REGION_LOCKS.get(key)
        if lock is None:
            lock = _REGION_LOCKS[key] = Lock()
        return lock


@contextmanager
def single_writer(region: str) -> Iterator[None]:
    """Serialize scoring runs per region (one writer per region and week)."""
    lock = region_lock(region)
    with lock:
        yield
