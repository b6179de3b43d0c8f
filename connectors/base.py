import logging
import random
import time
from typing import Any, Dict, Optional

import httpx

from config import settings

logger = logging.getLogger(__name__)


def make_client(timeout: float | None = None) -> httpx.Client:
    t = httpx.Timeout(timeout or settings.http_timeout, connect=5.0)
    headers = {"User-Agent": settings.user_agent, "Accept": "application/json"}
    return httpx.Client(timeout=t, follow_redirects=True, headers=headers)


def _get(client: httpx.Client, url: str, params: Optional[Dict[str, Any]], tag: str, attempts: int) -> Optional[httpx.Response]:
    last_exc: Exception | None = None

    for attempt in range(1, attempts + 1):
        try:
            r = client.get(url, params=params)
            r.raise_for_status()
            return r
        except httpx.HTTPStatusError as e:
            last_exc = e
            if e.response.status_code == 429 and attempt < attempts:
                # exponential backoff + jitter
                sleep_s = (2 ** (attempt - 1)) + random.random()
                logger.info("[%s] 429 rate limited, retrying in %.1fs (attempt %d/%d)", tag, sleep_s, attempt, attempts)
                time.sleep(sleep_s)
                continue
            break
        except httpx.TransportError as e:
            last_exc = e
            if attempt < attempts:
                sleep_s = 0.5 * attempt + random.random() * 0.5
                logger.info("[%s] transient error %s, retrying in %.1fs (attempt %d/%d)", tag, type(e).__name__, sleep_s, attempt, attempts)
                time.sleep(sleep_s)

    logger.warning("[%s] failed: %s: %s", tag, type(last_exc).__name__, last_exc)
    return None


def get_json(
    url: str,
    params: Optional[Dict[str, Any]] = None,
    tag: str = "http",
    client: Optional[httpx.Client] = None,
    attempts: int = 3,
) -> Optional[Any]:
    """GET a JSON document; None on any HTTP or decode failure (already logged)."""
    if client is not None:
        r = _get(client, url, params, tag, attempts)
    else:
        with make_client() as c:
            r = _get(c, url, params, tag, attempts)
    if r is None:
        return None
    try:
        return r.json()
    except ValueError as e:
        logger.warning("[%s] invalid JSON from %s: %s", tag, url, e)
        return None


def get_bytes(
    url: str,
    tag: str = "http",
    client: Optional[httpx.Client] = None,
    attempts: int = 2,
) -> Optional[bytes]:
    if client is not None:
        r = _get(client, url, None, tag, attempts)
    else:
        with make_client() as c:
            r = _get(c, url, None, tag, attempts)
    return r.content if r is not None else None
