from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml


# ---- Data model ----

@dataclass(frozen=True)
class FeedSpec:
    name: str
    url: str
    enabled: bool = True


@dataclass(frozen=True)
class SourcesConfig:
    version: int
    editorial_domains: Tuple[str, ...]
    feeds: Tuple[FeedSpec, ...] = ()


# ---- Loader ----

class SourcesConfigError(ValueError):
    pass


def _validate_feed(raw: Dict[str, Any]) -> FeedSpec:
    if not isinstance(raw, dict):
        raise SourcesConfigError("Each entry in 'feeds' must be a mapping/dict.")

    name = str(raw.get("name", "")).strip()
    url = str(raw.get("url", "")).strip()
    enabled = bool(raw.get("enabled", True))

    if not name:
        raise SourcesConfigError("Missing 'name' in feed.")
    if not (url.startswith("http://") or url.startswith("https://")):
        raise SourcesConfigError(f"Invalid 'url' for feed '{name}': must be http(s).")
    return FeedSpec(name=name, url=url, enabled=enabled)


def parse_sources_config(data: Any) -> SourcesConfig:
    data = data or {}
    if not isinstance(data, dict):
        raise SourcesConfigError("Top-level YAML must be a mapping/dict.")

    version = int(data.get("version", 1))

    domains_raw = data.get("editorial_domains") or []
    if not isinstance(domains_raw, list):
        raise SourcesConfigError("'editorial_domains' must be a list.")
    domains = tuple(str(d).strip().lower() for d in domains_raw if str(d).strip())

    feeds_raw = data.get("feeds") or []
    if not isinstance(feeds_raw, list):
        raise SourcesConfigError("'feeds' must be a list.")
    feeds: List[FeedSpec] = [_validate_feed(f) for f in feeds_raw]

    return SourcesConfig(version=version, editorial_domains=domains, feeds=tuple(feeds))


@lru_cache(maxsize=4)
def load_sources_config(path: str | Path = "sources.yaml") -> SourcesConfig:
    p = Path(path)
    if not p.exists():
        raise SourcesConfigError(f"Sources config not found: {p.resolve()}")
    return parse_sources_config(yaml.safe_load(p.read_text(encoding="utf-8")))


def enabled_feeds(cfg: SourcesConfig) -> List[FeedSpec]:
    return [f for f in cfg.feeds if f.enabled]


def is_editorial(url: str, cfg: SourcesConfig) -> bool:
    # match on host + path so entries like "nytimes.com/section/fashion" work
    u = (url or "").lower()
    if "://" in u:
        u = u.split("://", 1)[1]
    return any(d in u for d in cfg.editorial_domains)
