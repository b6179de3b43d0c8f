from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config import configure_logging, settings
from database import Storage, StorageError

app = FastAPI(title=settings.app_name)


class ResearchRequest(BaseModel):
    region: Optional[str] = None
    keywords: List[str] = []
    window_days: Optional[int] = None


class WatchlistBody(BaseModel):
    region: Optional[str] = None
    keywords: List[str] = []


class WatchlistPatch(BaseModel):
    region: Optional[str] = None
    add: List[str] = []
    remove: List[str] = []


class RefreshRequest(BaseModel):
    region: Optional[str] = None
    window_days: Optional[int] = None


class ComputeRequest(BaseModel):
    region: Optional[str] = None
    week: Optional[str] = None
    lookback_days: Optional[int] = None


class UploadRequest(BaseModel):
    rows: List[Dict[str, Any]]


@app.on_event("startup")
def startup():
    configure_logging()
    if getattr(app.state, "storage", None) is None:
        app.state.storage = Storage(settings.db_url)
    app.state.storage.create_db_and_tables()


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


@app.exception_handler(StorageError)
def storage_error_handler(request: Request, exc: StorageError):
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.get("/health")
def health():
    return {"status": "ok", "app": settings.app_name}


@app.post("/api/research/run")
def research_run(body: ResearchRequest, storage: Storage = Depends(get_storage)):
    from engine.research import run_research
    from engine.themes import compute_themes

    data = run_research(storage, region=body.region, keywords=body.keywords, window_days=body.window_days)
    # themes are recomputed right away so top lists and briefs reflect the new signals
    themes = compute_themes(storage, region=data["region"])
    return {"ok": True, "data": data, "themes": [t.as_dict() for t in themes[:10]]}


@app.post("/api/research/refresh")
def research_refresh(body: RefreshRequest, storage: Storage = Depends(get_storage)):
    from engine.research import refresh_research

    themes = refresh_research(storage, region=body.region, window_days=body.window_days)
    return {"ok": True, "themes": [t.as_dict() for t in themes]}


@app.get("/api/research/latest")
def research_latest(region: str = settings.default_region, storage: Storage = Depends(get_storage)):
    from engine.research import latest_research

    return {"ok": True, "data": latest_research(storage, region)}


@app.get("/api/research/watchlist")
def watchlist_get(region: str = settings.default_region, storage: Storage = Depends(get_storage)):
    from engine.watchlist import get_keywords

    return {"region": region, "keywords": get_keywords(storage, region)}


@app.post("/api/research/watchlist")
def watchlist_set(body: WatchlistBody, storage: Storage = Depends(get_storage)):
    from engine.watchlist import set_keywords

    region = body.region or settings.default_region
    return {"region": region, "keywords": set_keywords(storage, region, body.keywords)}


@app.patch("/api/research/watchlist")
def watchlist_patch(body: WatchlistPatch, storage: Storage = Depends(get_storage)):
    from engine.watchlist import update_keywords

    region = body.region or settings.default_region
    return {"region": region, "keywords": update_keywords(storage, region, add=body.add, remove=body.remove)}


@app.delete("/api/research/watchlist")
def watchlist_delete(region: str = settings.default_region, storage: Storage = Depends(get_storage)):
    from engine.watchlist import clear_keywords

    return {"region": region, "keywords": clear_keywords(storage, region)}


@app.post("/api/themes/compute")
def themes_compute(body: ComputeRequest, storage: Storage = Depends(get_storage)):
    from engine.themes import compute_themes

    themes = compute_themes(storage, region=body.region, week=body.week, lookback_days=body.lookback_days)
    return {"ok": True, "data": [t.as_dict() for t in themes]}


@app.get("/api/themes/top")
def themes_top(week: Optional[str] = None, limit: int = 10, storage: Storage = Depends(get_storage)):
    from engine.themes import get_top_themes

    limit = max(1, min(50, limit))
    return {"ok": True, "data": [t.as_dict() for t in get_top_themes(storage, week=week, limit=limit)]}


@app.get("/api/themes/{theme}")
def theme_one(theme: str, weeks: int = 8, storage: Storage = Depends(get_storage)):
    from engine.themes import get_theme_one

    return {"ok": True, "theme": theme, "data": get_theme_one(storage, theme, weeks=weeks)}


@app.get("/api/briefs/weekly")
def brief_weekly(region: str = settings.default_region, week: Optional[str] = None, storage: Storage = Depends(get_storage)):
    from engine.summary import build_weekly_brief

    return build_weekly_brief(storage, region, week)


@app.post("/api/uploads/posts")
def uploads_posts(body: UploadRequest, storage: Storage = Depends(get_storage)):
    from engine.uploads import score_uploaded_posts

    rows = score_uploaded_posts(storage, body.rows)
    return {"ok": True, "posts": len(body.rows), "entities": len(rows)}


@app.get("/api/entities/top")
def entities_top(
    type: str = "hashtag",
    region: str = settings.default_region,
    week: Optional[str] = None,
    limit: int = 20,
    storage: Storage = Depends(get_storage),
):
    from engine.uploads import get_top_entities

    return {"ok": True, "data": get_top_entities(storage, type, region, week, limit)}


@app.get("/api/entities/series")
def entities_series(
    entity: str,
    type: str = "hashtag",
    region: str = settings.default_region,
    weeks: int = 8,
    storage: Storage = Depends(get_storage),
):
    from engine.uploads import get_entity_series

    return {"ok": True, "data": get_entity_series(storage, entity, type, region, weeks)}


@app.get("/api/trends/cooccur")
def trends_cooccur(
    left: str = "items",
    right: str = "colors",
    region: str = settings.default_region,
    week: Optional[str] = None,
    storage: Storage = Depends(get_storage),
):
    from engine.uploads import get_cooccurrence

    return {"ok": True, "data": get_cooccurrence(storage, left, right, region, week)}


@app.get("/api/creators/top")
def creators_top(
    entity: str,
    region: str = settings.default_region,
    week: Optional[str] = None,
    limit: int = 20,
    storage: Storage = Depends(get_storage),
):
    from engine.uploads import get_top_creators

    return {"ok": True, "data": get_top_creators(storage, entity, region, week, limit)}

def run_server(host: str = "127.0.0.1", port: int = 8000):
    uvicorn.run("app:app", host=host, port=port, reload=False)
