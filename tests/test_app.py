"""HTTP API tests (FastAPI TestClient over a tmp SQLite store)."""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel

import engine.research
from app import app


@pytest.fixture
def client(storage):
    app.state.storage = storage
    yield TestClient(app)
    app.state.storage = None


def _recent(days_ago):
    return (date.today() - timedelta(days=days_ago)).isoformat()


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_watchlist_crud(client):
    r = client.post("/api/research/watchlist", json={"region": "FR", "keywords": ["Cargo", "Denim"]})
    assert r.json() == {"region": "FR", "keywords": ["cargo", "denim"]}

    r = client.patch("/api/research/watchlist", json={"region": "FR", "remove": ["denim"]})
    assert r.json()["keywords"] == ["cargo"]

    r = client.patch("/api/research/watchlist", json={"region": "FR", "add": ["Loafers", "cargo"]})
    assert r.json()["keywords"] == ["cargo", "loafers"]

    r = client.patch("/api/research/watchlist", json={"region": "FR", "add": ["tote"], "remove": ["loafers"]})
    assert r.json()["keywords"] == ["cargo", "tote"]

    assert client.get("/api/research/watchlist", params={"region": "FR"}).json()["keywords"] == ["cargo"]
    assert client.delete("/api/research/watchlist", params={"region": "FR"}).json()["keywords"] == []


def test_research_run_and_latest(client, monkeypatch):
    monkeypatch.setattr(engine.research, "default_connectors", lambda: [])

    r = client.post("/api/research/run", json={"region": "FR", "keywords": ["beige"]})
    assert r.status_code == 200
    run = r.json()["data"]
    assert run["leaders"][0]["entity"] == "beige"

    latest = client.get("/api/research/latest", params={"region": "FR"}).json()["data"]
    assert latest["run_id"] == run["run_id"]
    assert r.json()["themes"] == []


def test_compute_then_read(client, add_signals):
    add_signals([(_recent(i * 7), "trenchcoat", "search", v) for i, v in enumerate([100, 10, 10])])
    add_signals([(_recent(0), "designer", "news", 1)])

    r = client.post("/api/themes/compute", json={})
    assert r.status_code == 200
    data = r.json()["data"]
    assert [t["theme"] for t in data] == ["trenchcoat"]
    assert set(data[0]) >= {"theme", "week", "heat", "momentum", "forecast_heat", "confidence", "decision", "sources", "top_links"}

    top = client.get("/api/themes/top", params={"limit": 500}).json()["data"]
    assert [t["theme"] for t in top] == ["trenchcoat"]

    history = client.get("/api/themes/trenchcoat").json()
    assert history["theme"] == "trenchcoat"
    assert len(history["data"]) == 3

    brief = client.get("/api/briefs/weekly").json()
    assert brief["week"] == data[0]["week"]
    assert "trenchcoat" in brief["content"]


def test_storage_failure_is_500(client, storage, add_signals):
    add_signals([(_recent(0), "cargo", "news", 1)])
    SQLModel.metadata.tables["themes"].drop(storage.engine)

    r = client.post("/api/themes/compute", json={})

    assert r.status_code == 500
    assert "theme snapshots" in r.json()["error"]


def test_uploads_and_entities(client):
    rows = [
        {"post_id": "1", "ts_iso": "2024-04-22T10:00:00Z", "text": "beige tote", "hashtags": "ootd", "geo_country": "SE", "like_count": 5},
        {"post_id": "2", "ts_iso": "2024-04-23T10:00:00Z", "text": "beige", "hashtags": "ootd", "geo_country": "NO", "like_count": 1},
    ]
    r = client.post("/api/uploads/posts", json={"rows": rows})
    assert r.json() == {"ok": True, "posts": 2, "entities": 3}

    top = client.get("/api/entities/top", params={"type": "hashtag", "region": "Nordics"}).json()["data"]
    assert [(e["entity"], e["posts"]) for e in top] == [("#ootd", 2)]

    series = client.get("/api/entities/series", params={"entity": "beige", "type": "color", "region": "Nordics"}).json()["data"]
    assert [s["week"] for s in series] == ["2024-W17"]


def test_research_run_recomputes_themes(client, monkeypatch, add_signals):
    monkeypatch.setattr(engine.research, "default_connectors", lambda: [])
    add_signals([(_recent(i * 7), "loafers", "search", v) for i, v in enumerate([80, 20])])

    r = client.post("/api/research/run", json={"region": "FR", "keywords": ["loafers"]})

    assert [t["theme"] for t in r.json()["themes"]] == ["loafers"]
    top = client.get("/api/themes/top").json()["data"]
    assert [t["theme"] for t in top] == ["loafers"]


def test_refresh_runs_watchlist_research(client, monkeypatch, add_signals):
    monkeypatch.setattr(engine.research, "default_connectors", lambda: [])
    add_signals([(_recent(0), "cargo", "news", 3)])
    client.post("/api/research/watchlist", json={"region": "FR", "keywords": ["cargo"]})

    r = client.post("/api/research/refresh", json={"region": "FR"})

    assert r.status_code == 200
    assert [t["theme"] for t in r.json()["themes"]] == ["cargo"]
    latest = client.get("/api/research/latest", params={"region": "FR"}).json()["data"]
    assert latest["keywords"] == ["cargo"]


def test_refresh_with_empty_watchlist_skips_research(client, monkeypatch, add_signals):
    monkeypatch.setattr(engine.research, "default_connectors", lambda: [])
    add_signals([(_recent(0), "cargo", "news", 3)])

    r = client.post("/api/research/refresh", json={"region": "FR"})

    assert [t["theme"] for t in r.json()["themes"]] == ["cargo"]
    assert client.get("/api/research/latest", params={"region": "FR"}).json()["data"] is None


def _upload_looks(client):
    rows = [
        {"post_id": "1", "author": "ana", "author_followers": 100, "ts_iso": "2024-04-22T10:00:00Z",
         "text": "beige tote", "hashtags": "", "geo_country": "SE", "like_count": 10},
        {"post_id": "2", "author": "bo", "author_followers": 100, "ts_iso": "2024-04-23T10:00:00Z",
         "text": "beige tote and red knit", "hashtags": "", "geo_country": "NO", "like_count": 30},
        {"post_id": "3", "author": "cy", "author_followers": 100, "ts_iso": "2024-04-23T10:00:00Z",
         "text": "beige tote", "hashtags": "", "geo_country": "FR", "like_count": 99},
    ]
    client.post("/api/uploads/posts", json={"rows": rows})


def test_cooccurrence(client):
    _upload_looks(client)

    data = client.get("/api/trends/cooccur", params={"region": "Nordics"}).json()["data"]

    assert data[0] == {"left": "tote", "right": "beige", "count": 2}
    assert {(d["left"], d["right"]) for d in data} == {
        ("tote", "beige"), ("tote", "red"), ("knit", "beige"), ("knit", "red"),
    }
    assert client.get("/api/trends/cooccur", params={"region": "Nordics", "week": "2024-W01"}).json()["data"] == []


def test_top_creators(client):
    _upload_looks(client)

    data = client.get("/api/creators/top", params={"entity": "tote", "region": "Nordics"}).json()["data"]

    assert [(c["author"], c["posts"]) for c in data] == [("bo", 1), ("ana", 1)]
    assert data[0]["avg_eng_rate"] == pytest.approx(0.3)
