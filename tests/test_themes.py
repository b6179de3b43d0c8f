"""Integration tests for theme scoring and snapshot storage (SQLite on tmp_path)."""

import json
from datetime import datetime

import pytest
from sqlmodel import SQLModel, select

from conftest import AS_OF, week_date
from database import StorageError
from engine.themes import compute_themes, get_theme_one, get_top_themes, latest_week, top_links_for
from models import ResearchHit, ResearchRun, ThemeSnapshot


def _snapshots(storage):
    with storage.get_session() as session:
        return session.exec(select(ThemeSnapshot)).all()


def _add_hits(storage, hits):
    with storage.write_session("test hits") as session:
        run = ResearchRun(region="Nordics")
        session.add(run)
        session.flush()
        for h in hits:
            session.add(ResearchHit(run_id=run.id, source="news", **h))


class TestComputeThemes:
    def test_spike_after_flat_weeks_is_act(self, storage, add_weekly_series):
        add_weekly_series("trenchcoat", "search", [10] * 7 + [100])

        themes = compute_themes(storage, as_of=AS_OF)

        assert len(themes) == 1
        t = themes[0]
        assert (t.theme, t.week) == ("trenchcoat", "2024-W17")
        assert t.heat >= 70
        assert t.momentum > 0
        assert t.decision == "ACT"
        assert [s["source"] for s in t.sources] == ["video", "search", "news", "social"]

    def test_stop_words_are_never_scored(self, storage, add_signals):
        add_signals([("2024-04-22", "designer", "news", 1), ("2024-04-22", "beige", "news", 1)])

        themes = compute_themes(storage, as_of=AS_OF)

        assert [t.theme for t in themes] == ["beige"]
        assert all(r.theme != "designer" for r in _snapshots(storage))

    def test_recompute_is_idempotent(self, storage, add_weekly_series):
        add_weekly_series("loafers", "video", [1000, 3000, 2000, 5000, 4000, 9000, 8000, 12000])
        add_weekly_series("beige", "social", [5, 4, 3, 2, 1, 1, 1, 1])

        first = [t.as_dict() for t in compute_themes(storage, as_of=AS_OF)]
        second = [t.as_dict() for t in compute_themes(storage, as_of=AS_OF)]

        assert first == second
        rows = _snapshots(storage)
        assert len(rows) == 2
        assert {(r.week, r.theme) for r in rows} == {("2024-W17", "loafers"), ("2024-W17", "beige")}

    def test_outputs_are_bounded_and_consistent(self, storage, add_weekly_series):
        add_weekly_series("trenchcoat", "search", [10, 90, 15, 70, 5, 60, 20, 40])
        add_weekly_series("trenchcoat", "video", [0, 0, 100000, 0, 0, 250000, 0, 0])
        add_weekly_series("red", "news", [1, 1, 2])

        for t in compute_themes(storage, as_of=AS_OF):
            assert 0 <= t.heat <= 100
            assert -1 <= t.momentum <= 1
            assert 0 <= t.forecast_heat <= 100
            assert 0.1 <= t.confidence <= 1
            if t.decision == "ACT":
                assert t.heat >= 70 and t.momentum > 0
            elif t.decision == "WATCH":
                assert t.heat >= 40
            else:
                assert t.heat < 40

    def test_result_is_sorted_by_heat(self, storage, add_weekly_series):
        add_weekly_series("trenchcoat", "search", [10] * 7 + [100])
        add_weekly_series("beige", "search", [100] * 7 + [10])
        add_weekly_series("navy", "news", [1] * 8)

        themes = compute_themes(storage, as_of=AS_OF)

        heats = [t.heat for t in themes]
        assert heats == sorted(heats, reverse=True)
        assert themes[0].theme == "trenchcoat"
        assert themes[-1].theme == "beige"

    def test_explicit_week_uses_history_up_to_it(self, storage, add_weekly_series, add_signals):
        add_weekly_series("trenchcoat", "search", [10] * 7 + [100])
        add_signals([(week_date(7), "olive", "news", 1)])  # only in 2024-W17

        themes = compute_themes(storage, week="2024-W16", as_of=AS_OF)

        assert [(t.theme, t.week) for t in themes] == [("trenchcoat", "2024-W16")]
        assert themes[0].heat == pytest.approx(50.0)
        assert themes[0].decision == "WATCH"

    def test_no_signals(self, storage):
        assert compute_themes(storage, as_of=AS_OF) == []
        assert _snapshots(storage) == []

    def test_signals_outside_lookback_are_ignored(self, storage, add_signals):
        add_signals([("2023-12-01", "cargo", "news", 1)])
        assert compute_themes(storage, as_of=AS_OF) == []

    def test_created_at_follows_as_of(self, storage, add_signals):
        add_signals([("2024-04-22", "cargo", "news", 1)])
        compute_themes(storage, as_of=AS_OF)
        assert _snapshots(storage)[0].created_at == AS_OF

    def test_naive_as_of_is_stored_as_utc(self, storage, add_signals):
        add_signals([("2024-04-22", "cargo", "news", 1)])

        (t,) = compute_themes(storage, as_of=datetime(2024, 4, 26, 12, 0))

        assert t.created_at == AS_OF
        stored = _snapshots(storage)[0].created_at
        assert stored.tzinfo is not None
        assert stored == AS_OF

    def test_storage_failure_raises(self, storage, add_signals):
        add_signals([("2024-04-22", "cargo", "news", 1)])
        SQLModel.metadata.tables["themes"].drop(storage.engine)

        with pytest.raises(StorageError):
            compute_themes(storage, as_of=AS_OF)

    def test_top_links_are_attached(self, storage, add_signals):
        add_signals([("2024-04-22", "trenchcoat", "news", 1)])
        _add_hits(storage, [
            {"entity_raw": "Trenchcoat", "entity_mapped": "trench", "ts_iso": "2024-04-20T08:00:00Z", "score": 2.0, "url": "https://a.example/1"},
            {"entity_raw": "x", "entity_mapped": "trenchcoat", "ts_iso": "2024-04-21T08:00:00Z", "score": 3.0, "url": "https://a.example/2"},
        ])

        themes = compute_themes(storage, as_of=AS_OF)

        assert themes[0].top_links == ["https://a.example/2", "https://a.example/1"]
        assert json.loads(_snapshots(storage)[0].top_links_json) == themes[0].top_links


class TestTopLinks:
    def test_best_five_recent_unique(self, storage):
        hits = [
            {"entity_raw": "beige", "entity_mapped": "beige", "ts_iso": "2024-04-20", "score": float(i), "url": f"https://n.example/{i}"}
            for i in range(7)
        ]
        hits.append({"entity_raw": "beige", "entity_mapped": "beige", "ts_iso": "2024-04-20", "score": 99.0, "url": "https://n.example/6"})
        hits.append({"entity_raw": "beige", "entity_mapped": "beige", "ts_iso": "2024-01-02", "score": 100.0, "url": "https://old.example"})
        hits.append({"entity_raw": "beige", "entity_mapped": "beige", "ts_iso": "2024-04-20", "score": 50.0, "url": None})
        _add_hits(storage, hits)

        links = top_links_for(storage, "beige", AS_OF)

        assert links == [f"https://n.example/{i}" for i in (6, 5, 4, 3, 2)]

    def test_no_hits(self, storage):
        assert top_links_for(storage, "beige", AS_OF) == []


class TestReads:
    def test_top_defaults_to_latest_week(self, storage, add_weekly_series):
        add_weekly_series("trenchcoat", "search", [10] * 7 + [100])
        add_weekly_series("red", "news", [1] * 8)
        compute_themes(storage, week="2024-W16", as_of=AS_OF)
        compute_themes(storage, as_of=AS_OF)

        assert latest_week(storage) == "2024-W17"
        top = get_top_themes(storage)
        assert {t.week for t in top} == {"2024-W17"}
        assert [t.theme for t in top] == ["trenchcoat", "red"]
        assert [t.theme for t in get_top_themes(storage, limit=1)] == ["trenchcoat"]
        assert {t.week for t in get_top_themes(storage, week="2024-W16")} == {"2024-W16"}

    def test_top_on_empty_store(self, storage):
        assert latest_week(storage) is None
        assert get_top_themes(storage) == []

    def test_legacy_rows_without_forecast_or_confidence(self, storage):
        with storage.write_session("legacy") as session:
            session.add(ThemeSnapshot(week="2023-W40", theme="cargo", heat=55.0, momentum=0.1, decision="WATCH"))

        (t,) = get_top_themes(storage)
        assert t.forecast_heat is None
        assert t.confidence is None
        assert t.sources == []
        assert t.as_dict()["forecast_heat"] is None

    def test_theme_history(self, storage, add_signals):
        add_signals([
            ("2024-04-22", "trenchcoat", "search", 70),
            ("2024-03-01", "trenchcoat", "search", 10),
            ("2024-04-23", "beige", "news", 1),
        ])

        rows = get_theme_one(storage, " TrenchCoat ", weeks=4, as_of=AS_OF)

        assert rows == [{"date": "2024-04-22", "source": "search", "value": 70.0}]
