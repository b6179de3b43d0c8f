from engine.summary import build_weekly_brief, generate_brief_text
from engine.themes import ScoredTheme


def _theme(name, heat, momentum, decision, **kw):
    return ScoredTheme(theme=name, week="2024-W17", heat=heat, momentum=momentum,
                       forecast_heat=kw.get("forecast"), confidence=kw.get("confidence"), decision=decision)


def test_brief_sections():
    themes = [
        _theme("trenchcoat", 82.0, 0.4, "ACT", forecast=90.0, confidence=0.8),
        _theme("beige", 55.0, -0.2, "WATCH"),
        _theme("cargo", 20.0, -0.6, "AVOID"),
    ]
    text = generate_brief_text(themes, [{"entity": "#ootd", "posts": 4, "score": 2.5}])

    lines = text.splitlines()
    assert lines[0] == "Act now"
    assert "- trenchcoat (heat 82, momentum +0.40, 2w forecast 90, confidence 0.80)" in lines
    assert "- beige (heat 55, momentum -0.20)" in lines
    assert "- cargo: slower vs previous week" in lines
    assert "- #ootd: 4 posts, score 2.50" in lines


def test_brief_without_act():
    text = generate_brief_text([_theme("beige", 55.0, 0.1, "WATCH")], [])
    assert "- nothing clears the ACT bar this week" in text
    assert "Cooling" not in text
    assert "hashtags" not in text


def test_weekly_brief_on_empty_store(storage):
    brief = build_weekly_brief(storage, "Nordics")
    assert brief["week"] == "current"
    assert brief["themes"] == []
