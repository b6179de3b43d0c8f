from typing import Any, Dict, List, Optional

from database import Storage
from engine.themes import ScoredTheme, get_top_themes
from engine.uploads import get_top_entities


def _theme_line(t: ScoredTheme) -> str:
    parts = [f"heat {t.heat:.0f}", f"momentum {t.momentum:+.2f}"]
    if t.forecast_heat is not None:
        parts.append(f"2w forecast {t.forecast_heat:.0f}")
    if t.confidence is not None:
        parts.append(f"confidence {t.confidence:.2f}")
    return f"- {t.theme} ({', '.join(parts)})"


def generate_brief_text(themes: List[ScoredTheme], hashtags: List[Dict[str, Any]]) -> str:
    # deterministic text (no LLM)
    act = [t for t in themes if t.decision == "ACT"]
    watch = [t for t in themes if t.decision == "WATCH"]
    fading = [t for t in themes if t.momentum < 0]

    lines = ["Act now"]
    lines.extend(_theme_line(t) for t in act[:5])
    if not act:
        lines.append("- nothing clears the ACT bar this week")
    lines.append("")
    lines.append("Watch")
    lines.extend(_theme_line(t) for t in watch[:5])
    if fading:
        lines.append("")
        lines.append("Cooling")
        lines.extend(f"- {t.theme}: slower vs previous week" for t in fading[:3])
    if hashtags:
        lines.append("")
        lines.append("Leading hashtags (uploaded data)")
        lines.extend(f"- {h['entity']}: {h['posts']} posts, score {h['score']:.2f}" for h in hashtags[:3])
    return "\n".join(lines)


def build_weekly_brief(storage: Storage, region: str, week: Optional[str] = None, limit: int = 10) -> Dict[str, Any]:
    themes = get_top_themes(storage, week=week, limit=limit)
    target = week or (themes[0].week if themes else None)
    hashtags = get_top_entities(storage, "hashtag", region, target, limit=10)
    return {
        "region": region,
        "week": target or "current",
        "content": generate_brief_text(themes, hashtags),
        "themes": [t.as_dict() for t in themes],
    }
