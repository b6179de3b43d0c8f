import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from config import SOURCES, settings
from engine.stats import mean_sd, normalize_value
from engine.weekly import WeeklyBucket


@dataclass(frozen=True)
class ScoringProfile:
    """
    normalize -> weight -> score, shared by the theme composite and the
    uploaded-entity score. `weights` maps metric name to its weight;
    histories shorter than `min_points` fall back to min-max scaling.
    """

    name: str
    weights: Mapping[str, float]
    min_points: int = 8

    def components(self, history: Mapping[str, Sequence[float]], current: Mapping[str, float]) -> Dict[str, float]:
        return {
            m: normalize_value(history.get(m, ()), float(current.get(m, 0.0)), self.min_points)
            for m in self.weights
        }

    def weighted_sum(self, components: Mapping[str, float]) -> float:
        return sum(w * components.get(m, 0.0) for m, w in self.weights.items())


THEME_PROFILE = ScoringProfile(
    name="theme",
    weights=settings.source_weights(),
    min_points=settings.min_z_points,
)

ENTITY_PROFILE = ScoringProfile(
    name="entity",
    weights={"posts": settings.w_posts, "eng_sum": settings.w_eng_sum, "eng_rate_median": settings.w_eng_rate},
    min_points=settings.min_z_points,
)


def sigmoid(x: float) -> float:
    # split on sign so exp() never overflows
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    ex = math.exp(x)
    return ex / (1.0 + ex)


def heat_from(composite: float) -> float:
    return 100.0 * sigmoid(composite)


def source_history(series: Sequence[WeeklyBucket]) -> Dict[str, List[float]]:
    return {s: [b.value(s) for b in series] for s in SOURCES}


def composite_series(series: Sequence[WeeklyBucket], profile: ScoringProfile = THEME_PROFILE) -> Tuple[List[float], List[Dict[str, float]]]:
    """
    Pre-sigmoid composite at every week of the window. Each week is normalized
    against the whole window (current week included).
    """
    hist = source_history(series)
    composites: List[float] = []
    per_week: List[Dict[str, float]] = []
    for b in series:
        comps = profile.components(hist, b.src)
        per_week.append(comps)
        composites.append(profile.weighted_sum(comps))
    return composites, per_week


def compute_momentum(curr_z: float, prev_z: float) -> float:
    return math.tanh(curr_z - prev_z)


def compute_forecast(curr_z: float, prev_z: float) -> float:
    # fixed 2-period linear extrapolation, not a fitted model
    proj_z = curr_z + (curr_z - prev_z)
    return heat_from(proj_z)


def compute_confidence(z_hist: Sequence[float]) -> Tuple[float, Dict[str, Any]]:
    _, sd_z = mean_sd(z_hist)
    conf_len = min(1.0, len(z_hist) / 6.0)  # saturates at 6 weeks
    conf_vol = 1.0 / (1.0 + sd_z)
    confidence = max(0.1, 0.6 * conf_len + 0.4 * conf_vol)
    return confidence, {"n_weeks": len(z_hist), "sd_z": sd_z, "conf_len": conf_len, "conf_vol": conf_vol}


def classify(heat: float, momentum: float) -> str:
    if heat >= settings.act_heat and momentum > 0:
        return "ACT"
    if heat >= settings.watch_heat:
        return "WATCH"
    return "AVOID"


@dataclass
class ThemeScore:
    composite: float
    heat: float
    momentum: float
    forecast_heat: float
    confidence: float
    decision: str
    per_source_z: Dict[str, float] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)


def score_series(series: Sequence[WeeklyBucket], profile: ScoringProfile = THEME_PROFILE) -> ThemeScore:
    """Score the last bucket of a non-empty, ascending series."""
    if not series:
        raise ValueError("cannot score an empty series")

    z_hist, per_week = composite_series(series, profile)
    curr_z = z_hist[-1]
    prev_z = z_hist[-2] if len(z_hist) >= 2 else curr_z

    heat = heat_from(curr_z)
    momentum = compute_momentum(curr_z, prev_z)
    forecast_heat = compute_forecast(curr_z, prev_z)
    confidence, conf_meta = compute_confidence(z_hist)

    return ThemeScore(
        composite=curr_z,
        heat=heat,
        momentum=momentum,
        forecast_heat=forecast_heat,
        confidence=confidence,
        decision=classify(heat, momentum),
        per_source_z=per_week[-1],
        meta={"prev_z": prev_z, "z_hist": z_hist, "confidence_meta": conf_meta},
    )


def sources_payload(per_source_z: Mapping[str, float], profile: ScoringProfile = THEME_PROFILE) -> List[Dict[str, Any]]:
    return [
        {"source": s, "z": per_source_z.get(s, 0.0), "weight": profile.weights.get(s, 0.0)}
        for s in ("video", "search", "news", "social")
    ]
