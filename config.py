import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

SOURCES = ["search", "news", "social", "video"]

# raw connector label -> canonical source
SOURCE_ALIASES = {
    "trends": "search",
    "gdelt": "news",
    "news": "news",
    "youtube": "video",
    "creator": "video",
    "reddit": "social",
}

COLORS = ["black", "white", "beige", "navy", "olive", "cream", "red", "brown", "gray", "green"]
ITEMS = ["dress", "blazer", "trench", "trenchcoat", "loafer", "loafers", "knit", "cargo", "tote", "denim", "skirt", "sneaker"]
STOP_WORDS = {"designer", "brand", "fashion", "style", "outfit"}

DEFAULT_KEYWORDS = ["trenchcoat", "loafers", "quiet luxury", "beige", "red shoes"]

REGION_GEOS = {
    "Nordics": ["SE", "NO", "DK", "FI", "IS"],
    "FR": ["FR"],
}

DECISIONS = ["ACT", "WATCH", "AVOID"]


class Settings(BaseModel):
    app_name: str = "Trend Radar"
    db_url: str = os.getenv("TR_DB_URL", "sqlite:///./trend_radar.db")
    log_level: str = os.getenv("TR_LOG_LEVEL", "INFO")

    default_region: str = os.getenv("TR_DEFAULT_REGION", "Nordics")
    lookback_days: int = int(os.getenv("TR_LOOKBACK_DAYS", "56"))
    research_window_days: int = int(os.getenv("TR_RESEARCH_WINDOW_DAYS", "28"))

    # Signals are append-only; with dedup on, rows whose event_uid already exists are skipped
    dedup_signals: bool = os.getenv("TR_DEDUP_SIGNALS", "false").lower() == "true"

    # Connectors
    sources_path: str = os.getenv("TR_SOURCES_PATH", "sources.yaml")
    http_timeout: float = float(os.getenv("TR_HTTP_TIMEOUT", "20"))
    user_agent: str = "trend-radar/1.0"
    youtube_api_key: str = os.getenv("YOUTUBE_API_KEY", "")
    youtube_min_views: int = int(os.getenv("TR_YOUTUBE_MIN_VIEWS", "50000"))
    pytrends_hl: str = os.getenv("TR_PYTRENDS_HL", "en-US")
    pytrends_tz: int = int(os.getenv("TR_PYTRENDS_TZ", "0"))
    connector_workers: int = int(os.getenv("TR_CONNECTOR_WORKERS", "4"))

    # Theme scoring (fixed v1)
    w_search: float = 0.35
    w_news: float = 0.15
    w_social: float = 0.30
    w_video: float = 0.20
    window_weeks: int = 8
    min_z_points: int = 8
    act_heat: float = 70.0
    watch_heat: float = 40.0
    top_links: int = 5
    links_days: int = 28

    # Uploaded-dataset entity scoring
    w_posts: float = 1.0
    w_eng_sum: float = 0.5
    w_eng_rate: float = 0.5
    growth_bonus_ratio: float = 1.3

    def source_weights(self):
        return {
            "search": self.w_search,
            "news": self.w_news,
            "social": self.w_social,
            "video": self.w_video,
        }


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
