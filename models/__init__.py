from models.research import ResearchHit, ResearchRun
from models.signal import Signal
from models.snapshot import ThemeSnapshot
from models.upload import EntityScore, SocialPost
from models.watchlist import Watchlist

__all__ = [
    "EntityScore",
    "ResearchHit",
    "ResearchRun",
    "Signal",
    "SocialPost",
    "ThemeSnapshot",
    "Watchlist",
]
