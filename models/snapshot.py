from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class ThemeSnapshot(SQLModel, table=True):
    __tablename__ = "themes"
    __table_args__ = (UniqueConstraint("week", "theme", name="uq_themes_week_theme"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    week: str = Field(index=True)  # e.g. 2024-W17
    theme: str = Field(index=True)
    heat: float
    momentum: float
    # older rows may lack these
    forecast_heat: Optional[float] = None
    confidence: Optional[float] = None
    sources_json: str = "[]"  # [{source, z, weight}]
    top_links_json: str = "[]"  # [url, ...]
    decision: str  # ACT|WATCH|AVOID
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
