from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class ResearchRun(SQLModel, table=True):
    __tablename__ = "research_runs"

    id: Optional[int] = Field(default=None, primary_key=True)
    region: str = Field(index=True)
    keywords_json: str = "[]"
    content_json: str = "{}"
    status: str = "done"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)


class ResearchHit(SQLModel, table=True):
    __tablename__ = "research_hits"

    id: Optional[int] = Field(default=None, primary_key=True)
    run_id: int = Field(foreign_key="research_runs.id", index=True)
    source: str
    entity_raw: str = ""
    entity_mapped: str = Field(default="", index=True)
    type: str = "topic"
    ts_iso: str = Field(index=True)
    volume: float = 0.0
    trend: float = 0.0
    fresh: float = 0.0
    weight: Optional[float] = None
    score: float = Field(default=0.0, index=True)
    url: Optional[str] = None
    meta_json: str = "{}"
