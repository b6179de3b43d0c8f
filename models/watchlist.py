from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class Watchlist(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    region: str = Field(index=True, unique=True)
    keywords_json: str = "[]"  # ordered, lowercase
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
