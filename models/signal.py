from typing import Optional

from sqlmodel import Field, SQLModel


class Signal(SQLModel, table=True):
    __tablename__ = "signals"

    id: Optional[int] = Field(default=None, primary_key=True)
    date: str = Field(index=True)  # YYYY-MM-DD
    keyword: str = Field(index=True)  # lowercased canonical string
    source: str = Field(index=True)  # search|news|social|video (aliased)
    value: float = 0.0
    meta_json: str = "{}"
    event_uid: str = Field(default="", index=True)  # sha256(source|url|keyword|date), not unique
