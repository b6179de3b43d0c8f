from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class SocialPost(SQLModel, table=True):
    __tablename__ = "social_posts"

    id: Optional[int] = Field(default=None, primary_key=True)
    platform: str = ""
    post_id: str = ""
    post_url: str = ""
    author: str = Field(default="", index=True)
    author_followers: int = 0
    ts_iso: str = ""
    language: str = ""
    text: str = ""
    hashtags: str = ""  # pipe-separated
    like_count: int = 0
    comment_count: int = 0
    share_count: int = 0
    save_count: int = 0
    video_views: int = 0
    geo_country: str = ""


class EntityScore(SQLModel, table=True):
    __tablename__ = "entities"
    __table_args__ = (UniqueConstraint("entity", "type", "week", "region", name="uq_entities_key"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    entity: str = Field(index=True)
    type: str = Field(index=True)  # hashtag|color|item
    week: str = Field(index=True)
    region: str = Field(index=True)
    posts: int = 0
    eng_sum: int = 0
    eng_rate_median: float = 0.0
    score: float = Field(default=0.0, index=True)
    growth: Optional[float] = None
