from typing import Dict, List, Optional
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict

from app.modules.news_feed.enums import NewsFeedCategory, NewsFeedMode

class NewsFeedCreate(BaseModel):
    """A feed row waiting in a pending batch"""
    model_config = ConfigDict(use_enum_values=True)

    mode: NewsFeedMode
    category: NewsFeedCategory
    content: str
    post_id: int
    board_id: int
    viewer_user_id: Optional[int] = None
    actor_user_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

class FeedPost(BaseModel):
    """All feed entries of one category for one post"""
    id: int
    notifications: List[str] = []
    deadline: Optional[date] = None

class FeedResponse(BaseModel):
    """Feed response model returned to client, keyed by category then post title"""
    personal: Dict[str, Dict[str, FeedPost]]
    overview: Dict[str, Dict[str, FeedPost]]
