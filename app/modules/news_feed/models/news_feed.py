from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Index
from sqlalchemy.sql import func

from app.db.session import Base

class NewsFeed(Base):
    __tablename__ = "news_feeds"
    __table_args__ = (
        Index("ix_news_feeds_board_mode", "board_id", "mode"),
        Index("ix_news_feeds_viewer_mode_created", "viewer_user_id", "mode", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    mode = Column(String, nullable=False, index=True)  # personal, overview
    category = Column(String, nullable=False, index=True)
    content = Column(Text, nullable=False)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    board_id = Column(Integer, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False)
    viewer_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)  # Null for overview rows
    actor_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=func.now(), index=True)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
