from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func

from app.db.session import Base

class BranchQueueEntry(Base):
    """A queued request to generate a git branch/PR for a post."""
    __tablename__ = "branch_queue"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)  # The user who submitted the request
    retries = Column(Integer, nullable=False, default=0)
    outcome = Column(String, nullable=True)  # success, failure
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
