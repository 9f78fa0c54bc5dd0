from typing import Optional
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict

class PostSnapshot(BaseModel):
    """Field values of a post at one point in time, used for change diffing"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    desc: str = ""
    priority: Optional[str] = None
    pinned: Optional[bool] = None
    column: Optional[str] = None
    assignee_id: Optional[int] = None
    deadline: Optional[date] = None
    board_id: int
    author_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
