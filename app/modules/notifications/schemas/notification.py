from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict

from app.modules.notifications.enums import NotificationType

class NotificationBase(BaseModel):
    type: NotificationType
    content: str
    post_id: int
    board_id: Optional[int] = None

class NotificationCreate(NotificationBase):
    """A notification produced by a parser, not yet persisted"""
    model_config = ConfigDict(use_enum_values=True)

    user_id: int
    created_by: Optional[int] = None  # ID of the user who triggered the notification
    is_mention: bool = False
    created_at: datetime
    updated_at: datetime

class NotificationInDBBase(NotificationBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    created_by: Optional[int] = None
    is_mention: bool = False
    seen_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

class Notification(NotificationInDBBase):
    """Notification row as stored and as cached per post group"""
    pass

class DisplayGroup(BaseModel):
    """One entry of a user's notification list: a run of notifications on one post"""
    id: int
    post_id: int
    board_id: Optional[int] = None
    content: str
    type: NotificationType
    time: str
    additional_count: int = 0
    seen: bool = False
    is_mention: bool = False
    timestamp: datetime
    raw_group: List[Notification] = []

class GroupedNotifications(BaseModel):
    notifications: List[DisplayGroup]
    unseen_count: int

class ActivityEntry(BaseModel):
    id: int
    type: NotificationType
    content: str
    created_by: str
    created_at: datetime
