"""
Common parser plumbing.

A parser turns one notifiable event into notification drafts for every
recipient, and appends the matching news feed rows to a shared batch. The
batch and the drafts are written by the notification service, never here.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from app.core.timeutils import utcnow
from app.modules.news_feed.enums import NewsFeedCategory, NewsFeedMode
from app.modules.news_feed.services.feed import FeedBatch, make_feed_row
from app.modules.notifications.enums import NotificationType
from app.modules.notifications.exceptions import EntityKindMismatchError
from app.modules.notifications.schemas.notification import NotificationCreate


@dataclass
class ParseResult:
    notifications: List[NotificationCreate] = field(default_factory=list)
    # Users notified through a mention marker; their markers get flagged
    mentioned_user_ids: List[int] = field(default_factory=list)
    # Ask for a realtime "post changed" event after commit
    broadcast: bool = False


class NotificationParser:
    """Base class; subclasses set ``kind`` and ``entity_type`` and implement build()"""

    kind: str = ""
    entity_type: type = object

    def __init__(self, db: Session, feed: Optional[FeedBatch] = None):
        self.db = db
        self.feed = feed if feed is not None else FeedBatch()

    def parse(self, entity, now: Optional[datetime] = None) -> ParseResult:
        if not isinstance(entity, self.entity_type):
            raise EntityKindMismatchError(type(self).__name__, self.entity_type.__name__, entity)
        return self.build(entity, now or utcnow())

    def build(self, entity, now: datetime) -> ParseResult:
        raise NotImplementedError

    def add_feed_pair(
        self,
        personal_category: NewsFeedCategory,
        personal: str,
        overview_category: NewsFeedCategory,
        overview: str,
        post_id: int,
        board_id: int,
        actor_id: Optional[int],
        now: datetime,
    ) -> None:
        """Queue the personal row (seen by the actor) and its overview twin"""
        self.feed.add(make_feed_row(
            NewsFeedMode.PERSONAL, personal_category, personal,
            post_id, board_id, actor_id, actor_id, now,
        ))
        self.feed.add(make_feed_row(
            NewsFeedMode.OVERVIEW, overview_category, overview,
            post_id, board_id, None, actor_id, now,
        ))


def unique_ids(*groups: Iterable[Optional[int]]) -> List[int]:
    """Flatten id groups, dropping empties and repeats, first occurrence wins"""
    seen = {}
    for group in groups:
        for user_id in group:
            if user_id:
                seen.setdefault(user_id, None)
    return list(seen)


def fan_out(
    recipients: Iterable[int],
    messages: Iterable[str],
    notification_type: NotificationType,
    post_id: int,
    board_id: Optional[int],
    created_by: Optional[int],
    now: datetime,
) -> List[NotificationCreate]:
    """One draft per recipient and message"""
    messages = list(messages)
    return [
        NotificationCreate(
            user_id=user_id,
            created_by=created_by,
            type=notification_type,
            content=message,
            post_id=post_id,
            board_id=board_id,
            is_mention=False,
            created_at=now,
            updated_at=now,
        )
        for user_id in recipients
        for message in messages
    ]
