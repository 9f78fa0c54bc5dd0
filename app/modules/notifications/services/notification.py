"""
Notification service.

notify() turns a domain event into notification and news feed rows inside the
caller's transaction. Cache pushes and realtime events wait for the commit.
"""
from datetime import datetime
from typing import Callable, Dict, List, Optional, Type
import logging

import redis
from sqlalchemy import event
from sqlalchemy.orm import Session

from app.core.cache import get_redis
from app.core.config import settings
from app.core.timeutils import utcnow
from app.modules.news_feed.services.feed import FeedBatch, write_feed_rows
from app.modules.notifications.exceptions import UnsupportedEntityError
from app.modules.notifications.models.notification import Notification
from app.modules.notifications.schemas.events import (
    BoardEvent,
    CommentEvent,
    PostEvent,
)
from app.modules.notifications.schemas.notification import (
    ActivityEntry,
    DisplayGroup,
    Notification as NotificationSchema,
)
from app.modules.notifications.services.cache import GroupedNotificationCache
from app.modules.notifications.services.grouping import group_notifications
from app.modules.notifications.services.mentions import mark_mentions_as_notified
from app.modules.notifications.services.parsers.base import NotificationParser, ParseResult
from app.modules.notifications.services.parsers.branch import BranchQueueParser
from app.modules.notifications.services.parsers.comment import CommentParser
from app.modules.notifications.services.parsers.linked_issue import LinkedIssueParser
from app.modules.notifications.services.parsers.post import PostParser
from app.modules.notifications.services.realtime import RealtimeBroadcaster
from app.modules.posts.comments.models.comment import Comment
from app.modules.posts.services.post import get_post
from app.modules.user_management.services.user import get_user_names

logger = logging.getLogger(__name__)

PENDING_KEY = "notifications.after_commit"

PARSERS: Dict[str, Type[NotificationParser]] = {
    CommentParser.kind: CommentParser,
    PostParser.kind: PostParser,
    LinkedIssueParser.kind: LinkedIssueParser,
    BranchQueueParser.kind: BranchQueueParser,
}


def defer_until_commit(db: Session, callback: Callable[[], None]) -> None:
    """Run callback once the session commits; a rollback drops it"""
    db.info.setdefault(PENDING_KEY, []).append(callback)


@event.listens_for(Session, "after_commit")
def _run_pending(session: Session) -> None:
    for callback in session.info.pop(PENDING_KEY, []):
        try:
            callback()
        except redis.RedisError as e:
            logger.warning(f"Post-commit notification side effect failed: {e}")


@event.listens_for(Session, "after_rollback")
def _drop_pending(session: Session) -> None:
    dropped = session.info.pop(PENDING_KEY, [])
    if dropped:
        logger.debug(f"Dropped {len(dropped)} notification side effect(s) after rollback")


class NotificationService:
    def __init__(
        self,
        db: Session,
        cache: Optional[GroupedNotificationCache] = None,
        realtime: Optional[RealtimeBroadcaster] = None,
    ):
        self.db = db
        self.cache = cache if cache is not None else GroupedNotificationCache(get_redis())
        self.realtime = realtime if realtime is not None else RealtimeBroadcaster(get_redis())

    def notify(self, entity, now: Optional[datetime] = None) -> List[Notification]:
        """
        Generate notifications for a domain event.

        Rows are added to the session and flushed, never committed. Board events
        are accepted and produce nothing.

        Args:
            entity: One of the events in schemas.events
            now: Timestamp for every generated row

        Returns:
            The notification rows added to the session

        Raises:
            UnsupportedEntityError: entity is not a notifiable event
        """
        if isinstance(entity, BoardEvent):
            logger.debug(f"Board event on board {entity.board_id} produces no notifications")
            return []

        parser_class = PARSERS.get(getattr(entity, "kind", None))
        if parser_class is None:
            raise UnsupportedEntityError(entity)

        feed = FeedBatch()
        result = parser_class(self.db, feed).parse(entity, now)

        rows = [Notification(**draft.model_dump()) for draft in result.notifications]
        self.db.add_all(rows)
        write_feed_rows(self.db, feed.drain())
        self._mark_mentions(entity, result)
        self.db.flush()

        logger.info(
            f"{entity.kind} event produced {len(rows)} notification(s)"
            f" for users {sorted({row.user_id for row in rows})}"
        )
        self._after_commit(entity, rows, result)
        return rows

    def _mark_mentions(self, entity, result: ParseResult) -> None:
        """Flag consumed mention markers in the owning rich text"""
        if not result.mentioned_user_ids:
            return

        if isinstance(entity, CommentEvent):
            comment = self.db.query(Comment).filter(Comment.id == entity.comment_id).first()
            if comment is not None:
                comment.content = mark_mentions_as_notified(comment.content, result.mentioned_user_ids)
        elif isinstance(entity, PostEvent):
            post = get_post(self.db, entity.post_id)
            if post is not None:
                post.desc = mark_mentions_as_notified(post.desc, result.mentioned_user_ids)

    def _after_commit(self, entity, rows: List[Notification], result: ParseResult) -> None:
        payloads = [NotificationSchema.model_validate(row) for row in rows]

        def publish() -> None:
            warm = {}
            for payload in payloads:
                self._push_to_cache(payload, warm)
                self.realtime.notification_received(payload)

            if result.broadcast and isinstance(entity, PostEvent):
                self.realtime.post_changed(entity.current)

        if payloads or result.broadcast:
            defer_until_commit(self.db, publish)

    def _push_to_cache(self, payload: NotificationSchema, warm: Dict[int, bool]) -> None:
        """Best-effort cache push; a failing user is skipped for the rest of the event"""
        user_id = payload.user_id
        try:
            if user_id not in warm:
                warm[user_id] = not self.cache.is_empty(user_id)
            # A cold cache is rebuilt from the database on the next read
            if warm[user_id]:
                self.cache.push(user_id, payload.post_id, payload)
        except redis.RedisError as e:
            warm[user_id] = False
            logger.warning(f"Notification cache push failed for user {user_id}: {e}")

    def get_grouped_notifications(self, user_id: int, now: Optional[datetime] = None) -> List[DisplayGroup]:
        """
        Grouped notifications for the bell, read from the cache when warm.

        On a cold (or unreachable) cache the latest notifications are grouped
        from the database and the cache is primed with the result.
        """
        cache_available = True
        try:
            groups = self.cache.read(user_id, now)
            if groups:
                return groups
        except redis.RedisError as e:
            cache_available = False
            logger.warning(f"Notification cache read failed for user {user_id}: {e}")

        rows = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(settings.NOTIFICATION_FETCH_LIMIT)
            .all()
        )
        history = [NotificationSchema.model_validate(row) for row in reversed(rows)]
        groups = group_notifications(history, now=now)

        if cache_available:
            try:
                self.cache.prime_from_database(user_id, groups)
            except redis.RedisError as e:
                logger.warning(f"Priming notification cache failed for user {user_id}: {e}")
        return groups

    def unseen_count(self, user_id: int) -> int:
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.seen_at.is_(None))
            .count()
        )

    def mark_all_seen(self, user_id: int, now: Optional[datetime] = None) -> int:
        """Mark every unseen notification of the user as seen; returns the row count"""
        now = now or utcnow()
        count = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.seen_at.is_(None))
            .update({Notification.seen_at: now}, synchronize_session=False)
        )
        defer_until_commit(self.db, lambda: self.cache.mark_all_seen(user_id, now))
        return count

    def mark_group_seen(self, user_id: int, post_id: int, now: Optional[datetime] = None) -> int:
        """Mark the user's notifications on one post as seen"""
        now = now or utcnow()
        count = (
            self.db.query(Notification)
            .filter(
                Notification.user_id == user_id,
                Notification.post_id == post_id,
                Notification.seen_at.is_(None),
            )
            .update({Notification.seen_at: now}, synchronize_session=False)
        )
        defer_until_commit(self.db, lambda: self.cache.mark_seen(user_id, post_id, now))
        return count

    def get_activity_history(self, post_id: int) -> List[ActivityEntry]:
        """
        Activity log of a post, newest first.

        Every recipient gets a copy of the same message, so rows with the same
        text within the same minute are shown once. Mentions are personal and
        left out.
        """
        rows = (
            self.db.query(Notification)
            .filter(Notification.post_id == post_id, Notification.is_mention.is_(False))
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .all()
        )
        names = get_user_names(self.db, {row.created_by for row in rows})

        seen = set()
        history = []
        for row in rows:
            key = (row.content, row.created_at.replace(second=0, microsecond=0))
            if key in seen:
                continue
            seen.add(key)
            history.append(ActivityEntry(
                id=row.id,
                type=row.type,
                content=row.content,
                created_by=names.get(row.created_by, "Someone"),
                created_at=row.created_at,
            ))
        return history
