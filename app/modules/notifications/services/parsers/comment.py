from datetime import datetime
import logging

from app.modules.news_feed.enums import NewsFeedCategory
from app.modules.notifications.enums import NotificationType
from app.modules.notifications.schemas.events import CommentEvent
from app.modules.notifications.services.mentions import parse_mentions
from app.modules.notifications.services.parsers.base import (
    NotificationParser,
    ParseResult,
    fan_out,
    unique_ids,
)
from app.modules.posts.services.post import get_post, shorten_title
from app.modules.user_management.services.user import get_user_name

logger = logging.getLogger(__name__)


class CommentParser(NotificationParser):
    """Notify the post's assignee and author about a new comment, mentions first"""

    kind = "comment"
    entity_type = CommentEvent

    def build(self, event: CommentEvent, now: datetime) -> ParseResult:
        post = get_post(self.db, event.post_id)
        if post is None:
            logger.warning(f"Comment {event.comment_id} references missing post {event.post_id}")
            return ParseResult()

        actor_id = event.acting_user_id
        actor_name = get_user_name(self.db, actor_id)
        label = f"#{post.id}: {shorten_title(post.title)}"

        mentions = parse_mentions(
            self.db,
            event.content,
            NotificationType.COMMENT,
            post.id,
            actor_id,
            board_id=post.board_id,
            context_label=label,
            feed=self.feed,
            now=now,
        )

        self.add_feed_pair(
            NewsFeedCategory.COMMENTED, f"You commented on post #{post.id}",
            NewsFeedCategory.ACTIVITY_ON, f"{actor_name} commented on post #{post.id}",
            post.id, post.board_id, actor_id, now,
        )

        already_notified = set(mentions.notified_user_ids)
        recipients = [
            user_id
            for user_id in unique_ids([post.assignee_id, post.author_id])
            if user_id != actor_id and user_id not in already_notified
        ]
        regular = fan_out(
            recipients,
            [f"{actor_name} commented on post #{post.id}"],
            NotificationType.COMMENT,
            post.id,
            post.board_id,
            actor_id,
            now,
        )

        return ParseResult(
            notifications=mentions.notifications + regular,
            mentioned_user_ids=mentions.notified_user_ids,
        )
