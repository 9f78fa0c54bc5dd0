from datetime import datetime
from typing import Dict, List
import logging

from app.modules.boards.services.board import get_board_title
from app.modules.news_feed.enums import NewsFeedCategory
from app.modules.notifications.enums import NotificationType
from app.modules.notifications.schemas.events import PostEvent
from app.modules.notifications.services.changes import (
    Change,
    ChangeContext,
    describe_changes,
    diff_snapshots,
    has_visible_changes,
    is_recently_created,
)
from app.modules.notifications.services.mentions import parse_mentions
from app.modules.notifications.services.parsers.base import (
    NotificationParser,
    ParseResult,
    fan_out,
    unique_ids,
)
from app.modules.posts.services.post import get_watcher_ids, shorten_title
from app.modules.user_management.services.user import get_user_name

logger = logging.getLogger(__name__)


class PostParser(NotificationParser):
    """Notify the people around a post about its creation or field changes"""

    kind = "post"
    entity_type = PostEvent

    def build(self, event: PostEvent, now: datetime) -> ParseResult:
        post = event.current
        changes = diff_snapshots(event.previous, post)
        actor_id = event.acting_user_id

        board_title = get_board_title(self.db, post.board_id)
        label = f"#{post.id}: {shorten_title(post.title)} ({board_title})"

        mentions = parse_mentions(
            self.db,
            self._mention_source(event, changes),
            NotificationType.POST,
            post.id,
            actor_id,
            board_id=post.board_id,
            context_label=label,
            feed=self.feed,
            now=now,
        )

        if event.is_new:
            messages = self._creation_messages(event, board_title, now)
        else:
            messages = self._change_messages(event, changes, board_title, now)

        notifications = list(mentions.notifications)
        if messages:
            recipients = self._recipients(event, changes)
            notifications += fan_out(
                recipients,
                messages,
                NotificationType.POST,
                post.id,
                post.board_id,
                actor_id,
                now,
            )

        return ParseResult(
            notifications=notifications,
            mentioned_user_ids=mentions.notified_user_ids,
            broadcast=event.is_new or has_visible_changes(changes),
        )

    def _mention_source(self, event: PostEvent, changes: Dict[str, Change]) -> str:
        """Only freshly written description text can hold new mentions"""
        if "desc" in changes:
            return changes["desc"][1] or ""
        if event.is_new:
            return event.current.desc or ""
        return ""

    def _creation_messages(self, event: PostEvent, board_title: str, now: datetime) -> List[str]:
        post = event.current
        if not is_recently_created(post, now):
            return []

        creator_name = get_user_name(self.db, post.author_id)
        self.add_feed_pair(
            NewsFeedCategory.CREATED, f"You created a new post #{post.id}",
            NewsFeedCategory.CREATED, f"{creator_name} created a new post #{post.id}",
            post.id, post.board_id, post.author_id, now,
        )
        return [f"{creator_name} created a new post #{post.id}: {shorten_title(post.title)} ({board_title})"]

    def _change_messages(
        self,
        event: PostEvent,
        changes: Dict[str, Change],
        board_title: str,
        now: datetime,
    ) -> List[str]:
        if not changes:
            return []

        post = event.current
        actor_id = event.acting_user_id
        context = ChangeContext(
            post_id=post.id,
            board_title=board_title,
            actor_name=get_user_name(self.db, actor_id),
        )

        messages = []
        for change in describe_changes(self.db, changes, context):
            messages.append(change.message)
            self.add_feed_pair(
                NewsFeedCategory.WORKED_ON, change.personal,
                NewsFeedCategory.ACTIVITY_ON, change.overview,
                post.id, post.board_id, actor_id, now,
            )
            if change.done:
                self.add_feed_pair(
                    NewsFeedCategory.DONE_THIS_WEEK, change.personal,
                    NewsFeedCategory.DONE_THIS_WEEK, change.overview,
                    post.id, post.board_id, actor_id, now,
                )
        return messages

    def _recipients(self, event: PostEvent, changes: Dict[str, Change]) -> List[int]:
        """
        Assignee, author, watchers and any newly set assignee.

        The acting user only hears about their own change when the post is new,
        when they hand the post over or take it, or when the caller asks for it.
        """
        post = event.current
        assignee_change = changes.get("assignee_id")
        previous_assignee = assignee_change[0] if assignee_change else post.assignee_id
        new_assignee = assignee_change[1] if assignee_change else None

        recipients = unique_ids(
            [previous_assignee, post.author_id, new_assignee],
            get_watcher_ids(self.db, post.id),
        )

        actor_id = event.acting_user_id
        include_self = (
            event.is_new
            or event.notify_self
            or (assignee_change is not None and actor_id in assignee_change)
        )
        if include_self:
            return recipients
        return [user_id for user_id in recipients if user_id != actor_id]
