from datetime import datetime
import logging

from app.modules.news_feed.enums import NewsFeedCategory
from app.modules.notifications.enums import NotificationType
from app.modules.notifications.schemas.events import LinkedIssueEvent
from app.modules.notifications.services.parsers.base import (
    NotificationParser,
    ParseResult,
    fan_out,
    unique_ids,
)
from app.modules.posts.services.post import get_posts_by_ids, get_watcher_ids
from app.modules.user_management.services.user import get_user_name

logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
DELETED = "deleted"

_TEMPLATES = {
    CREATED: "linked post #{related_id} - {related_title} to #{origin_id} - {origin_title}",
    UPDATED: "updated link between post #{related_id} - {related_title} and #{origin_id} - {origin_title}",
    DELETED: "removed link between post #{related_id} - {related_title} and #{origin_id} - {origin_title}",
}


def link_action(event: LinkedIssueEvent) -> str:
    if event.was_recently_created:
        return CREATED
    if not event.exists:
        return DELETED
    return UPDATED


class LinkedIssueParser(NotificationParser):
    """Notify everyone involved in either linked post"""

    kind = "linked_issue"
    entity_type = LinkedIssueEvent

    def build(self, event: LinkedIssueEvent, now: datetime) -> ParseResult:
        if event.origin_post_id is None and event.related_post_id is None:
            return ParseResult()

        posts = get_posts_by_ids(self.db, [event.origin_post_id, event.related_post_id])
        origin = posts.get(event.origin_post_id)
        related = posts.get(event.related_post_id)
        if origin is None or related is None:
            logger.warning(
                f"Link {event.link_id} between posts {event.origin_post_id} and "
                f"{event.related_post_id} references a missing post"
            )
            return ParseResult()

        action = link_action(event)
        linker_name = get_user_name(self.db, event.linked_by, default="Unknown User")
        text = _TEMPLATES[action].format(
            related_id=related.id,
            related_title=related.title,
            origin_id=origin.id,
            origin_title=origin.title,
        )
        content = f"{linker_name} {text}"

        self.add_feed_pair(
            NewsFeedCategory.WORKED_ON, f"You {text}",
            NewsFeedCategory.ACTIVITY_ON, content,
            origin.id, origin.board_id, event.acting_user_id, now,
        )

        recipients = unique_ids(
            [
                event.linked_by,
                related.assignee_id,
                related.author_id,
                origin.assignee_id,
                origin.author_id,
            ],
            get_watcher_ids(self.db, origin.id),
        )
        return ParseResult(notifications=fan_out(
            recipients,
            [content],
            NotificationType.LINKED_ISSUE,
            origin.id,
            origin.board_id,
            event.acting_user_id,
            now,
        ))
