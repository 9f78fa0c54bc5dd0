from datetime import datetime
from typing import Optional
import logging

from app.core.config import settings
from app.modules.boards.services.board import get_board_title
from app.modules.branch_queue.enums import BranchQueueOutcome
from app.modules.news_feed.enums import NewsFeedCategory
from app.modules.notifications.enums import NotificationType
from app.modules.notifications.schemas.events import QueueEvent
from app.modules.notifications.services.parsers.base import (
    NotificationParser,
    ParseResult,
    fan_out,
    unique_ids,
)
from app.modules.posts.services.post import get_post, get_watcher_ids, shorten_title
from app.modules.user_management.services.user import get_user_name

logger = logging.getLogger(__name__)

SUBMITTED = "submitted"
MAX_RETRIES_FAILED = "max_retries_failed"
OUTCOME_SUCCESS = "outcome_success"
OUTCOME_FAILED = "outcome_failed"

RETRY_HINT = (
    "Reached the maximum number of retry attempts. "
    "Try splitting the issue into smaller parts and try again."
)


def classify_queue_event(event: QueueEvent, max_retries: Optional[int] = None) -> Optional[str]:
    """Name the queue transition, or None when it is not worth a notification"""
    max_retries = settings.BRANCH_QUEUE_MAX_RETRIES if max_retries is None else max_retries
    previous = event.previous
    if previous is None or previous == event.current:
        return SUBMITTED

    # Retry bookkeeping and re-queues (outcome cleared) stay silent
    if previous.outcome == event.current.outcome or event.current.outcome is None:
        return None

    if (
        event.current.retries >= max_retries
        and event.current.outcome == BranchQueueOutcome.FAILURE.value
    ):
        return MAX_RETRIES_FAILED
    if event.current.outcome == BranchQueueOutcome.SUCCESS.value:
        return OUTCOME_SUCCESS
    return OUTCOME_FAILED


class BranchQueueParser(NotificationParser):
    """Notify about branch generation requests and their outcome"""

    kind = "branch"
    entity_type = QueueEvent

    def build(self, event: QueueEvent, now: datetime) -> ParseResult:
        transition = classify_queue_event(event)
        if transition is None:
            return ParseResult()

        post = get_post(self.db, event.post_id)
        if post is None:
            logger.warning(f"Branch queue entry {event.queue_id} references missing post {event.post_id}")
            return ParseResult()

        title = shorten_title(post.title)
        board = get_board_title(self.db, post.board_id)
        actor_name = get_user_name(self.db, event.acting_user_id)
        where = f"post #{post.id}: {title}"

        if transition == SUBMITTED:
            message = f"{actor_name} submitted branch generation on {where} ({board})"
            personal = f"You submitted branch generation on {where}"
            overview = f"{actor_name} submitted branch generation on {where}"
        elif transition == MAX_RETRIES_FAILED:
            message = f"Branch generation failed on {where} ({board}). {RETRY_HINT}"
            personal = overview = f"Branch generation failed on {where}. {RETRY_HINT}"
        elif transition == OUTCOME_SUCCESS:
            message = f"Branch creation successful on {where} ({board})"
            personal = overview = f"Branch creation successful on {where}"
        else:
            message = f"Branch creation failed on {where} ({board})"
            personal = overview = f"Branch creation failed on {where}"

        self.add_feed_pair(
            NewsFeedCategory.GENERATED_BRANCHES, personal,
            NewsFeedCategory.GENERATED_BRANCHES, overview,
            post.id, post.board_id, event.acting_user_id, now,
        )

        recipients = unique_ids([post.assignee_id, event.user_id], get_watcher_ids(self.db, post.id))
        return ParseResult(notifications=fan_out(
            recipients,
            [message],
            NotificationType.BRANCH,
            post.id,
            post.board_id,
            event.user_id,
            now,
        ))
