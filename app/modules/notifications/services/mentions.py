"""
Mention extraction from rich-text HTML.

The editor renders a mention as
``<span data-type="mention" data-id="7" data-label="Ana">@Ana</span>``.
Once a mention has produced a notification the span gets ``data-notified="1"``
so re-saving the same content does not notify again.
"""
from typing import Iterable, List, NamedTuple, Optional
from datetime import datetime
import logging

from bs4 import BeautifulSoup
from sqlalchemy.orm import Session

from app.core.timeutils import utcnow
from app.modules.news_feed.enums import NewsFeedCategory, NewsFeedMode
from app.modules.news_feed.services.feed import FeedBatch, make_feed_row
from app.modules.notifications.enums import NotificationType
from app.modules.notifications.schemas.notification import NotificationCreate
from app.modules.user_management.services.user import get_existing_user_ids, get_user_name

logger = logging.getLogger(__name__)

NOTIFIED_ATTR = "data-notified"


class MentionResult(NamedTuple):
    notifications: List[NotificationCreate]
    notified_labels: List[str]
    notified_user_ids: List[int]


def _mention_spans(soup: BeautifulSoup):
    return soup.find_all("span", attrs={"data-type": "mention"})


def _is_notified(span) -> bool:
    value = span.get(NOTIFIED_ATTR)
    return value is not None and value.strip().lower() not in ("0", "false")


def _user_id(span) -> Optional[int]:
    raw = (span.get("data-id") or "").strip()
    if not (raw.isascii() and raw.isdigit()):
        return None
    user_id = int(raw)
    return user_id if user_id > 0 else None


def extract_pending_mentions(content: str) -> List[tuple]:
    """
    List (user_id, label) pairs for mentions that have not been notified yet.

    Document order is kept and a user mentioned twice only appears once.
    """
    if not content:
        return []

    soup = BeautifulSoup(content, "html.parser")
    mentions = {}
    for span in _mention_spans(soup):
        if _is_notified(span):
            continue
        user_id = _user_id(span)
        label = (span.get("data-label") or "").strip()
        if user_id is None or not label:
            continue
        mentions.setdefault(user_id, label)
    return list(mentions.items())


def parse_mentions(
    db: Session,
    content: str,
    notification_type: NotificationType,
    post_id: int,
    acting_user_id: Optional[int],
    board_id: Optional[int] = None,
    context_label: Optional[str] = None,
    feed: Optional[FeedBatch] = None,
    now: Optional[datetime] = None,
) -> MentionResult:
    """
    Build one mention notification per existing, not yet notified, mentioned user.

    Args:
        db: Database session
        content: Rich-text HTML to scan
        notification_type: Type stamped on the notifications
        post_id: Post the mentions belong to
        acting_user_id: The user who wrote the content
        board_id: Board of the post
        context_label: Where the mention happened, e.g. "#12: Fix login (Core)"
        feed: Pending feed batch to append tagged_in/activity_on rows to
        now: Timestamp for the generated rows

    Returns:
        MentionResult, empty when nothing qualifies
    """
    pending = extract_pending_mentions(content)
    if not pending:
        return MentionResult([], [], [])

    existing = set(get_existing_user_ids(db, [user_id for user_id, _ in pending]))
    dropped = [user_id for user_id, _ in pending if user_id not in existing]
    if dropped:
        logger.debug(f"Ignoring mentions of unknown users {dropped} on post {post_id}")

    now = now or utcnow()
    where = context_label or NotificationType(notification_type).value
    actor_name = get_user_name(db, acting_user_id)

    notifications = []
    labels = []
    user_ids = []
    for user_id, label in pending:
        if user_id not in existing:
            continue
        content_text = f"You were mentioned in {where}"
        notifications.append(NotificationCreate(
            created_by=acting_user_id,
            type=notification_type,
            content=content_text,
            post_id=post_id,
            board_id=board_id,
            user_id=user_id,
            is_mention=True,
            created_at=now,
            updated_at=now,
        ))
        labels.append(label)
        user_ids.append(user_id)

        if feed is not None and board_id is not None:
            feed.add(make_feed_row(
                NewsFeedMode.PERSONAL, NewsFeedCategory.TAGGED_IN, content_text,
                post_id, board_id, user_id, acting_user_id, now,
            ))
            feed.add(make_feed_row(
                NewsFeedMode.OVERVIEW, NewsFeedCategory.ACTIVITY_ON,
                f"{actor_name} mentioned {label} in #{post_id}",
                post_id, board_id, None, acting_user_id, now,
            ))

    return MentionResult(notifications, labels, user_ids)


def mark_mentions_as_notified(html: str, notified_user_ids: Iterable[int]) -> str:
    """Flag the mention spans of the given users with data-notified="1"."""
    if not html:
        return ""

    targets = set(notified_user_ids)
    if not targets:
        return html

    soup = BeautifulSoup(html, "html.parser")
    for span in _mention_spans(soup):
        if _is_notified(span):
            continue
        if _user_id(span) in targets:
            span[NOTIFIED_ATTR] = "1"
    return str(soup)
