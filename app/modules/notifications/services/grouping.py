"""
Grouping of a user's notification history into display entries.

Consecutive notifications on the same post collapse into one entry while the
gap to the previous member stays within the window.
"""
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from app.core.config import settings
from app.core.timeutils import time_ago
from app.modules.notifications.schemas.notification import DisplayGroup, Notification


def group_notifications(
    notifications: Sequence[Notification],
    window_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[DisplayGroup]:
    """
    Group chronologically ascending notifications per post.

    Args:
        notifications: Oldest first
        window_minutes: Largest gap allowed inside one group
        now: Reference time for the relative ``time`` label

    Returns:
        Display groups, most recent group first
    """
    window = timedelta(
        minutes=settings.NOTIFICATION_GROUPING_INTERVAL if window_minutes is None else window_minutes
    )

    finished: List[List[Notification]] = []
    open_groups: Dict[int, List[Notification]] = {}
    for notification in notifications:
        group = open_groups.get(notification.post_id)
        if group is not None and notification.created_at - group[-1].created_at <= window:
            group.append(notification)
            continue
        if group is not None:
            finished.append(group)
        open_groups[notification.post_id] = [notification]
    finished.extend(open_groups.values())

    display = [to_display_group(group, now) for group in finished]
    # sorted() is stable, equal timestamps keep their input order
    return sorted(display, key=lambda group: group.timestamp, reverse=True)


def to_display_group(group: List[Notification], now: Optional[datetime] = None) -> DisplayGroup:
    first = group[0]
    return DisplayGroup(
        id=first.id,
        post_id=first.post_id,
        board_id=first.board_id,
        content=first.content,
        type=first.type,
        time=time_ago(first.created_at, now),
        additional_count=len(group) - 1,
        seen=first.seen_at is not None,
        is_mention=first.is_mention,
        timestamp=first.created_at,
        raw_group=list(group),
    )
