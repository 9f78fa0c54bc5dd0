"""Small builders shared by the test modules"""

from datetime import timedelta

from app.modules.posts.schemas.post import PostSnapshot
from app.modules.posts.services.post import snapshot


def minutes(value: float) -> timedelta:
    return timedelta(minutes=value)


def mention(user_id, label: str, notified: bool = False) -> str:
    flag = ' data-notified="1"' if notified else ""
    return f'<span data-type="mention" data-id="{user_id}" data-label="{label}"{flag}>@{label}</span>'


def snapshot_of(post, **changes) -> PostSnapshot:
    """Snapshot of a post row with some fields overridden"""
    return snapshot(post).model_copy(update=changes)
