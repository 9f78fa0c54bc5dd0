"""
News feed service.
Builds and writes categorized feed rows, and aggregates them per board into
the personal and overview feeds.
"""
from typing import Dict, List, Optional, Union
from datetime import date, datetime
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.timeutils import end_of_day, start_of_day, utcnow
from app.modules.linked_issues.enums import LinkType
from app.modules.linked_issues.models.linked_issue import LinkedIssue
from app.modules.news_feed.enums import (
    NewsFeedCategory,
    NewsFeedMode,
    OVERVIEW_CATEGORIES,
    PERSONAL_CATEGORIES,
)
from app.modules.news_feed.models.news_feed import NewsFeed
from app.modules.news_feed.schemas.feed import FeedPost, FeedResponse, NewsFeedCreate
from app.modules.posts.models.post import Post
from app.modules.posts.services.post import get_posts_by_ids

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"


def make_feed_row(
    mode: NewsFeedMode,
    category: NewsFeedCategory,
    content: str,
    post_id: int,
    board_id: int,
    viewer_id: Optional[int],
    actor_id: Optional[int],
    now: Optional[datetime] = None,
) -> NewsFeedCreate:
    """Build a feed row for a post; overview rows never carry a viewer"""
    now = now or utcnow()
    return NewsFeedCreate(
        mode=mode,
        category=category,
        content=content,
        post_id=post_id,
        board_id=board_id,
        viewer_user_id=viewer_id if mode == NewsFeedMode.PERSONAL else None,
        actor_user_id=actor_id,
        created_at=now,
        updated_at=now,
    )


class FeedBatch:
    """Pending feed rows collected while parsing one mutation"""

    def __init__(self):
        self._rows: List[NewsFeedCreate] = []

    def add(self, row: NewsFeedCreate) -> None:
        self._rows.append(row)

    @property
    def rows(self) -> List[NewsFeedCreate]:
        return list(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def drain(self) -> List[NewsFeedCreate]:
        rows, self._rows = self._rows, []
        return rows


def write_feed_rows(db: Session, rows: List[NewsFeedCreate]) -> List[NewsFeed]:
    """Add feed rows to the session; the caller owns the commit"""
    if not rows:
        return []
    models = [NewsFeed(**row.model_dump()) for row in rows]
    db.add_all(models)
    db.flush()
    return models


def get_feed(
    db: Session,
    board_id: int,
    viewer_user_id: Optional[int] = None,
    date_from: Optional[Union[date, datetime]] = None,
    date_to: Optional[Union[date, datetime]] = None,
    acting_user_id: Optional[int] = None,
) -> FeedResponse:
    """
    Aggregate a board's feed rows into personal and overview feeds.

    Args:
        db: Database session
        board_id: Board to read
        viewer_user_id: Whose personal feed to build, defaults to acting_user_id
        date_from: First day included (start of day, UTC), defaults to today
        date_to: Last day included (end of day, UTC), defaults to today
        acting_user_id: The authenticated user

    Returns:
        FeedResponse where every expected category key is present
    """
    today = utcnow().date()
    range_start = start_of_day(date_from or today)
    range_end = end_of_day(date_to or today)

    base_query = (
        db.query(NewsFeed)
        .filter(NewsFeed.board_id == board_id)
        .filter(NewsFeed.created_at.between(range_start, range_end))
        .order_by(NewsFeed.created_at.desc(), NewsFeed.id.desc())
    )

    # Without a viewer there is nobody to build a personal feed for
    viewer = viewer_user_id or acting_user_id
    personal_rows = []
    if viewer:
        personal_rows = (
            base_query
            .filter(NewsFeed.mode == NewsFeedMode.PERSONAL.value, NewsFeed.viewer_user_id == viewer)
            .all()
        )

    overview_rows = base_query.filter(NewsFeed.mode == NewsFeedMode.OVERVIEW.value).all()

    posts = get_posts_by_ids(db, [row.post_id for row in personal_rows + overview_rows])

    personal_feed = _group_feed_rows(personal_rows, posts)
    overview_feed = _group_feed_rows(overview_rows, posts)

    upcoming = {}
    for post in sorted(
        (post for post in posts.values() if post.deadline is not None),
        key=lambda post: (post.deadline, post.id),
    ):
        upcoming[post.title] = FeedPost(id=post.id, deadline=post.deadline)
    overview_feed[NewsFeedCategory.UPCOMING_DEADLINES.value] = upcoming

    blocked = overview_feed.setdefault(NewsFeedCategory.BLOCKED.value, {})
    for post in _get_blocked_posts(db, board_id):
        blocked[post.title] = FeedPost(id=post.id, deadline=post.deadline)

    return FeedResponse(
        personal=_normalize_feed(personal_feed, PERSONAL_CATEGORIES),
        overview=_normalize_feed(overview_feed, OVERVIEW_CATEGORIES),
    )


def _group_feed_rows(rows: List[NewsFeed], posts: Dict[int, Post]) -> Dict[str, Dict[str, FeedPost]]:
    """Group rows by category, then by post title, keeping query order"""
    result: Dict[str, Dict[str, FeedPost]] = {}
    for row in rows:
        by_title = result.setdefault(row.category, {})
        post = posts.get(row.post_id)
        title = post.title if post else UNTITLED
        entry = by_title.get(title)
        if entry is None:
            entry = FeedPost(
                id=row.post_id,
                deadline=post.deadline if post else None,
            )
            by_title[title] = entry
        entry.notifications.append(row.content)
    return result


def _get_blocked_posts(db: Session, board_id: int) -> List[Post]:
    blocked_ids = select(LinkedIssue.origin_post_id).where(
        LinkedIssue.link_type == LinkType.BLOCKED_BY.value
    )
    return (
        db.query(Post)
        .filter(Post.board_id == board_id, Post.id.in_(blocked_ids))
        .order_by(Post.title, Post.id)
        .all()
    )


def _normalize_feed(
    feed: Dict[str, Dict[str, FeedPost]],
    expected: List[NewsFeedCategory],
) -> Dict[str, Dict[str, FeedPost]]:
    """Guarantee every expected category key is present, possibly empty"""
    return {category.value: feed.get(category.value, {}) for category in expected}
