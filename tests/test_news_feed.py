"""
News feed aggregation tests
"""

from datetime import date, datetime, timedelta

import pytest

from app.core.timeutils import utcnow
from app.modules.linked_issues.models.linked_issue import LinkedIssue
from app.modules.news_feed.enums import NewsFeedCategory, NewsFeedMode
from app.modules.news_feed.services.feed import (
    FeedBatch,
    get_feed,
    make_feed_row,
    write_feed_rows,
)

PERSONAL_KEYS = {"worked_on", "tagged_in", "commented_on", "created", "generated_branches", "done_this_week"}
OVERVIEW_KEYS = {"activity_on", "upcoming_deadlines", "blocked", "generated_branches", "done_this_week"}


@pytest.fixture
def board_scene(make):
    ana = make.user("Ana")
    bo = make.user("Bo")
    board = make.board("Core")
    return ana, bo, board


def add_rows(db, *rows):
    write_feed_rows(db, list(rows))
    db.commit()


def test_make_feed_row_drops_viewer_on_overview():
    row = make_feed_row(NewsFeedMode.OVERVIEW, NewsFeedCategory.ACTIVITY_ON, "x", 1, 2, viewer_id=7, actor_id=3)
    assert row.viewer_user_id is None
    assert row.mode == "overview"

    row = make_feed_row(NewsFeedMode.PERSONAL, NewsFeedCategory.WORKED_ON, "x", 1, 2, viewer_id=7, actor_id=3)
    assert row.viewer_user_id == 7


def test_feed_batch_drain_empties_the_batch():
    batch = FeedBatch()
    batch.add(make_feed_row(NewsFeedMode.OVERVIEW, NewsFeedCategory.ACTIVITY_ON, "x", 1, 2, None, 3))
    assert len(batch) == 1
    assert len(batch.drain()) == 1
    assert len(batch) == 0


def test_empty_board_has_every_category(db, board_scene):
    ana, bo, board = board_scene

    feed = get_feed(db, board.id, acting_user_id=ana.id)

    assert set(feed.personal) == PERSONAL_KEYS
    assert set(feed.overview) == OVERVIEW_KEYS
    assert all(value == {} for value in feed.personal.values())
    assert all(value == {} for value in feed.overview.values())


def test_rows_group_by_category_and_title(db, make, board_scene):
    ana, bo, board = board_scene
    post = make.post(board, ana, title="Fix login")
    now = utcnow()
    add_rows(
        db,
        make_feed_row(NewsFeedMode.PERSONAL, NewsFeedCategory.WORKED_ON, "first", post.id, board.id, ana.id, ana.id, now - timedelta(seconds=5)),
        make_feed_row(NewsFeedMode.PERSONAL, NewsFeedCategory.WORKED_ON, "second", post.id, board.id, ana.id, ana.id, now),
        make_feed_row(NewsFeedMode.OVERVIEW, NewsFeedCategory.ACTIVITY_ON, "Ana did it", post.id, board.id, None, ana.id, now),
    )

    feed = get_feed(db, board.id, date_from=now.date() - timedelta(days=1), acting_user_id=ana.id)

    entry = feed.personal["worked_on"]["Fix login"]
    assert entry.id == post.id
    assert entry.notifications == ["second", "first"]
    assert feed.overview["activity_on"]["Fix login"].notifications == ["Ana did it"]


def test_personal_feed_is_filtered_by_viewer(db, make, board_scene):
    ana, bo, board = board_scene
    post = make.post(board, ana)
    add_rows(
        db,
        make_feed_row(NewsFeedMode.PERSONAL, NewsFeedCategory.WORKED_ON, "mine", post.id, board.id, ana.id, ana.id),
        make_feed_row(NewsFeedMode.PERSONAL, NewsFeedCategory.WORKED_ON, "theirs", post.id, board.id, bo.id, bo.id),
    )

    own = get_feed(db, board.id, acting_user_id=ana.id)
    other = get_feed(db, board.id, viewer_user_id=bo.id, acting_user_id=ana.id)

    assert own.personal["worked_on"]["Fix login"].notifications == ["mine"]
    assert other.personal["worked_on"]["Fix login"].notifications == ["theirs"]


def test_no_viewer_means_empty_personal_feed(db, make, board_scene):
    ana, bo, board = board_scene
    post = make.post(board, ana)
    add_rows(
        db,
        make_feed_row(NewsFeedMode.PERSONAL, NewsFeedCategory.WORKED_ON, "mine", post.id, board.id, ana.id, ana.id),
        make_feed_row(NewsFeedMode.OVERVIEW, NewsFeedCategory.ACTIVITY_ON, "Ana did it", post.id, board.id, None, ana.id),
    )

    feed = get_feed(db, board.id)

    assert set(feed.personal) == PERSONAL_KEYS
    assert all(value == {} for value in feed.personal.values())
    assert feed.overview["activity_on"]["Fix login"].notifications == ["Ana did it"]


def test_date_range_is_inclusive_by_day(db, make, board_scene):
    ana, bo, board = board_scene
    post = make.post(board, ana)
    add_rows(
        db,
        make_feed_row(NewsFeedMode.OVERVIEW, NewsFeedCategory.ACTIVITY_ON, "monday", post.id, board.id, None, ana.id, datetime(2026, 3, 2, 23, 59)),
        make_feed_row(NewsFeedMode.OVERVIEW, NewsFeedCategory.ACTIVITY_ON, "tuesday", post.id, board.id, None, ana.id, datetime(2026, 3, 3, 0, 0)),
    )

    monday = get_feed(db, board.id, date_from=date(2026, 3, 2), date_to=date(2026, 3, 2))
    both = get_feed(db, board.id, date_from=date(2026, 3, 2), date_to=date(2026, 3, 3))

    assert monday.overview["activity_on"]["Fix login"].notifications == ["monday"]
    assert both.overview["activity_on"]["Fix login"].notifications == ["tuesday", "monday"]


def test_missing_post_falls_back_to_untitled(db, make, board_scene):
    ana, bo, board = board_scene
    post = make.post(board, ana, deadline=date(2026, 4, 1))
    add_rows(db, make_feed_row(NewsFeedMode.OVERVIEW, NewsFeedCategory.ACTIVITY_ON, "gone", post.id, board.id, None, ana.id))
    db.delete(post)
    db.commit()

    entry = get_feed(db, board.id).overview["activity_on"]["Untitled"]

    assert entry.notifications == ["gone"]
    assert entry.deadline is None


def test_other_boards_are_ignored(db, make, board_scene):
    ana, bo, board = board_scene
    elsewhere = make.board("Mobile")
    post = make.post(elsewhere, ana)
    add_rows(db, make_feed_row(NewsFeedMode.OVERVIEW, NewsFeedCategory.ACTIVITY_ON, "x", post.id, elsewhere.id, None, ana.id))

    assert get_feed(db, board.id).overview["activity_on"] == {}


def test_upcoming_deadlines_are_ordered(db, make, board_scene):
    ana, bo, board = board_scene
    late = make.post(board, ana, title="Late", deadline=date(2026, 5, 1))
    soon = make.post(board, ana, title="Soon", deadline=date(2026, 4, 1))
    none = make.post(board, ana, title="Whenever")
    add_rows(db, *[
        make_feed_row(NewsFeedMode.OVERVIEW, NewsFeedCategory.ACTIVITY_ON, "x", post.id, board.id, None, ana.id)
        for post in (late, soon, none)
    ])

    upcoming = get_feed(db, board.id).overview["upcoming_deadlines"]

    assert list(upcoming) == ["Soon", "Late"]
    assert upcoming["Soon"].deadline == date(2026, 4, 1)
    assert upcoming["Soon"].notifications == []


def test_blocked_posts_are_listed(db, make, board_scene):
    ana, bo, board = board_scene
    blocked = make.post(board, ana, title="Waiting")
    blocker = make.post(board, ana, title="Blocker")
    db.add_all([
        LinkedIssue(link_type="blocked by", origin_post_id=blocked.id, related_post_id=blocker.id, user_id=ana.id),
        LinkedIssue(link_type="blocks", origin_post_id=blocker.id, related_post_id=blocked.id, user_id=ana.id),
    ])
    db.commit()

    feed = get_feed(db, board.id)

    assert list(feed.overview["blocked"]) == ["Waiting"]
    assert feed.overview["blocked"]["Waiting"].id == blocked.id


def test_parsers_feed_the_aggregator(db, make, service, board_scene):
    """A comment shows up in the commenter's personal feed and the overview"""
    from app.modules.notifications.schemas.events import CommentEvent

    ana, bo, board = board_scene
    post = make.post(board, ana, assignee_id=bo.id)
    comment = make.comment(post, bo, "<p>done</p>")
    service.notify(CommentEvent(comment_id=comment.id, post_id=post.id, content=comment.content, acting_user_id=bo.id))
    db.commit()

    feed = get_feed(db, board.id, acting_user_id=bo.id)

    assert feed.personal["commented_on"]["Fix login"].notifications == [f"You commented on post #{post.id}"]
    assert feed.overview["activity_on"]["Fix login"].notifications == [f"Bo commented on post #{post.id}"]
