"""
NotificationService tests: dispatch, transaction wiring, read paths
"""

from unittest.mock import MagicMock

import pytest
import redis

from app.core.timeutils import utcnow
from app.modules.news_feed.models.news_feed import NewsFeed
from app.modules.notifications.exceptions import EntityKindMismatchError, UnsupportedEntityError
from app.modules.notifications.models.notification import Notification
from app.modules.notifications.schemas.events import BoardEvent, CommentEvent, PostEvent
from app.modules.notifications.services.notification import NotificationService
from app.modules.notifications.services.parsers.comment import CommentParser
from app.modules.posts.comments.models.comment import Comment
from app.modules.posts.models.post import Post
from tests.helpers import mention, minutes, snapshot_of


@pytest.fixture
def scene(make):
    """A post by Ana assigned to Bo on board Core, commented on by Cy"""
    ana = make.user("Ana")
    bo = make.user("Bo")
    cy = make.user("Cy")
    board = make.board("Core")
    post = make.post(board, ana, assignee_id=bo.id)
    return ana, bo, cy, post


def comment_event(make, post, author, content="<p>hi</p>"):
    comment = make.comment(post, author, content)
    return CommentEvent(comment_id=comment.id, post_id=post.id, content=content, acting_user_id=author.id)


class TestNotifyDispatch:
    """Picking the parser"""

    def test_persists_notifications_and_feed_rows(self, db, make, service, scene):
        ana, bo, cy, post = scene

        rows = service.notify(comment_event(make, post, cy))
        db.commit()

        assert sorted(row.user_id for row in rows) == sorted([ana.id, bo.id])
        assert db.query(Notification).count() == 2
        assert db.query(NewsFeed).count() == 2

    def test_board_event_is_a_no_op(self, db, service):
        assert service.notify(BoardEvent(board_id=1, acting_user_id=1)) == []
        assert db.query(Notification).count() == 0

    def test_unknown_entity_raises(self, service):
        with pytest.raises(UnsupportedEntityError):
            service.notify({"kind": "comment"})

        with pytest.raises(UnsupportedEntityError):
            service.notify(object())

    def test_parser_rejects_mismatched_entity(self, db):
        with pytest.raises(EntityKindMismatchError):
            CommentParser(db).parse(BoardEvent(board_id=1, acting_user_id=1))

    def test_nothing_to_notify_is_not_an_error(self, db, make, service):
        ana = make.user("Ana")
        post = make.post(make.board(), ana)
        assert service.notify(comment_event(make, post, ana)) == []


class TestTransactionWiring:
    """Rows follow the caller's transaction, side effects wait for the commit"""

    def test_rollback_discards_everything(self, db, make, service, realtime, scene):
        ana, bo, cy, post = scene
        event = comment_event(make, post, cy)

        service.notify(event)
        db.rollback()
        db.commit()

        assert db.query(Notification).count() == 0
        assert db.query(NewsFeed).count() == 0
        realtime.notification_received.assert_not_called()

    def test_side_effects_run_after_commit(self, db, make, service, realtime, scene):
        ana, bo, cy, post = scene

        service.notify(comment_event(make, post, cy))
        realtime.notification_received.assert_not_called()

        db.commit()
        assert realtime.notification_received.call_count == 2

    def test_warm_cache_receives_pushes(self, db, make, service, cache, scene, t0):
        ana, bo, cy, post = scene
        other = make.post(make.board("Mobile"), ana, assignee_id=bo.id)
        make.notification(bo, post, t0)
        service.get_grouped_notifications(bo.id)

        service.notify(comment_event(make, other, cy))
        db.commit()

        assert [g.post_id for g in cache.read(bo.id)] == [other.id, post.id]

    def test_cold_cache_is_left_for_the_next_read(self, db, make, service, cache, scene):
        ana, bo, cy, post = scene

        service.notify(comment_event(make, post, cy))
        db.commit()

        assert cache.is_empty(bo.id)
        assert [g.post_id for g in service.get_grouped_notifications(bo.id)] == [post.id]
        assert not cache.is_empty(bo.id)

    def test_post_change_broadcasts_after_commit(self, db, make, service, realtime, scene):
        ana, bo, cy, post = scene
        post.column = "Doing"
        db.flush()

        service.notify(PostEvent(
            acting_user_id=cy.id,
            previous=snapshot_of(post, column="To Do"),
            current=snapshot_of(post),
        ))
        db.commit()

        realtime.post_changed.assert_called_once()
        assert realtime.post_changed.call_args.args[0].column == "Doing"

    def test_cache_failure_does_not_break_commit(self, db, make, realtime, scene):
        ana, bo, cy, post = scene
        broken = MagicMock()
        broken.is_empty.side_effect = redis.ConnectionError("down")
        service = NotificationService(db, cache=broken, realtime=realtime)

        service.notify(comment_event(make, post, cy))
        db.commit()

        assert db.query(Notification).count() == 2
        assert realtime.notification_received.call_count == 2

    def test_cache_outage_still_broadcasts_post_change(self, db, make, realtime, scene):
        ana, bo, cy, post = scene
        broken = MagicMock()
        broken.is_empty.side_effect = redis.ConnectionError("down")
        service = NotificationService(db, cache=broken, realtime=realtime)
        post.title = "Fix login flow"
        db.flush()

        service.notify(PostEvent(
            acting_user_id=cy.id,
            previous=snapshot_of(post, title="Fix login"),
            current=snapshot_of(post),
        ))
        db.commit()

        assert realtime.notification_received.call_count == 2
        realtime.post_changed.assert_called_once()


class TestMentionMarking:
    """Consumed mentions are flagged in the stored rich text"""

    def test_comment_mentions_are_flagged(self, db, make, service, scene):
        ana, bo, cy, post = scene
        content = f"<p>{mention(ana.id, 'Ana')} {mention(9999, 'Ghost')}</p>"
        event = comment_event(make, post, cy, content)

        service.notify(event)
        db.commit()

        stored = db.query(Comment).filter(Comment.id == event.comment_id).one().content
        assert stored.count('data-notified="1"') == 1

        # Re-notifying the stored content does not mention Ana again
        again = service.notify(CommentEvent(
            comment_id=event.comment_id, post_id=post.id, content=stored, acting_user_id=cy.id,
        ))
        assert not any(row.is_mention for row in again)

    def test_post_description_mentions_are_flagged(self, db, make, service, scene):
        ana, bo, cy, post = scene
        post.desc = f"<p>{mention(cy.id, 'Cy')}</p>"
        db.flush()

        service.notify(PostEvent(
            acting_user_id=ana.id,
            previous=snapshot_of(post, desc=""),
            current=snapshot_of(post),
        ))
        db.commit()

        assert 'data-notified="1"' in db.get(Post, post.id).desc


class TestGroupedRead:
    """get_grouped_notifications"""

    def test_groups_from_database_then_primes(self, db, make, service, cache, scene, t0):
        ana, bo, cy, post = scene
        make.notification(bo, post, t0, content="first")
        make.notification(bo, post, t0 + minutes(2), content="second")
        make.notification(bo, post, t0 + minutes(30), content="third")

        groups = service.get_grouped_notifications(bo.id)

        assert [(g.content, g.additional_count) for g in groups] == [("third", 0), ("first", 1)]
        assert not cache.is_empty(bo.id)

    def test_reads_cache_when_warm(self, db, make, service, cache, scene, t0):
        ana, bo, cy, post = scene
        make.notification(bo, post, t0)
        service.get_grouped_notifications(bo.id)

        db.query(Notification).delete()
        db.commit()

        assert len(service.get_grouped_notifications(bo.id)) == 1

    def test_only_latest_rows_are_grouped(self, db, make, service, scene, t0, monkeypatch):
        from app.core.config import settings
        monkeypatch.setattr(settings, "NOTIFICATION_FETCH_LIMIT", 3)
        ana, bo, cy, post = scene
        for i in range(6):
            make.notification(bo, post, t0 + minutes(i * 10), content=f"n{i}")

        groups = service.get_grouped_notifications(bo.id)

        assert [g.content for g in groups] == ["n5", "n4", "n3"]

    def test_falls_back_to_database_when_cache_is_down(self, db, make, realtime, scene, t0):
        ana, bo, cy, post = scene
        make.notification(bo, post, t0)
        broken = MagicMock()
        broken.read.side_effect = redis.ConnectionError("down")
        service = NotificationService(db, cache=broken, realtime=realtime)

        groups = service.get_grouped_notifications(bo.id)

        assert len(groups) == 1
        broken.prime_from_database.assert_not_called()


class TestSeenState:
    """Unseen count and mark-all-seen"""

    def test_mark_all_seen(self, db, make, service, cache, scene, t0):
        ana, bo, cy, post = scene
        make.notification(bo, post, t0)
        make.notification(bo, post, t0 + minutes(30))
        make.notification(ana, post, t0)
        service.get_grouped_notifications(bo.id)

        assert service.unseen_count(bo.id) == 2
        assert service.mark_all_seen(bo.id) == 2
        db.commit()

        assert service.unseen_count(bo.id) == 0
        assert service.unseen_count(ana.id) == 1
        assert all(g.seen for g in cache.read(bo.id))

    def test_mark_group_seen(self, db, make, service, scene, t0):
        ana, bo, cy, post = scene
        other = make.post(make.board(), ana)
        make.notification(bo, post, t0)
        make.notification(bo, other, t0)

        assert service.mark_group_seen(bo.id, post.id) == 1
        db.commit()
        assert service.unseen_count(bo.id) == 1


class TestActivityHistory:
    """Per-post activity log"""

    def test_collapses_copies_and_skips_mentions(self, db, make, service, scene):
        ana, bo, cy, post = scene
        at = utcnow().replace(second=10, microsecond=0)
        make.notification(ana, post, at, content="Cy commented on post", created_by=cy.id)
        make.notification(bo, post, at, content="Cy commented on post", created_by=cy.id)
        make.notification(bo, post, at + minutes(3), content="Title changed", created_by=ana.id)
        make.notification(bo, post, at, content="You were mentioned", created_by=cy.id, is_mention=True)

        history = service.get_activity_history(post.id)

        assert [(h.content, h.created_by) for h in history] == [
            ("Title changed", "Ana"),
            ("Cy commented on post", "Cy"),
        ]
