import json
from unittest.mock import MagicMock

import redis

from app.core.timeutils import utcnow
from app.modules.notifications.schemas.notification import Notification
from app.modules.notifications.services.realtime import RealtimeBroadcaster
from app.modules.posts.schemas.post import PostSnapshot


def make_notification(**fields):
    now = utcnow()
    values = dict(
        id=1, user_id=7, created_by=3, type="comment", content="Cy commented on post #4",
        post_id=4, board_id=2, is_mention=False, seen_at=None, created_at=now, updated_at=now,
    )
    values.update(fields)
    return Notification(**values)


def test_notification_is_published_on_the_user_channel(redis_client):
    pubsub = redis_client.pubsub()
    pubsub.subscribe("notifications.7")
    pubsub.get_message(timeout=1)  # subscribe confirmation

    assert RealtimeBroadcaster(redis_client, enabled=True).notification_received(make_notification())

    message = pubsub.get_message(timeout=1)
    body = json.loads(message["data"])
    assert body["event"] == "notification.received"
    assert body["data"]["content"] == "Cy commented on post #4"


def test_post_change_goes_to_the_board_channel():
    client = MagicMock()
    post = PostSnapshot(id=4, title="Fix login", desc="", column="Doing", board_id=2, author_id=1)

    RealtimeBroadcaster(client, enabled=True).post_changed(post)

    channel, payload = client.publish.call_args.args
    assert channel == "board.2"
    assert json.loads(payload)["data"]["column"] == "Doing"


def test_disabled_broadcaster_publishes_nothing():
    client = MagicMock()
    assert not RealtimeBroadcaster(client, enabled=False).notification_received(make_notification())
    client.publish.assert_not_called()


def test_publish_failure_is_swallowed():
    client = MagicMock()
    client.publish.side_effect = redis.ConnectionError("down")

    assert not RealtimeBroadcaster(client, enabled=True).notification_received(make_notification())
