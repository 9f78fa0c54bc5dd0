"""
Fire-and-forget realtime events over Redis pub/sub.

Channels:
    board.{board_id}          a post on the board changed or moved
    notifications.{user_id}   a notification was stored for the user

Publishing never raises; a failed publish is logged and dropped.
"""
import json
import logging
from typing import Optional

import redis

from app.core.config import settings
from app.modules.notifications.schemas.notification import Notification
from app.modules.posts.schemas.post import PostSnapshot

logger = logging.getLogger(__name__)

POST_CHANGED = "post.changed"
NOTIFICATION_RECEIVED = "notification.received"


class RealtimeBroadcaster:
    def __init__(self, client: Optional[redis.Redis], enabled: Optional[bool] = None):
        self.client = client
        self.enabled = settings.REALTIME_ENABLED if enabled is None else enabled

    def _publish(self, channel: str, event: str, payload: dict) -> bool:
        if not self.enabled or self.client is None:
            return False
        try:
            self.client.publish(channel, json.dumps({"event": event, "data": payload}, default=str))
            return True
        except redis.RedisError as e:
            logger.warning(f"Realtime publish to {channel} failed: {e}")
            return False

    def post_changed(self, post: PostSnapshot) -> bool:
        return self._publish(f"board.{post.board_id}", POST_CHANGED, post.model_dump(mode="json"))

    def notification_received(self, notification: Notification) -> bool:
        return self._publish(
            f"notifications.{notification.user_id}",
            NOTIFICATION_RECEIVED,
            notification.model_dump(mode="json"),
        )
