"""
Grouped notification cache backed by Redis.

Per user:
    notif:u:{user_id}:index          sorted set of post ids, scored by last push time
    notif:u:{user_id}:p:{post_id}    list of JSON payloads, most recent first
    notif:u:{user_id}:p:{post_id}:seen   ISO timestamp the group was last seen

Redis errors are not handled here; callers decide whether to fall back.
"""
from datetime import datetime
from typing import List, Optional
import logging

import redis

from app.core.config import settings
from app.core.timeutils import time_ago, to_epoch, to_naive_utc, utcnow
from app.modules.notifications.schemas.notification import DisplayGroup, Notification

logger = logging.getLogger(__name__)


class GroupedNotificationCache:
    def __init__(self, client: redis.Redis, max_groups: Optional[int] = None):
        self.client = client
        self.max_groups = settings.NOTIFICATION_MAX_CACHED_GROUPS if max_groups is None else max_groups

    def _prefix(self, user_id: int) -> str:
        return f"notif:u:{user_id}"

    def _index_key(self, user_id: int) -> str:
        return f"{self._prefix(user_id)}:index"

    def _group_key(self, user_id: int, post_id) -> str:
        return f"{self._prefix(user_id)}:p:{post_id}"

    def _seen_key(self, user_id: int, post_id) -> str:
        return f"{self._group_key(user_id, post_id)}:seen"

    def push(self, user_id: int, post_id: int, notification: Notification, now: Optional[datetime] = None) -> None:
        """Prepend a notification to its group, mark the group unseen and touch it in the index"""
        now = now or utcnow()
        pipe = self.client.pipeline(transaction=True)
        pipe.lpush(self._group_key(user_id, post_id), notification.model_dump_json())
        pipe.delete(self._seen_key(user_id, post_id))
        pipe.zadd(self._index_key(user_id), {str(post_id): to_epoch(now)})
        pipe.execute()
        self.enforce_limit(user_id)

    def enforce_limit(self, user_id: int) -> List[int]:
        """Evict the least recently touched groups past the cap; returns evicted post ids"""
        index_key = self._index_key(user_id)
        count = self.client.zcard(index_key)
        if count <= self.max_groups:
            return []

        evicted = self.client.zrange(index_key, 0, count - self.max_groups - 1)
        pipe = self.client.pipeline(transaction=True)
        for post_id in evicted:
            pipe.delete(self._group_key(user_id, post_id), self._seen_key(user_id, post_id))
            pipe.zrem(index_key, post_id)
        pipe.execute()
        logger.debug(f"Evicted {len(evicted)} notification group(s) for user {user_id}")
        return [int(post_id) for post_id in evicted]

    def read(self, user_id: int, now: Optional[datetime] = None) -> List[DisplayGroup]:
        """Display groups from the cache, most recently touched first"""
        result = []
        for post_id in self.client.zrevrange(self._index_key(user_id), 0, -1):
            payloads = self.client.lrange(self._group_key(user_id, post_id), 0, -1)
            if not payloads:
                continue
            group = [Notification.model_validate_json(payload) for payload in payloads]
            primary = group[0]

            marker = self.client.get(self._seen_key(user_id, post_id))
            seen_at = to_naive_utc(marker) if marker else primary.seen_at
            seen = seen_at is not None and seen_at >= primary.created_at

            result.append(DisplayGroup(
                id=primary.id,
                post_id=primary.post_id,
                board_id=primary.board_id,
                content=primary.content,
                type=primary.type,
                time=time_ago(primary.created_at, now),
                additional_count=len(group) - 1,
                seen=seen,
                is_mention=primary.is_mention,
                timestamp=primary.created_at,
                raw_group=group,
            ))
        return result

    def is_empty(self, user_id: int) -> bool:
        return self.client.zcard(self._index_key(user_id)) == 0

    def mark_seen(self, user_id: int, post_id: int, when: Optional[datetime] = None) -> None:
        when = when or utcnow()
        self.client.set(self._seen_key(user_id, post_id), when.isoformat())

    def mark_all_seen(self, user_id: int, when: Optional[datetime] = None) -> None:
        when = when or utcnow()
        for post_id in self.client.zrange(self._index_key(user_id), 0, -1):
            self.mark_seen(user_id, post_id, when)

    def clear_user(self, user_id: int) -> None:
        index_key = self._index_key(user_id)
        post_ids = self.client.zrange(index_key, 0, -1)
        pipe = self.client.pipeline(transaction=True)
        for post_id in post_ids:
            pipe.delete(self._group_key(user_id, post_id), self._seen_key(user_id, post_id))
        pipe.delete(index_key)
        pipe.execute()

    def clear_post_group(self, user_id: int, post_id: int) -> None:
        pipe = self.client.pipeline(transaction=True)
        pipe.delete(self._group_key(user_id, post_id), self._seen_key(user_id, post_id))
        pipe.zrem(self._index_key(user_id), str(post_id))
        pipe.execute()

    def prime_from_database(self, user_id: int, groups: List[DisplayGroup]) -> None:
        """
        Rebuild a user's cache from groups computed off the database.

        Everything cached for the user is dropped first. Each post keeps one
        list holding every raw notification of its groups, most recent first,
        scored by its latest notification.
        """
        self.clear_user(user_id)

        by_post = {}
        for group in groups:
            by_post.setdefault(group.post_id, []).extend(group.raw_group)

        pipe = self.client.pipeline(transaction=True)
        for post_id, raw in by_post.items():
            if not raw:
                continue
            ordered = sorted(raw, key=lambda item: item.created_at, reverse=True)
            pipe.rpush(self._group_key(user_id, post_id), *[item.model_dump_json() for item in ordered])
            pipe.zadd(self._index_key(user_id), {str(post_id): to_epoch(ordered[0].created_at)})
        pipe.execute()

        self.enforce_limit(user_id)
