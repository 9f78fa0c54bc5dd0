"""
Shared fixtures: in-memory SQLite session, in-memory Redis and row factories.
"""

import os

# Configure the app for tests before any app module reads settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("REALTIME_ENABLED", "true")

from datetime import datetime
from typing import Optional
from unittest.mock import MagicMock

import fakeredis
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.timeutils import utcnow
from app.db.session import Base
from app.db import base  # noqa: F401
from app.modules.boards.models.board import Board
from app.modules.notifications.models.notification import Notification
from app.modules.notifications.services.cache import GroupedNotificationCache
from app.modules.notifications.services.notification import NotificationService
from app.modules.notifications.services.realtime import RealtimeBroadcaster
from app.modules.posts.comments.models.comment import Comment
from app.modules.posts.models.post import Post, PostWatcher
from app.modules.user_management.models.user import User

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    """A fresh schema per test"""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def redis_client():
    client = fakeredis.FakeRedis(decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture
def cache(redis_client):
    return GroupedNotificationCache(redis_client)


@pytest.fixture
def realtime():
    broadcaster = MagicMock(spec=RealtimeBroadcaster)
    return broadcaster


@pytest.fixture
def service(db, cache, realtime):
    return NotificationService(db, cache=cache, realtime=realtime)


class Factory:
    """Builds committed rows with sensible defaults"""

    def __init__(self, db):
        self.db = db

    def _save(self, row):
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def user(self, name: str, user_id: Optional[int] = None) -> User:
        return self._save(User(id=user_id, name=name, email=f"{name.lower()}@example.com"))

    def board(self, title: str = "Core") -> Board:
        return self._save(Board(title=title))

    def post(self, board: Board, author: User, **fields) -> Post:
        now = fields.pop("created_at", None) or utcnow()
        values = dict(
            title="Fix login",
            desc="",
            priority="medium",
            column="To Do",
            board_id=board.id,
            author_id=author.id,
            created_at=now,
            updated_at=now,
        )
        values.update(fields)
        return self._save(Post(**values))

    def watcher(self, post: Post, user: User) -> PostWatcher:
        return self._save(PostWatcher(post_id=post.id, user_id=user.id))

    def comment(self, post: Post, author: User, content: str) -> Comment:
        return self._save(Comment(post_id=post.id, author_id=author.id, content=content))

    def notification(
        self,
        user: User,
        post: Post,
        created_at: datetime,
        content: str = "Something happened",
        seen_at: Optional[datetime] = None,
        is_mention: bool = False,
        created_by: Optional[int] = None,
        type: str = "post",
    ) -> Notification:
        return self._save(Notification(
            user_id=user.id,
            created_by=created_by,
            type=type,
            content=content,
            post_id=post.id,
            board_id=post.board_id,
            is_mention=is_mention,
            seen_at=seen_at,
            created_at=created_at,
            updated_at=created_at,
        ))


@pytest.fixture
def make(db):
    return Factory(db)


@pytest.fixture
def t0():
    """A fixed reference time"""
    return datetime(2026, 3, 2, 9, 0, 0)

