from typing import Dict, Iterable, List, Optional
from sqlalchemy.orm import Session

from app.modules.posts.models.post import Post, PostWatcher
from app.modules.posts.schemas.post import PostSnapshot
from app.core.config import settings

def get_post(db: Session, post_id: int) -> Optional[Post]:
    """Get post by ID"""
    return db.query(Post).filter(Post.id == post_id).first()

def get_posts_by_ids(db: Session, post_ids: Iterable[int]) -> Dict[int, Post]:
    """Fetch posts keyed by id; missing ids are simply absent"""
    ids = list(set(post_ids))
    if not ids:
        return {}
    return {post.id: post for post in db.query(Post).filter(Post.id.in_(ids)).all()}

def get_watcher_ids(db: Session, post_id: int) -> List[int]:
    """Get the ids of users watching a post"""
    rows = (
        db.query(PostWatcher.user_id)
        .filter(PostWatcher.post_id == post_id)
        .order_by(PostWatcher.id)
        .all()
    )
    return [row.user_id for row in rows]

def snapshot(post: Post) -> PostSnapshot:
    """Capture the current field values of a post"""
    return PostSnapshot.model_validate(post)

def shorten_title(title: Optional[str], limit: Optional[int] = None, end: str = "...") -> str:
    """Truncate a title to the configured display length"""
    limit = settings.POST_TITLE_LENGTH if limit is None else limit
    title = title or ""
    if len(title) <= limit:
        return title
    return title[:limit].rstrip() + end
