# Import all models here so Alembic can detect them
from app.db.session import Base

# Import all models below
from app.modules.user_management.models.user import User
from app.modules.boards.models.board import Board
from app.modules.posts.models.post import Post, PostWatcher
from app.modules.posts.comments.models.comment import Comment
from app.modules.linked_issues.models.linked_issue import LinkedIssue
from app.modules.branch_queue.models.branch_queue import BranchQueueEntry
from app.modules.notifications.models.notification import Notification
from app.modules.news_feed.models.news_feed import NewsFeed
