"""
Modules package initialization.
This package contains all the functional modules of the application.
"""

from app.modules import user_management
from app.modules import boards
from app.modules import posts
from app.modules import linked_issues
from app.modules import branch_queue
from app.modules import notifications
from app.modules import news_feed
