"""
Notifiable domain mutations.

Each variant carries a ``kind`` tag used by the notification service to pick a
parser, plus the acting user and whatever before/after state the parser needs.
"""
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field

from app.modules.posts.schemas.post import PostSnapshot


class CommentEvent(BaseModel):
    kind: Literal["comment"] = "comment"
    comment_id: int
    post_id: int
    content: str
    acting_user_id: int


class PostEvent(BaseModel):
    """A post was created (previous is None) or updated"""
    kind: Literal["post"] = "post"
    acting_user_id: int
    previous: Optional[PostSnapshot] = None
    current: PostSnapshot
    # Set when a board move changes the actor's own board context
    notify_self: bool = False

    @property
    def post_id(self) -> int:
        return self.current.id

    @property
    def is_new(self) -> bool:
        return self.previous is None


class LinkedIssueEvent(BaseModel):
    kind: Literal["linked_issue"] = "linked_issue"
    link_id: Optional[int] = None
    origin_post_id: Optional[int] = None
    related_post_id: Optional[int] = None
    link_type: str
    linked_by: int
    acting_user_id: int
    was_recently_created: bool = False
    exists: bool = True


class QueueSnapshot(BaseModel):
    retries: int = 0
    outcome: Optional[str] = None


class QueueEvent(BaseModel):
    """A branch generation queue entry was submitted (previous is None) or updated"""
    kind: Literal["branch"] = "branch"
    queue_id: int
    post_id: int
    user_id: int  # The user who submitted the branch request
    acting_user_id: int
    previous: Optional[QueueSnapshot] = None
    current: QueueSnapshot


class BoardEvent(BaseModel):
    """Board-level changes; accepted by notify but currently produce nothing"""
    kind: Literal["board"] = "board"
    board_id: int
    acting_user_id: int


NotifiableEntity = Annotated[
    Union[CommentEvent, PostEvent, LinkedIssueEvent, QueueEvent, BoardEvent],
    Field(discriminator="kind"),
]
