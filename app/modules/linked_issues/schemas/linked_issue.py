from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict

from app.modules.linked_issues.enums import LinkType

class LinkedIssueBase(BaseModel):
    link_type: LinkType

class LinkedIssueCreate(LinkedIssueBase):
    origin_post_id: int
    related_post_id: int

class LinkedIssueUpdate(LinkedIssueBase):
    pass

class LinkedIssue(LinkedIssueBase):
    """Linked issue model returned to client"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    origin_post_id: int
    related_post_id: int
    user_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
