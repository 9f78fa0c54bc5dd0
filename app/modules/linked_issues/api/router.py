from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.deps import get_current_user, get_notification_service
from app.modules.user_management.models.user import User
from app.modules.linked_issues.schemas.linked_issue import (
    LinkedIssue as LinkedIssueSchema,
    LinkedIssueCreate,
    LinkedIssueUpdate,
)
from app.modules.linked_issues.services.linked_issue import (
    get_linked_issue,
    link_posts,
    relink,
    unlink,
)
from app.modules.notifications.services.notification import NotificationService
from app.modules.posts.services.post import get_posts_by_ids

router = APIRouter()

@router.post("", response_model=List[LinkedIssueSchema], status_code=status.HTTP_201_CREATED)
@router.post("/", response_model=List[LinkedIssueSchema], status_code=status.HTTP_201_CREATED)
def create_linked_issue(
    *,
    db: Session = Depends(get_db),
    link_in: LinkedIssueCreate,
    service: NotificationService = Depends(get_notification_service),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Link two posts; the mirror link is created on the related post"""
    if link_in.origin_post_id == link_in.related_post_id:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="A post cannot be linked to itself"
        )

    posts = get_posts_by_ids(db, [link_in.origin_post_id, link_in.related_post_id])
    if len(posts) != 2:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found"
        )

    links = link_posts(
        db,
        service,
        link_in.origin_post_id,
        link_in.related_post_id,
        link_in.link_type,
        current_user.id,
    )
    db.commit()
    for link in links:
        db.refresh(link)

    return list(links)

@router.put("/{link_id}", response_model=LinkedIssueSchema)
def update_linked_issue(
    *,
    db: Session = Depends(get_db),
    link_id: int,
    link_in: LinkedIssueUpdate,
    service: NotificationService = Depends(get_notification_service),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Change the type of a link"""
    link = get_linked_issue(db, link_id)
    if not link:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Linked issue not found"
        )

    link = relink(db, service, link, link_in.link_type, current_user.id)
    db.commit()
    db.refresh(link)

    return link

@router.delete("/{link_id}", response_model=dict)
def delete_linked_issue(
    *,
    db: Session = Depends(get_db),
    link_id: int,
    service: NotificationService = Depends(get_notification_service),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Remove a link and its mirror"""
    link = get_linked_issue(db, link_id)
    if not link:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Linked issue not found"
        )

    removed = unlink(db, service, link, current_user.id)
    db.commit()

    return {"message": "Link removed", "count": len(removed)}
