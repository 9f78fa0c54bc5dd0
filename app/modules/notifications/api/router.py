from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.deps import get_current_user, get_notification_service
from app.modules.user_management.models.user import User
from app.modules.notifications.schemas.notification import (
    ActivityEntry,
    GroupedNotifications,
)
from app.modules.notifications.services.notification import NotificationService
from app.modules.posts.services.post import get_post

router = APIRouter()

@router.get("", response_model=GroupedNotifications)
@router.get("/", response_model=GroupedNotifications)
def read_notifications(
    *,
    service: NotificationService = Depends(get_notification_service),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Get the user's notifications grouped per post, plus the unseen count"""
    return GroupedNotifications(
        notifications=service.get_grouped_notifications(current_user.id),
        unseen_count=service.unseen_count(current_user.id),
    )

@router.put("/mark-all-seen", response_model=dict)
def mark_all_notifications_as_seen(
    *,
    db: Session = Depends(get_db),
    service: NotificationService = Depends(get_notification_service),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Mark all of the user's notifications as seen"""
    count = service.mark_all_seen(current_user.id)
    db.commit()

    return {
        "message": f"Marked {count} notifications as seen",
        "count": count
    }

@router.put("/groups/{post_id}/seen", response_model=dict)
def mark_group_as_seen(
    *,
    db: Session = Depends(get_db),
    post_id: int,
    service: NotificationService = Depends(get_notification_service),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Mark the user's notifications on one post as seen"""
    count = service.mark_group_seen(current_user.id, post_id)
    db.commit()

    return {"post_id": post_id, "count": count}

@router.get("/posts/{post_id}/activity", response_model=List[ActivityEntry])
def read_post_activity(
    *,
    db: Session = Depends(get_db),
    post_id: int,
    service: NotificationService = Depends(get_notification_service),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Get the activity history of a post"""
    if not get_post(db, post_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found"
        )

    return service.get_activity_history(post_id)
