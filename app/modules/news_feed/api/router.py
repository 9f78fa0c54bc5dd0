from typing import Any, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.deps import get_current_user
from app.modules.boards.services.board import get_board
from app.modules.user_management.models.user import User
from app.modules.news_feed.schemas.feed import FeedResponse
from app.modules.news_feed.services.feed import get_feed

router = APIRouter()

@router.get("/", response_model=FeedResponse)
@router.get("", response_model=FeedResponse)
def read_news_feed(
    *,
    db: Session = Depends(get_db),
    board_id: int = Query(...),
    user_id: Optional[int] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Get the personal and overview news feed of a board for a date range"""
    if date_from and date_to and date_from > date_to:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="date_from must not be after date_to"
        )

    if not get_board(db, board_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Board not found"
        )

    return get_feed(
        db,
        board_id,
        viewer_user_id=user_id,
        date_from=date_from,
        date_to=date_to,
        acting_user_id=current_user.id,
    )
