from typing import Optional
from sqlalchemy.orm import Session

from app.modules.boards.models.board import Board

def get_board(db: Session, board_id: int) -> Optional[Board]:
    """Get board by ID"""
    return db.query(Board).filter(Board.id == board_id).first()

def get_board_title(db: Session, board_id: Optional[int], default: str = "Unknown") -> str:
    if board_id is None:
        return default
    board = get_board(db, board_id)
    return board.title if board else default
