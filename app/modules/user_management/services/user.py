from typing import Dict, Iterable, List, Optional
from sqlalchemy.orm import Session

from app.modules.user_management.models.user import User

def get_user(db: Session, user_id: int) -> Optional[User]:
    """Get user by ID"""
    return db.query(User).filter(User.id == user_id).first()

def get_existing_user_ids(db: Session, user_ids: Iterable[int]) -> List[int]:
    """Return the subset of user_ids that belong to existing users"""
    ids = list(user_ids)
    if not ids:
        return []
    rows = db.query(User.id).filter(User.id.in_(ids)).all()
    return [row.id for row in rows]

def get_user_names(db: Session, user_ids: Iterable[int]) -> Dict[int, str]:
    """Resolve a set of user ids to their display names"""
    ids = [user_id for user_id in user_ids if user_id is not None]
    if not ids:
        return {}
    return {user.id: user.name for user in db.query(User).filter(User.id.in_(ids)).all()}

def get_user_name(db: Session, user_id: Optional[int], default: str = "Someone") -> str:
    if user_id is None:
        return default
    user = get_user(db, user_id)
    return user.name if user else default
