from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core import security
from app.core.config import settings
from app.db.session import get_db
from app.modules.auth.schemas.auth import TokenPayload
from app.modules.notifications.services.notification import NotificationService
from app.modules.user_management.models.user import User
from app.modules.user_management.services.user import get_user

# Tokens are issued by the identity service
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")

def get_current_user(db: Session = Depends(get_db), token: str = Depends(oauth2_scheme)) -> User:
    """
    Dependency for getting current authenticated user
    """
    payload = security.decode_access_token(token)
    try:
        token_data = TokenPayload(**{"sub": payload.get("sub")}) if payload else None
    except ValidationError:
        token_data = None

    if token_data is None or token_data.sub is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Could not validate credentials",
        )

    user = get_user(db, user_id=token_data.sub)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )

    return user

def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    """
    Dependency for the notification service bound to the request session
    """
    return NotificationService(db)
