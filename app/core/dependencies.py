from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.errors import AuthError, ForbiddenError
from app.core.security import decode_access_token, oauth2_scheme
from app.db.session import get_db
from app.models import User


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    if not token:
        raise AuthError("unauthorized")
    payload = decode_access_token(token)
    if payload is None or payload.get("sub") is None:
        raise AuthError("unauthorized")
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise AuthError("unauthorized")

    user = db.query(User).filter(
        User.id == user_id,
        User.is_active == True
    ).first()
    if not user:
        raise AuthError("unauthorized")
    return user

def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise ForbiddenError("not_enough_permissions")
    return current_user

def get_optional_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> Optional[User]:
    if not token:
        return None
    return get_current_user(token, db)
