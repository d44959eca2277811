from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.exceptions import AuthError, ForbiddenError
from app.core.security import decode_token
from app.db.session import get_db
from app.models.user import User
from app.services.email import EmailProvider, get_email_provider

bearer_scheme = HTTPBearer(auto_error=False)

STAFF_ROLES = ("staff", "admin")


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise AuthError("You must be logged in to do this")
    user_id = decode_token(credentials.credentials)
    if not user_id:
        raise AuthError("Invalid or expired session, please log in again")
    try:
        user_uuid = UUID(user_id)
    except ValueError:
        raise AuthError("Invalid or expired session, please log in again")
    user = db.query(User).filter(User.id == user_uuid).first()
    if not user or not user.is_active:
        raise AuthError("User not found or inactive")
    return user


def get_current_staff_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role not in STAFF_ROLES:
        raise ForbiddenError("Only door staff can verify tickets")
    return current_user


def get_email_sender() -> EmailProvider:
    return get_email_provider()
