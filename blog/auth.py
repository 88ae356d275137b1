import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .database import get_db
from .exceptions import AuthorizationError
from .models import Post, User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def can_edit(user: Optional[User], post: Optional[Post]) -> bool:
    """Only the owning user may edit or delete a post."""
    if user is None or post is None:
        return False
    if user.id is None or post.user_id is None:
        return False
    return user.id == post.user_id


def authorize_edit(user: Optional[User], post: Optional[Post]) -> None:
    if not can_edit(user, post):
        logger.warning(
            "User %s denied edit access to post %s",
            getattr(user, "id", None),
            getattr(post, "id", None),
        )
        raise AuthorizationError("You are not allowed to change this post.")


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    user = db.query(User).filter(User.email == email).first()
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def get_current_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    user_id = request.session.get("user_id")
    if not user_id:
        return None
    return db.get(User, user_id)


def require_user(current_user: Optional[User] = Depends(get_current_user)) -> User:
    if not current_user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please log in to continue.",
        )
    return current_user
