"""User service — sign-in upsert and profile edits."""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from anondo.errors import not_found
from anondo.models.user import User
from anondo.schemas.user import SignInRequest, UserUpdate

logger = logging.getLogger(__name__)


def sign_in(db: Session, data: SignInRequest) -> User:
    """Create the user on first sign-in; refresh name/avatar on later ones."""
    user = db.query(User).filter(User.email == data.email).first()
    if user is None:
        user = User(email=data.email, name=data.name, image=data.image)
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Two first sign-ins raced; the other one created the row.
            db.rollback()
            user = db.query(User).filter(User.email == data.email).one()
        else:
            db.refresh(user)
            logger.info("Created user %s (%s)", user.id, user.email)
            return user

    if data.name is not None:
        user.name = data.name
    if data.image is not None:
        user.image = data.image
    db.commit()
    db.refresh(user)
    logger.info("User %s signed in", user.id)
    return user


def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_or_404(db: Session, user_id: str) -> User:
    user = get_user(db, user_id)
    if not user:
        raise not_found("User not found", reason="user_not_found")
    return user


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.created_at).all()


def update_profile(db: Session, user: User, data: UserUpdate) -> User:
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    logger.info("Updated profile of user %s", user.id)
    return user
