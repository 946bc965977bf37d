"""JWT sessions and the current-user dependencies."""
import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from anondo.config import settings
from anondo.database import get_db
from anondo.errors import api_error, unauthorized
from anondo.models.user import User

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a signed token whose ``sub`` claim is the user id."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {"sub": user_id, "iat": now, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """Return the user id from a token, raising 401 if it is invalid or expired."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise unauthorized("Session expired", reason="token_expired")
    except jwt.InvalidTokenError:
        raise unauthorized("Invalid authentication token", reason="invalid_token")

    user_id = payload.get("sub")
    if not user_id:
        raise unauthorized("Invalid authentication token", reason="invalid_token")
    return user_id


def _resolve_user(db: Session, token: str) -> User:
    user_id = decode_access_token(token)
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise unauthorized("User not found", reason="invalid_token")
    return user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Resolve the caller if a usable bearer token was sent, else None.

    Expired or invalid tokens count as anonymous here so public reads keep
    working for clients holding a stale session.
    """
    if credentials is None:
        return None
    try:
        return _resolve_user(db, credentials.credentials)
    except HTTPException as exc:
        logger.info("Treating request with unusable token as anonymous (%s)", exc.detail["reason"])
        return None


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Require an identified caller (401 otherwise)."""
    if credentials is None:
        raise unauthorized()
    return _resolve_user(db, credentials.credentials)


def verify_signin_key(x_api_key: Optional[str] = Header(None)) -> None:
    """Gate /auth/signin behind SIGNIN_API_KEY; refused while unset outside dev mode."""
    if not settings.SIGNIN_API_KEY:
        if settings.dev_mode:
            return
        logger.warning("Rejected sign-in: SIGNIN_API_KEY is not configured")
        raise api_error(status.HTTP_503_SERVICE_UNAVAILABLE, "signin_disabled", "Sign-in is not configured")
    if not x_api_key or not hmac.compare_digest(x_api_key, settings.SIGNIN_API_KEY):
        logger.warning("Rejected sign-in with a missing or wrong API key")
        raise unauthorized("Invalid API key", reason="invalid_api_key")
