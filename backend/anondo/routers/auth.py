"""Sign-in routes.

The OAuth front end calls /signin once it has verified the user's identity;
the response carries the bearer token used by every other endpoint.
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from anondo.database import get_db
from anondo.models.user import User
from anondo.schemas.user import SignInRequest, TokenResponse, UserOut
from anondo.security import create_access_token, get_current_user, verify_signin_key
from anondo.services import user_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/signin", response_model=TokenResponse, dependencies=[Depends(verify_signin_key)])
def sign_in(payload: SignInRequest, db: Session = Depends(get_db)):
    """Create or refresh the user by email and issue an access token."""
    user = user_service.sign_in(db, payload)
    return {"access_token": create_access_token(user.id), "token_type": "bearer", "user": user}


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user
