"""Category API routes."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from anondo.database import get_db
from anondo.models.user import User
from anondo.schemas.event import CategoryCreate, CategoryOut
from anondo.security import get_current_user
from anondo.services import event_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    """All categories by name."""
    return event_service.get_all_categories(db)


@router.post("/", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return event_service.create_category(db, payload)
