from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.responses import crud_success
from auth.utils import AuthenticatedUser, get_identity
from db.database import get_db
from services.progress_service import get_summary

router = APIRouter(tags=["progress"])


@router.get("/progress")
def progress(
    period: str = "weekly",
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return crud_success(get_summary(db, identity.user_id, period))


@router.get("/summary")
def summary(
    period_type: str = "weekly",
    period_start: Optional[date] = None,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return crud_success(get_summary(db, identity.user_id, period_type, period_start))
