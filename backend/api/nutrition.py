from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from api.responses import crud_success
from api.serializers import goal_to_dict
from auth.utils import AuthenticatedUser, get_identity
from db.database import get_db
from services import nutrition_service
from utils.datetime_utils import today_utc

router = APIRouter(prefix="/nutrition", tags=["nutrition"])


class GoalUpsertRequest(BaseModel):
    start_date: Optional[date] = None
    calories_target: Optional[float] = Field(default=None, ge=0)
    protein_target_g: Optional[float] = Field(default=None, ge=0)
    carbs_target_g: Optional[float] = Field(default=None, ge=0)
    fat_target_g: Optional[float] = Field(default=None, ge=0)
    fiber_target_g: Optional[float] = Field(default=None, ge=0)
    hydration_target_ml: Optional[float] = Field(default=None, ge=0)


@router.get("/goals")
def get_goal(
    on_date: Optional[date] = Query(default=None, alias="date"),
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    goal = nutrition_service.get_active_goal(db, identity.user_id, on_date)
    return crud_success(goal_to_dict(goal))


@router.post("/goals", status_code=status.HTTP_201_CREATED)
def upsert_goal(
    req: GoalUpsertRequest,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    targets = req.model_dump(exclude_unset=True, exclude={"start_date"})
    goal = nutrition_service.upsert_goal(db, identity.user_id, req.start_date or today_utc(), targets)
    db.commit()
    db.refresh(goal)
    return crud_success(goal_to_dict(goal), "Nutrition goal updated")
