from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from api.responses import crud_success
from api.schemas import MealFoodEntry
from api.serializers import meal_to_dict
from auth.utils import AuthenticatedUser, get_identity, resolve_target_user
from db.database import get_db
from services import nutrition_service

router = APIRouter(prefix="/meals", tags=["meals"])


class MealCreateRequest(BaseModel):
    meal_type: str
    log_date: Optional[date] = None
    details: list[MealFoodEntry] = Field(default_factory=list)
    userId: Optional[int] = None


@router.get("")
def list_meals(
    user_id: Optional[int] = Query(default=None, alias="userId"),
    on_date: Optional[date] = Query(default=None, alias="date"),
    month: Optional[str] = None,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    target = resolve_target_user(identity, user_id, allow_override=True)
    meals = nutrition_service.list_meals(db, target, on_date=on_date, month=month)
    return crud_success([meal_to_dict(m) for m in meals])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_meal(
    req: MealCreateRequest,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    target = resolve_target_user(identity, req.userId, allow_override=True)
    meal = nutrition_service.create_meal(
        db,
        target,
        meal_type=req.meal_type,
        log_date=req.log_date,
        details=[d.model_dump() for d in req.details],
    )
    db.commit()
    db.refresh(meal)
    return crud_success(meal_to_dict(meal, include_totals=True), "Meal logged successfully")


@router.get("/{meal_id}")
def get_meal(
    meal_id: int,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    meal = nutrition_service.get_meal(db, identity.user_id, meal_id)
    return crud_success(meal_to_dict(meal, include_totals=True))


@router.delete("/{meal_id}")
def delete_meal(
    meal_id: int,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    nutrition_service.delete_meal(db, identity.user_id, meal_id)
    db.commit()
    return crud_success({"id": meal_id}, "Meal deleted")
