import datetime as dt
from typing import Optional

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from api.responses import ai_success
from api.schemas import IdsRequest, MealFoodsRequest
from api.serializers import meal_detail_to_dict, meal_to_dict
from auth.utils import AuthenticatedUser, get_identity
from db.database import get_db
from services import nutrition_service

router = APIRouter(prefix="/ai", tags=["ai-meals"])


class AiMealCreateRequest(BaseModel):
    type: str
    date: Optional[dt.date] = None


@router.get("/meals")
def get_meals(
    date: Optional[dt.date] = None,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    meals = nutrition_service.list_meals(db, identity.user_id, on_date=date)
    return ai_success([meal_to_dict(m) for m in meals])


@router.post("/meals", status_code=status.HTTP_201_CREATED)
def create_meal(
    req: AiMealCreateRequest,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    meal = nutrition_service.create_meal(db, identity.user_id, meal_type=req.type, log_date=req.date)
    db.commit()
    meals = nutrition_service.list_meals(db, identity.user_id, on_date=meal.log_date)
    return ai_success([meal_to_dict(m) for m in meals])


@router.post("/meal-foods", status_code=status.HTTP_201_CREATED)
def add_meal_foods(
    req: MealFoodsRequest,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    rows = nutrition_service.add_meal_foods(
        db, identity.user_id, req.meal_id, [f.model_dump() for f in req.foods]
    )
    db.commit()
    for row in rows:
        db.refresh(row)
    return ai_success([meal_detail_to_dict(r) for r in rows])


@router.put("/meal-foods")
def update_meal_foods(
    req: MealFoodsRequest,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    nutrition_service.update_meal_foods(
        db, identity.user_id, req.meal_id, [f.model_dump() for f in req.foods]
    )
    db.commit()
    meal = nutrition_service.get_meal(db, identity.user_id, req.meal_id)
    return ai_success(meal_to_dict(meal, include_totals=True))


@router.delete("/meal-foods")
def delete_meal_foods(
    req: IdsRequest = Body(...),
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    deleted = nutrition_service.delete_meal_details(db, identity.user_id, req.ids)
    db.commit()
    return ai_success({"deleted": deleted})


@router.get("/meal-foods/{meal_id}")
def get_meal_foods(
    meal_id: int,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    rows = nutrition_service.list_meal_foods(db, identity.user_id, meal_id)
    return ai_success([meal_detail_to_dict(r) for r in rows])
