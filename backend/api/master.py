"""Read-only catalog of foods and exercises, so clients can discover ids."""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.responses import crud_success
from api.serializers import exercise_to_dict, food_to_dict
from db.database import get_db
from db.models import Exercise, Food

router = APIRouter(tags=["catalog"])


@router.get("/foods")
def list_foods(search: Optional[str] = None, limit: int = 100, db: Session = Depends(get_db)):
    query = db.query(Food)
    term = (search or "").strip()
    if term:
        query = query.filter(Food.name.ilike(f"%{term}%"))
    foods = query.order_by(Food.name.asc()).limit(max(1, min(limit, 500))).all()
    return crud_success([food_to_dict(f) for f in foods])


@router.get("/exercises")
def list_exercises(category: Optional[str] = None, db: Session = Depends(get_db)):
    query = db.query(Exercise)
    if category:
        query = query.filter(Exercise.category == category)
    return crud_success([exercise_to_dict(e) for e in query.order_by(Exercise.name.asc()).all()])
