"""Meals, meal foods and nutrition goals."""
from __future__ import annotations

import logging
from datetime import date
from typing import Iterable

from sqlalchemy.orm import Session, selectinload

from db.models import MEAL_TYPES, Food, Meal, MealDetail, NutritionGoal
from services.errors import EntityNotFound, ValidationFailed
from services.ownership import MEAL_DETAIL_CHAIN, owned_meal, verify_chain_batch
from utils.datetime_utils import month_bounds, today_utc

logger = logging.getLogger(__name__)

GOAL_FIELDS = (
    "calories_target",
    "protein_target_g",
    "carbs_target_g",
    "fat_target_g",
    "fiber_target_g",
    "hydration_target_ml",
)


def normalize_meal_type(value: str | None) -> str:
    meal_type = (value or "").strip().lower()
    if meal_type not in MEAL_TYPES:
        raise ValidationFailed(f"meal type must be one of {list(MEAL_TYPES)}")
    return meal_type


def _check_servings(value) -> float:
    servings = float(value if value is not None else 1)
    if servings <= 0:
        raise ValidationFailed("numbers_of_serving must be greater than 0")
    return servings


def _require_foods(db: Session, food_ids: Iterable[int]) -> None:
    wanted = set(food_ids)
    if not wanted:
        return
    found = {row.id for row in db.query(Food.id).filter(Food.id.in_(wanted)).all()}
    missing = sorted(wanted - found)
    if missing:
        raise EntityNotFound(f"Food not found: {', '.join(str(m) for m in missing)}")


def _meals_query(db: Session):
    return db.query(Meal).options(selectinload(Meal.details).selectinload(MealDetail.food))


# --- Meals ---

def list_meals(
    db: Session,
    user_id: int,
    *,
    on_date: date | None = None,
    month: str | None = None,
) -> list[Meal]:
    query = _meals_query(db).filter(Meal.user_id == user_id)
    if on_date is not None:
        query = query.filter(Meal.log_date == on_date)
    elif month:
        try:
            start, end = month_bounds(month)
        except ValueError as exc:
            raise ValidationFailed(str(exc))
        query = query.filter(Meal.log_date >= start, Meal.log_date < end)
    return query.order_by(Meal.log_date.desc(), Meal.id.asc()).all()


def get_meal(db: Session, user_id: int, meal_id: int) -> Meal:
    return owned_meal(db, meal_id, user_id)


def create_meal(
    db: Session,
    user_id: int,
    *,
    meal_type: str,
    log_date: date | None = None,
    details: Iterable[dict] = (),
) -> Meal:
    details = list(details)
    _require_foods(db, (int(d["food_id"]) for d in details))

    meal = Meal(user_id=user_id, meal_type=normalize_meal_type(meal_type), log_date=log_date or today_utc())
    db.add(meal)
    db.flush()
    for item in details:
        db.add(
            MealDetail(
                meal_id=meal.id,
                food_id=int(item["food_id"]),
                numbers_of_serving=_check_servings(item.get("numbers_of_serving")),
            )
        )
    db.flush()
    logger.info("Created meal %s (%s) for user %s with %d food(s)", meal.id, meal.meal_type, user_id, len(details))
    return meal


def delete_meal(db: Session, user_id: int, meal_id: int) -> None:
    meal = owned_meal(db, meal_id, user_id)
    for detail in list(meal.details):
        db.delete(detail)
    db.flush()
    db.delete(meal)
    db.flush()


# --- Meal foods ---

def list_meal_foods(db: Session, user_id: int, meal_id: int) -> list[MealDetail]:
    meal = owned_meal(db, meal_id, user_id)
    return list(meal.details)


def add_meal_foods(db: Session, user_id: int, meal_id: int, foods: Iterable[dict]) -> list[MealDetail]:
    meal = owned_meal(db, meal_id, user_id)
    foods = list(foods)
    if not foods:
        raise ValidationFailed("foods must be a non-empty array")
    _require_foods(db, (int(f["food_id"]) for f in foods))

    rows = [
        MealDetail(
            meal_id=meal.id,
            food_id=int(item["food_id"]),
            numbers_of_serving=_check_servings(item.get("numbers_of_serving")),
        )
        for item in foods
    ]
    db.add_all(rows)
    db.flush()
    return rows


def update_meal_foods(db: Session, user_id: int, meal_id: int, foods: Iterable[dict]) -> list[MealDetail]:
    """Set numbers_of_serving for each (meal, food) pair; every pair must already exist."""
    meal = owned_meal(db, meal_id, user_id)
    foods = list(foods)
    if not foods:
        raise ValidationFailed("foods must be a non-empty array")

    by_food = {detail.food_id: detail for detail in meal.details}
    updated: list[MealDetail] = []
    for item in foods:
        detail = by_food.get(int(item["food_id"]))
        if detail is None:
            raise EntityNotFound(f"Food {item['food_id']} is not part of meal {meal.id}")
        detail.numbers_of_serving = _check_servings(item.get("numbers_of_serving"))
        updated.append(detail)
    db.flush()
    return updated


def delete_meal_details(db: Session, user_id: int, ids: Iterable[int]) -> int:
    rows = verify_chain_batch(db, MEAL_DETAIL_CHAIN, ids, user_id)
    for row in rows:
        db.delete(row)
    db.flush()
    return len(rows)


# --- Goals ---

def upsert_goal(db: Session, user_id: int, start_date: date, targets: dict) -> NutritionGoal:
    goal = (
        db.query(NutritionGoal)
        .filter(NutritionGoal.user_id == user_id, NutritionGoal.start_date == start_date)
        .first()
    )
    if goal is None:
        goal = NutritionGoal(user_id=user_id, start_date=start_date)
        db.add(goal)
    for field in GOAL_FIELDS:
        if field in targets:
            setattr(goal, field, targets[field])
    db.flush()
    return goal


def get_active_goal(db: Session, user_id: int, on_date: date | None = None) -> NutritionGoal | None:
    on_date = on_date or today_utc()
    return (
        db.query(NutritionGoal)
        .filter(NutritionGoal.user_id == user_id, NutritionGoal.start_date <= on_date)
        .order_by(NutritionGoal.start_date.desc())
        .first()
    )
