from typing import Optional

from db.models import (
    Exercise,
    ExerciseSet,
    Food,
    Meal,
    MealDetail,
    NutritionGoal,
    SessionDetail,
    User,
    WorkoutSession,
)
from services.aggregation import NUTRIENT_FIELDS, meal_nutrition_totals


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "fullname": user.fullname,
        "phone": user.phone,
        "role": user.role,
        "verified": bool(user.verified),
        "created_at": _iso(user.created_at),
    }


def exercise_to_dict(exercise: Exercise) -> dict:
    return {
        "id": exercise.id,
        "name": exercise.name,
        "category": exercise.category,
        "type": exercise.type,
        "difficulty_factor": exercise.difficulty_factor,
        "default_sets": exercise.default_sets,
        "default_reps": exercise.default_reps,
        "description": exercise.description,
    }


def food_to_dict(food: Food) -> dict:
    data = {
        "id": food.id,
        "name": food.name,
        "serving_type": food.serving_type,
        "image": food.image,
    }
    for column in NUTRIENT_FIELDS.values():
        data[column] = getattr(food, column)
    return data


def set_to_dict(row: ExerciseSet) -> dict:
    return {
        "id": row.id,
        "session_detail_id": row.session_detail_id,
        "reps": row.reps,
        "weight_kg": row.weight_kg,
        "duration": row.duration,
        "notes": row.notes,
        "status": row.status,
    }


def session_detail_to_dict(detail: SessionDetail, include_sets: bool = True) -> dict:
    data = {
        "id": detail.id,
        "session_id": detail.session_id,
        "exercise_id": detail.exercise_id,
        "status": detail.status,
        "exercise": exercise_to_dict(detail.exercise) if detail.exercise else None,
    }
    if include_sets:
        data["sets"] = [set_to_dict(s) for s in detail.sets]
    return data


def session_to_dict(session: WorkoutSession, include_details: bool = True) -> dict:
    data = {
        "id": session.id,
        "user_id": session.user_id,
        "scheduled_date": _iso(session.scheduled_date),
        "type": session.type,
        "notes": session.notes,
        "status": session.status,
        "gr_score": session.gr_score,
        "created_at": _iso(session.created_at),
    }
    if include_details:
        data["session_details"] = [session_detail_to_dict(d) for d in session.details]
    return data


def meal_detail_to_dict(detail: MealDetail) -> dict:
    return {
        "id": detail.id,
        "meal_id": detail.meal_id,
        "food_id": detail.food_id,
        "numbers_of_serving": detail.numbers_of_serving,
        "food": food_to_dict(detail.food) if detail.food else None,
    }


def meal_to_dict(meal: Meal, include_totals: bool = False) -> dict:
    data = {
        "id": meal.id,
        "user_id": meal.user_id,
        "meal_type": meal.meal_type,
        "log_date": _iso(meal.log_date),
        "meal_details": [meal_detail_to_dict(d) for d in meal.details],
    }
    if include_totals:
        data.update(meal_nutrition_totals(meal.details))
    return data


def goal_to_dict(goal: NutritionGoal | None) -> dict | None:
    if goal is None:
        return None
    return {
        "id": goal.id,
        "user_id": goal.user_id,
        "start_date": _iso(goal.start_date),
        "calories_target": goal.calories_target,
        "protein_target_g": goal.protein_target_g,
        "carbs_target_g": goal.carbs_target_g,
        "fat_target_g": goal.fat_target_g,
        "fiber_target_g": goal.fiber_target_g,
        "hydration_target_ml": goal.hydration_target_ml,
        "updated_at": _iso(goal.updated_at),
    }
