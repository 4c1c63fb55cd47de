"""Derived workout and nutrition metrics.

Everything here is a pure function over rows that the caller already fetched
(ORM objects or anything exposing the same attributes). Nothing is cached or
maintained incrementally: callers recompute and replace.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

NUTRIENT_FIELDS: dict[str, str] = {
    "calories": "calories_per_serving",
    "protein": "protein_per_serving",
    "carbs": "carbs_per_serving",
    "fat": "fat_per_serving",
    "fiber": "fibers_per_serving",
    "sugar": "sugars_per_serving",
    "zinc": "zincs_per_serving",
    "magnesium": "magnesiums_per_serving",
    "calcium": "calciums_per_serving",
    "iron": "irons_per_serving",
    "vitamin_a": "vitamin_a_per_serving",
    "vitamin_c": "vitamin_c_per_serving",
    "vitamin_b12": "vitamin_b12_per_serving",
    "vitamin_d": "vitamin_d_per_serving",
}
MACRO_NUTRIENTS = ("calories", "protein", "carbs", "fat", "fiber")


def round_half_up(value: float, places: int = 0):
    quantum = Decimal(1).scaleb(-places)
    rounded = Decimal(str(value or 0)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if places == 0 else float(rounded)


def _num(value) -> float:
    return float(value) if value is not None else 0.0


def _difficulty(exercise) -> float:
    factor = getattr(exercise, "difficulty_factor", None) if exercise is not None else None
    return float(factor) if factor else 1.0


# --- Nutrition ---

def sum_meal_nutrients(details: Iterable, nutrients: Iterable[str] = NUTRIENT_FIELDS) -> dict[str, float]:
    """Unrounded Σ food.N_per_serving × numbers_of_serving for each nutrient."""
    nutrients = tuple(nutrients)
    totals = {name: 0.0 for name in nutrients}
    for detail in details:
        food = getattr(detail, "food", None)
        if food is None:
            continue
        servings = _num(getattr(detail, "numbers_of_serving", None))
        for name in nutrients:
            totals[name] += _num(getattr(food, NUTRIENT_FIELDS[name], None)) * servings
    return totals


def meal_nutrition_totals(details: Iterable) -> dict[str, float]:
    totals = sum_meal_nutrients(details)
    return {f"total_{name}": round_half_up(value, 2) for name, value in totals.items()}


# --- Workout ---

def set_force(reps, weight_kg, difficulty_factor: float = 1.0) -> float:
    return _num(reps) * _num(weight_kg) * (difficulty_factor or 1.0)


def set_volume(reps, weight_kg) -> float:
    weight = _num(weight_kg)
    return _num(reps) * (weight if weight > 0 else 1.0)


def compute_gr_score(details: Iterable) -> int:
    """Σ reps × weight × difficulty over every set of every detail."""
    total = 0.0
    for detail in details:
        difficulty = _difficulty(getattr(detail, "exercise", None))
        for exercise_set in getattr(detail, "sets", None) or []:
            total += set_force(exercise_set.reps, exercise_set.weight_kg, difficulty)
    return round_half_up(total)


def derive_detail_status(set_statuses: Iterable[str]) -> str:
    statuses = list(set_statuses)
    if statuses and all(s == "COMPLETED" for s in statuses):
        return "COMPLETED"
    return "UNFINISHED"


def longest_streak(dates: Iterable[date]) -> int:
    ordered = sorted(set(dates))
    longest = 0
    current = 0
    previous: date | None = None
    for day in ordered:
        if previous is not None and (day - previous).days == 1:
            current += 1
        else:
            current = 1
        longest = max(longest, current)
        previous = day
    return longest


def total_volume(sessions: Iterable) -> int:
    volume = 0.0
    for session in sessions:
        for detail in session.details or []:
            for exercise_set in detail.sets or []:
                volume += set_volume(exercise_set.reps, exercise_set.weight_kg)
    return round_half_up(volume)


def muscle_split(sessions: Iterable) -> list[dict]:
    forces: dict[str, float] = defaultdict(float)
    for session in sessions:
        for detail in session.details or []:
            exercise = getattr(detail, "exercise", None)
            category = (getattr(exercise, "category", None) or "").strip() or "Other"
            difficulty = _difficulty(exercise)
            forces[category] += sum(
                set_force(s.reps, s.weight_kg, difficulty) for s in detail.sets or []
            )

    grand_total = sum(forces.values())
    if grand_total <= 0:
        return []
    split = [
        {"name": name, "value": round_half_up(force / grand_total * 100)}
        for name, force in forces.items()
    ]
    return [entry for entry in split if entry["value"] > 0]


def change_pct(current: float, previous: float) -> int:
    if not previous:
        return 0
    return round_half_up((current - previous) / previous * 100)


def nutrition_averages(meals: Iterable, days: int) -> dict[str, int]:
    totals = {name: 0.0 for name in MACRO_NUTRIENTS}
    for meal in meals:
        for name, value in sum_meal_nutrients(meal.details or [], MACRO_NUTRIENTS).items():
            totals[name] += value
    days = max(int(days), 1)
    return {
        "calories_avg": round_half_up(totals["calories"] / days),
        "protein_avg": round_half_up(totals["protein"] / days),
        "carbs_avg": round_half_up(totals["carbs"] / days),
        "fats_avg": round_half_up(totals["fat"] / days),
        "fiber_avg": round_half_up(totals["fiber"] / days),
    }
