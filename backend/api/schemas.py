"""Request bodies shared by the CRUD and AI routers."""
from datetime import date
from typing import Optional, Union

from pydantic import BaseModel, Field


class SetEntry(BaseModel):
    reps: Optional[int] = Field(default=None, ge=0)
    actual_reps: Optional[int] = Field(default=None, ge=0)
    weight_kg: Optional[float] = Field(default=None, ge=0)
    weight: Optional[float] = Field(default=None, ge=0)
    duration: Optional[int] = Field(default=None, ge=0)
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None
    status: Optional[Union[bool, str]] = None


class ExerciseEntry(BaseModel):
    exercise_id: int
    sets: Optional[list[SetEntry]] = None
    # flat shape: actual_sets identical rows
    actual_sets: Optional[int] = Field(default=None, ge=1)
    actual_reps: Optional[int] = Field(default=None, ge=0)
    weight_kg: Optional[float] = Field(default=None, ge=0)
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None
    status: Optional[Union[bool, str]] = None


class SessionCreateRequest(BaseModel):
    scheduled_date: date
    type: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[str] = None
    exercises: list[ExerciseEntry] = Field(default_factory=list)


class SessionUpdateRequest(BaseModel):
    session_id: Optional[int] = None
    ids: Optional[list[int]] = None
    scheduled_date: Optional[date] = None
    type: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[str] = None
    completed: Optional[bool] = None


class IdsRequest(BaseModel):
    ids: list[int] = Field(min_length=1)


class IdsStatusRequest(BaseModel):
    ids: list[int] = Field(min_length=1)
    status: str


class SessionDetailCreateRequest(BaseModel):
    session_id: int
    exercise_id: int
    status: Optional[str] = None


class PlannedExercise(BaseModel):
    exercise_id: int
    planned_sets: int = Field(ge=1, le=50)
    planned_reps: Optional[int] = Field(default=None, ge=0)
    planned_duration: Optional[int] = Field(default=None, ge=0)


class PlannedExercisesRequest(BaseModel):
    exercises: list[PlannedExercise] = Field(min_length=1)


class SetCreateRequest(SetEntry):
    session_detail_id: int


class SetUpdateRequest(SetEntry):
    set_id: int


class MealFoodEntry(BaseModel):
    food_id: int
    numbers_of_serving: float = Field(default=1.0, gt=0)


class MealFoodsRequest(BaseModel):
    meal_id: int
    foods: list[MealFoodEntry] = Field(min_length=1)
