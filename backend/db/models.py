from sqlalchemy import (
    Column, Integer, Text, Float, Boolean, ForeignKey, Index,
    Date, DateTime, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from db.database import Base
from utils.datetime_utils import utcnow_naive


SESSION_STATUSES = ("PENDING", "IN_PROGRESS", "COMPLETED", "UNFINISHED", "MISSED")
SET_STATUSES = ("COMPLETED", "UNFINISHED")
MEAL_TYPES = ("breakfast", "lunch", "dinner", "snack", "pre-workout", "post-workout")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(Text, unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    fullname = Column(Text)
    phone = Column(Text)
    role = Column(Text, nullable=False, default="user")  # user | admin
    verified = Column(Boolean, nullable=False, default=False)
    verification_code = Column(Text)
    verification_token = Column(Text, unique=True)
    verification_expires_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow_naive)
    updated_at = Column(DateTime, default=utcnow_naive, onupdate=utcnow_naive)

    workout_sessions = relationship("WorkoutSession", back_populates="user", cascade="all, delete-orphan")
    meals = relationship("Meal", back_populates="user", cascade="all, delete-orphan")
    nutrition_goals = relationship("NutritionGoal", back_populates="user", cascade="all, delete-orphan")


class Exercise(Base):
    __tablename__ = "exercises"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    category = Column(Text)  # muscle group, used for the split
    type = Column(Text, nullable=False, default="strength")  # strength | cardio | flexibility | balance
    difficulty_factor = Column(Float, default=1.0)
    default_sets = Column(Integer)
    default_reps = Column(Integer)
    description = Column(Text)

    @property
    def is_cardio(self) -> bool:
        return (self.type or "").strip().lower() == "cardio"


class Food(Base):
    __tablename__ = "foods"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    serving_type = Column(Text, nullable=False, default="serving")
    image = Column(Text)
    calories_per_serving = Column(Float, default=0)
    protein_per_serving = Column(Float, default=0)
    carbs_per_serving = Column(Float, default=0)
    fat_per_serving = Column(Float, default=0)
    fibers_per_serving = Column(Float)
    sugars_per_serving = Column(Float)
    zincs_per_serving = Column(Float)
    magnesiums_per_serving = Column(Float)
    calciums_per_serving = Column(Float)
    irons_per_serving = Column(Float)
    vitamin_a_per_serving = Column(Float)
    vitamin_c_per_serving = Column(Float)
    vitamin_b12_per_serving = Column(Float)
    vitamin_d_per_serving = Column(Float)


class WorkoutSession(Base):
    __tablename__ = "workout_sessions"
    __table_args__ = (
        UniqueConstraint("user_id", "scheduled_date", name="uq_workout_sessions_user_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    scheduled_date = Column(Date, nullable=False)
    type = Column(Text)
    notes = Column(Text)
    status = Column(Text, nullable=False, default="PENDING")
    gr_score = Column(Integer)  # only meaningful while status == COMPLETED
    created_at = Column(DateTime, default=utcnow_naive)

    user = relationship("User", back_populates="workout_sessions")
    details = relationship(
        "SessionDetail",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="SessionDetail.id",
    )


class SessionDetail(Base):
    __tablename__ = "session_details"
    __table_args__ = (
        UniqueConstraint("session_id", "exercise_id", name="uq_session_details_session_exercise"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("workout_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    exercise_id = Column(Integer, ForeignKey("exercises.id"), nullable=False)
    status = Column(Text, nullable=False, default="UNFINISHED")

    session = relationship("WorkoutSession", back_populates="details")
    exercise = relationship("Exercise")
    sets = relationship(
        "ExerciseSet",
        back_populates="session_detail",
        cascade="all, delete-orphan",
        order_by="ExerciseSet.id",
    )


class ExerciseSet(Base):
    __tablename__ = "exercise_sets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_detail_id = Column(
        Integer, ForeignKey("session_details.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reps = Column(Integer, nullable=False, default=0)
    weight_kg = Column(Float, nullable=False, default=0)
    duration = Column(Integer, nullable=False, default=0)  # seconds, cardio only
    notes = Column(Text)
    status = Column(Text, nullable=False, default="UNFINISHED")

    session_detail = relationship("SessionDetail", back_populates="sets")


class Meal(Base):
    __tablename__ = "meals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    meal_type = Column(Text, nullable=False)
    log_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=utcnow_naive)

    user = relationship("User", back_populates="meals")
    details = relationship(
        "MealDetail",
        back_populates="meal",
        cascade="all, delete-orphan",
        order_by="MealDetail.id",
    )


class MealDetail(Base):
    __tablename__ = "meal_details"

    id = Column(Integer, primary_key=True, autoincrement=True)
    meal_id = Column(Integer, ForeignKey("meals.id", ondelete="CASCADE"), nullable=False, index=True)
    food_id = Column(Integer, ForeignKey("foods.id"), nullable=False)
    numbers_of_serving = Column(Float, nullable=False, default=1.0)

    meal = relationship("Meal", back_populates="details")
    food = relationship("Food")


class NutritionGoal(Base):
    __tablename__ = "nutrition_goals"
    __table_args__ = (
        UniqueConstraint("user_id", "start_date", name="uq_nutrition_goals_user_start"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    start_date = Column(Date, nullable=False)
    calories_target = Column(Float)
    protein_target_g = Column(Float)
    carbs_target_g = Column(Float)
    fat_target_g = Column(Float)
    fiber_target_g = Column(Float)
    hydration_target_ml = Column(Float)
    updated_at = Column(DateTime, default=utcnow_naive, onupdate=utcnow_naive)

    user = relationship("User", back_populates="nutrition_goals")


Index("idx_meals_user_date", Meal.user_id, Meal.log_date)
