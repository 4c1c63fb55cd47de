import logging
from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy.orm import Session, selectinload

from db.models import Meal, MealDetail, SessionDetail, WorkoutSession
from services.aggregation import (
    change_pct,
    longest_streak,
    muscle_split,
    nutrition_averages,
    round_half_up,
    total_volume,
)
from services.errors import ValidationFailed
from utils.datetime_utils import first_of_next_month, today_utc

logger = logging.getLogger(__name__)

VALID_PERIODS = {"weekly", "monthly"}
ROLLING_DAYS = {"weekly": 7, "monthly": 30}


@dataclass(frozen=True)
class PeriodWindow:
    period: str
    start: date
    end: date  # exclusive
    previous_start: date
    previous_end: date  # exclusive, equals start
    calendar_aligned: bool

    @property
    def days(self) -> int:
        return max((self.end - self.start).days, 1)


def period_window(period: str, explicit_start: date | None = None, today: date | None = None) -> PeriodWindow:
    """
    Rolling mode (no explicit start): the last N days including today.
    Calendar mode (explicit start): a week from start, or start up to the first
    day of the following month. The previous window has the same number of days
    and ends where the current one starts.
    """
    if period not in VALID_PERIODS:
        raise ValidationFailed(f"period must be one of {sorted(VALID_PERIODS)}")

    if explicit_start is None:
        days = ROLLING_DAYS[period]
        end = (today or today_utc()) + timedelta(days=1)
        start = end - timedelta(days=days)
        return PeriodWindow(period, start, end, start - timedelta(days=days), start, False)

    start = explicit_start
    if period == "weekly":
        return PeriodWindow(period, start, start + timedelta(days=7), start - timedelta(days=7), start, True)
    end = first_of_next_month(start)
    return PeriodWindow(period, start, end, start - (end - start), start, True)


def _completed_sessions(db: Session, user_id: int, start: date, end: date) -> list[WorkoutSession]:
    return (
        db.query(WorkoutSession)
        .options(
            selectinload(WorkoutSession.details).selectinload(SessionDetail.exercise),
            selectinload(WorkoutSession.details).selectinload(SessionDetail.sets),
        )
        .filter(
            WorkoutSession.user_id == user_id,
            WorkoutSession.status == "COMPLETED",
            WorkoutSession.scheduled_date >= start,
            WorkoutSession.scheduled_date < end,
        )
        .order_by(WorkoutSession.scheduled_date.asc())
        .all()
    )


def _meals_in_window(db: Session, user_id: int, start: date, end: date) -> list[Meal]:
    return (
        db.query(Meal)
        .options(selectinload(Meal.details).selectinload(MealDetail.food))
        .filter(Meal.user_id == user_id, Meal.log_date >= start, Meal.log_date < end)
        .all()
    )


def get_summary(
    db: Session,
    user_id: int,
    period: str = "weekly",
    explicit_start: date | None = None,
    today: date | None = None,
) -> dict:
    window = period_window(period, explicit_start, today)

    sessions = _completed_sessions(db, user_id, window.start, window.end)
    previous_sessions = _completed_sessions(db, user_id, window.previous_start, window.previous_end)
    meals = _meals_in_window(db, user_id, window.start, window.end)

    gr_score = sum(s.gr_score or 0 for s in sessions)
    previous_gr_score = sum(s.gr_score or 0 for s in previous_sessions)

    summary = {
        "period": window.period,
        "period_start": window.start.isoformat(),
        "period_end": window.end.isoformat(),
        "total_workouts": len(sessions),
        "total_volume": total_volume(sessions),
        "gr_score": round_half_up(gr_score),
        "gr_score_change": change_pct(gr_score, previous_gr_score),
        "longest_streak": longest_streak(s.scheduled_date for s in sessions),
        "muscle_split": muscle_split(sessions),
        **nutrition_averages(meals, window.days),
    }
    logger.debug(
        "Summary for user %s %s [%s, %s): %s workouts",
        user_id, window.period, window.start, window.end, summary["total_workouts"],
    )
    return summary
