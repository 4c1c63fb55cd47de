"""Workout sessions, session details and sets.

Every public function works inside the caller's SQLAlchemy session and only
flushes; the router commits once, so a multi-row operation either lands whole
or not at all.
"""
from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date
from typing import Any, Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from db.models import (
    SESSION_STATUSES,
    SET_STATUSES,
    Exercise,
    ExerciseSet,
    SessionDetail,
    WorkoutSession,
)
from services.aggregation import compute_gr_score, derive_detail_status
from services.errors import Conflict, EntityNotFound, SessionAlreadyExists, ValidationFailed
from services.ownership import (
    SESSION_CHAIN,
    SESSION_DETAIL_CHAIN,
    SET_CHAIN,
    owned_session,
    owned_session_detail,
    owned_set,
    verify_chain_batch,
)
from utils.datetime_utils import month_bounds

logger = logging.getLogger(__name__)

DETAIL_STATUSES = {"PENDING", "COMPLETED", "UNFINISHED"}
STRENGTH_FIELDS = ("reps", "weight_kg")
CARDIO_FIELDS = ("duration",)


# --- Normalization helpers ---

def normalize_session_status(value: Any, default: str = "PENDING") -> str:
    if value is None:
        return default
    status = str(value).strip().upper()
    if status not in SESSION_STATUSES:
        raise ValidationFailed(f"status must be one of {list(SESSION_STATUSES)}")
    return status


def normalize_set_status(value: Any, default: str = "UNFINISHED") -> str:
    if value is None:
        return default
    if isinstance(value, bool):
        return "COMPLETED" if value else "UNFINISHED"
    status = str(value).strip().upper()
    if status not in SET_STATUSES:
        raise ValidationFailed("set status must be COMPLETED, UNFINISHED or a boolean")
    return status


def normalize_detail_status(value: Any, default: str = "PENDING") -> str:
    if value is None:
        return default
    status = str(value).strip().upper()
    if status not in DETAIL_STATUSES:
        raise ValidationFailed(f"status must be one of {sorted(DETAIL_STATUSES)}")
    return status


def _first_present(data: dict, *keys: str):
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def set_values(data: dict) -> dict:
    """Canonical set fields from the aliases clients send."""
    return {
        "reps": _first_present(data, "reps", "actual_reps"),
        "weight_kg": _first_present(data, "weight_kg", "weight"),
        "duration": _first_present(data, "duration", "duration_seconds"),
        "notes": data.get("notes"),
        "status": data.get("status"),
    }


def build_set_row(exercise: Exercise, data: dict, default_status: str = "UNFINISHED") -> ExerciseSet:
    values = set_values(data)
    row = ExerciseSet(
        notes=values["notes"],
        status=normalize_set_status(values["status"], default_status),
    )
    if exercise.is_cardio:
        row.reps = 0
        row.weight_kg = 0
        row.duration = int(values["duration"] or 0)
    else:
        row.reps = int(values["reps"] or 0)
        row.weight_kg = float(values["weight_kg"] or 0)
        row.duration = 0
    return row


def _load_exercises(db: Session, exercise_ids: Iterable[int]) -> dict[int, Exercise]:
    wanted = set(exercise_ids)
    found = {e.id: e for e in db.query(Exercise).filter(Exercise.id.in_(wanted)).all()} if wanted else {}
    missing = sorted(wanted - set(found))
    if missing:
        raise EntityNotFound(f"Exercise not found: {', '.join(str(m) for m in missing)}")
    return found


def _flush(db: Session, conflict: Exception) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        logger.info("Integrity violation translated to conflict: %s", exc.orig)
        raise conflict from exc


# --- Derived state ---

def recompute_detail_status(db: Session, detail: SessionDetail) -> str:
    db.flush()
    statuses = [
        row.status
        for row in db.query(ExerciseSet.status).filter(ExerciseSet.session_detail_id == detail.id).all()
    ]
    detail.status = derive_detail_status(statuses)
    return detail.status


def recompute_gr_score(db: Session, session: WorkoutSession) -> int:
    db.flush()
    details = (
        db.query(SessionDetail)
        .options(selectinload(SessionDetail.exercise), selectinload(SessionDetail.sets))
        .filter(SessionDetail.session_id == session.id)
        .all()
    )
    session.gr_score = compute_gr_score(details)
    logger.info("Session %s completed with gr_score=%s", session.id, session.gr_score)
    return session.gr_score


def _apply_status(db: Session, session: WorkoutSession, status: str) -> None:
    session.status = status
    if status == "COMPLETED":
        recompute_gr_score(db, session)


# --- Reads ---

def _sessions_query(db: Session):
    return db.query(WorkoutSession).options(
        selectinload(WorkoutSession.details).selectinload(SessionDetail.exercise),
        selectinload(WorkoutSession.details).selectinload(SessionDetail.sets),
    )


def list_sessions(
    db: Session,
    user_id: int,
    *,
    on_date: date | None = None,
    month: str | None = None,
) -> list[WorkoutSession]:
    query = _sessions_query(db).filter(WorkoutSession.user_id == user_id)
    if on_date is not None:
        query = query.filter(WorkoutSession.scheduled_date == on_date)
    elif month:
        try:
            start, end = month_bounds(month)
        except ValueError as exc:
            raise ValidationFailed(str(exc))
        query = query.filter(WorkoutSession.scheduled_date >= start, WorkoutSession.scheduled_date < end)
    return query.order_by(WorkoutSession.scheduled_date.desc()).all()


def get_session(db: Session, user_id: int, session_id: int) -> WorkoutSession:
    return owned_session(db, session_id, user_id)


def list_session_details(db: Session, user_id: int, session_id: int) -> list[SessionDetail]:
    session = owned_session(db, session_id, user_id)
    return list(session.details)


def list_sets(db: Session, user_id: int, detail_id: int) -> list[ExerciseSet]:
    detail = owned_session_detail(db, detail_id, user_id)
    return list(detail.sets)


# --- Sessions ---

def _group_exercise_entries(exercises: Iterable[dict]) -> "OrderedDict[int, list[dict]]":
    """One bucket per exercise id, in first-seen order, with the set lists merged."""
    grouped: OrderedDict[int, list[dict]] = OrderedDict()
    for entry in exercises:
        exercise_id = entry.get("exercise_id")
        if exercise_id is None:
            raise ValidationFailed("Each exercise must have exercise_id")
        exercise_id = int(exercise_id)
        if entry.get("sets"):
            sets = list(entry["sets"])
        else:
            count = max(int(entry.get("actual_sets") or 1), 1)
            sets = [
                {
                    "reps": entry.get("actual_reps"),
                    "weight_kg": entry.get("weight_kg"),
                    "duration": entry.get("duration_seconds"),
                    "notes": entry.get("notes"),
                    "status": entry.get("status"),
                }
                for _ in range(count)
            ]
        grouped.setdefault(exercise_id, []).extend(sets)
    return grouped


def create_session(
    db: Session,
    user_id: int,
    *,
    scheduled_date: date,
    session_type: str | None = None,
    notes: str | None = None,
    status: str | None = None,
    exercises: Iterable[dict] = (),
) -> WorkoutSession:
    status = normalize_session_status(status)
    existing = (
        db.query(WorkoutSession.id)
        .filter(WorkoutSession.user_id == user_id, WorkoutSession.scheduled_date == scheduled_date)
        .first()
    )
    if existing:
        raise SessionAlreadyExists()

    grouped = _group_exercise_entries(exercises)
    catalog = _load_exercises(db, grouped.keys())

    session = WorkoutSession(
        user_id=user_id,
        scheduled_date=scheduled_date,
        type=session_type,
        notes=notes,
        status=status,
        gr_score=None,
    )
    db.add(session)
    _flush(db, SessionAlreadyExists())

    for exercise_id, entries in grouped.items():
        exercise = catalog[exercise_id]
        detail = SessionDetail(session_id=session.id, exercise_id=exercise_id, status="UNFINISHED")
        db.add(detail)
        db.flush()
        for entry in entries:
            row = build_set_row(exercise, entry)
            row.session_detail_id = detail.id
            db.add(row)
        recompute_detail_status(db, detail)

    if status == "COMPLETED":
        recompute_gr_score(db, session)
    db.flush()
    logger.info(
        "Created workout session %s for user %s on %s with %d exercise(s)",
        session.id, user_id, scheduled_date, len(grouped),
    )
    return session


def update_session(db: Session, user_id: int, session_id: int, changes: dict) -> WorkoutSession:
    session = owned_session(db, session_id, user_id)

    if changes.get("scheduled_date") is not None:
        session.scheduled_date = changes["scheduled_date"]
    if changes.get("type") is not None:
        session.type = changes["type"]
    if "notes" in changes:
        session.notes = changes["notes"]
    _flush(db, SessionAlreadyExists())

    status = changes.get("status")
    if status is None and changes.get("completed") is not None:
        status = "COMPLETED" if changes["completed"] else "IN_PROGRESS"
    if status is not None:
        _apply_status(db, session, normalize_session_status(status))

    _flush(db, SessionAlreadyExists())
    return session


def batch_update_session_status(db: Session, user_id: int, ids: Iterable[int], status: str) -> int:
    status = normalize_session_status(status)
    sessions = verify_chain_batch(db, SESSION_CHAIN, ids, user_id)
    for session in sessions:
        _apply_status(db, session, status)
    db.flush()
    return len(sessions)


def delete_sessions(db: Session, user_id: int, ids: Iterable[int]) -> int:
    sessions = verify_chain_batch(db, SESSION_CHAIN, ids, user_id)
    for session in sessions:
        for detail in list(session.details):
            _delete_detail_tree(db, detail)
        db.delete(session)
    db.flush()
    logger.info("Deleted %d workout session(s) for user %s", len(sessions), user_id)
    return len(sessions)


# --- Session details ---

def _delete_detail_tree(db: Session, detail: SessionDetail) -> None:
    for row in list(detail.sets):
        db.delete(row)
    db.flush()
    db.delete(detail)


def add_session_detail(
    db: Session,
    user_id: int,
    session_id: int,
    exercise_id: int,
    status: str | None = None,
) -> SessionDetail:
    owned_session(db, session_id, user_id)
    _load_exercises(db, [exercise_id])
    duplicate = (
        db.query(SessionDetail.id)
        .filter(SessionDetail.session_id == session_id, SessionDetail.exercise_id == exercise_id)
        .first()
    )
    if duplicate:
        raise Conflict("Exercise already exists in this session")

    detail = SessionDetail(session_id=session_id, exercise_id=exercise_id, status=normalize_detail_status(status))
    db.add(detail)
    _flush(db, Conflict("Exercise already exists in this session"))
    return detail


def add_planned_exercises(db: Session, user_id: int, session_id: int, planned: Iterable[dict]) -> list[SessionDetail]:
    """Add exercises with planned_sets empty set rows each, skipping ones already present."""
    session = owned_session(db, session_id, user_id)
    planned = list(planned)
    catalog = _load_exercises(db, (int(p["exercise_id"]) for p in planned))
    present = {d.exercise_id for d in session.details}

    added: list[SessionDetail] = []
    for item in planned:
        exercise_id = int(item["exercise_id"])
        if exercise_id in present:
            continue
        present.add(exercise_id)
        exercise = catalog[exercise_id]
        detail = SessionDetail(session_id=session.id, exercise_id=exercise_id, status="UNFINISHED")
        db.add(detail)
        db.flush()
        for _ in range(int(item["planned_sets"])):
            row = build_set_row(
                exercise,
                {"reps": item.get("planned_reps"), "duration": item.get("planned_duration")},
            )
            row.session_detail_id = detail.id
            db.add(row)
        added.append(detail)
    db.flush()
    return added


def batch_update_detail_status(db: Session, user_id: int, ids: Iterable[int], status: str) -> int:
    status = normalize_detail_status(status)
    details = verify_chain_batch(db, SESSION_DETAIL_CHAIN, ids, user_id)
    for detail in details:
        detail.status = status
    db.flush()
    return len(details)


def delete_session_detail(db: Session, user_id: int, session_id: int, detail_id: int) -> None:
    detail = owned_session_detail(db, detail_id, user_id)
    if detail.session_id != session_id:
        raise ValidationFailed("Session detail does not belong to this session")
    _delete_detail_tree(db, detail)
    db.flush()


# --- Sets ---

def create_set(db: Session, user_id: int, detail_id: int, data: dict) -> ExerciseSet:
    detail = owned_session_detail(db, detail_id, user_id)
    exercise = _load_exercises(db, [detail.exercise_id])[detail.exercise_id]

    row = build_set_row(exercise, data)
    row.session_detail_id = detail.id
    db.add(row)
    recompute_detail_status(db, detail)
    db.flush()
    return row


def _reject_foreign_fields(exercise: Exercise, values: dict) -> None:
    forbidden = STRENGTH_FIELDS if exercise.is_cardio else CARDIO_FIELDS
    offending = [field for field in forbidden if values.get(field)]
    if offending:
        kind = "cardio" if exercise.is_cardio else "non-cardio"
        raise ValidationFailed(f"{', '.join(offending)} cannot be set on a {kind} exercise")


def update_set(db: Session, user_id: int, set_id: int, data: dict) -> ExerciseSet:
    row = owned_set(db, set_id, user_id)
    detail = row.session_detail
    exercise = _load_exercises(db, [detail.exercise_id])[detail.exercise_id]

    values = set_values(data)
    _reject_foreign_fields(exercise, values)
    if exercise.is_cardio:
        if values["duration"] is not None:
            row.duration = int(values["duration"])
    else:
        if values["reps"] is not None:
            row.reps = int(values["reps"])
        if values["weight_kg"] is not None:
            row.weight_kg = float(values["weight_kg"])
    if "notes" in data:
        row.notes = data["notes"]
    if values["status"] is not None:
        row.status = normalize_set_status(values["status"])

    recompute_detail_status(db, detail)
    db.flush()
    return row


def delete_sets(db: Session, user_id: int, ids: Iterable[int]) -> int:
    rows = verify_chain_batch(db, SET_CHAIN, ids, user_id)
    parents = {row.session_detail_id: row.session_detail for row in rows}
    for row in rows:
        db.delete(row)
    db.flush()
    for detail in parents.values():
        recompute_detail_status(db, detail)
    db.flush()
    return len(rows)
