from datetime import date
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from api.responses import crud_success
from api.schemas import (
    IdsRequest,
    PlannedExercisesRequest,
    SessionCreateRequest,
    SessionUpdateRequest,
    SetEntry,
)
from api.serializers import session_detail_to_dict, session_to_dict, set_to_dict
from auth.utils import AuthenticatedUser, get_identity, resolve_target_user
from db.database import get_db
from services import workout_service
from services.errors import ValidationFailed

router = APIRouter(prefix="/workouts", tags=["workouts"])


class WorkoutCreateRequest(SessionCreateRequest):
    userId: Optional[int] = None


class WorkoutUpdateRequest(SessionUpdateRequest):
    userId: Optional[int] = None


class SessionDetailDeleteRequest(BaseModel):
    session_detail_id: int


class LogCreateRequest(SetEntry):
    session_detail_id: int
    userId: Optional[int] = None


class LogUpdateRequest(SetEntry):
    set_id: Optional[int] = None
    log_id: Optional[int] = Field(default=None, description="Alias of set_id")


def _session_changes(req: SessionUpdateRequest) -> dict:
    return req.model_dump(exclude_unset=True, exclude={"session_id", "ids", "userId"})


@router.get("")
def list_workouts(
    user_id: Optional[int] = Query(default=None, alias="userId"),
    on_date: Optional[date] = Query(default=None, alias="date"),
    month: Optional[str] = None,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    target = resolve_target_user(identity, user_id, allow_override=True)
    sessions = workout_service.list_sessions(db, target, on_date=on_date, month=month)
    return crud_success([session_to_dict(s) for s in sessions])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_workout(
    req: WorkoutCreateRequest,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    target = resolve_target_user(identity, req.userId, allow_override=True)
    session = workout_service.create_session(
        db,
        target,
        scheduled_date=req.scheduled_date,
        session_type=req.type,
        notes=req.notes,
        status=req.status,
        exercises=[e.model_dump() for e in req.exercises],
    )
    db.commit()
    db.refresh(session)
    return crud_success(session_to_dict(session), "Workout session logged successfully")


@router.put("")
def update_workouts(
    req: WorkoutUpdateRequest,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    target = resolve_target_user(identity, req.userId, allow_override=True)
    if req.ids and req.status:
        updated = workout_service.batch_update_session_status(db, target, req.ids, req.status)
        db.commit()
        return crud_success({"updated": updated}, "Workout sessions updated")

    if req.session_id is None:
        raise ValidationFailed("session_id is required")
    session = workout_service.update_session(db, target, req.session_id, _session_changes(req))
    db.commit()
    db.refresh(session)
    return crud_success(session_to_dict(session), "Workout session updated")


@router.delete("")
def delete_workouts(
    req: IdsRequest = Body(...),
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    deleted = workout_service.delete_sessions(db, identity.user_id, req.ids)
    db.commit()
    return crud_success({"deleted": deleted}, "Workout sessions deleted")


# --- Set logs ---

@router.post("/logs", status_code=status.HTTP_201_CREATED)
def create_log(
    req: LogCreateRequest,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    row = workout_service.create_set(
        db, identity.user_id, req.session_detail_id, req.model_dump(exclude={"session_detail_id", "userId"})
    )
    db.commit()
    db.refresh(row)
    return crud_success(set_to_dict(row), "Log created")


@router.put("/logs")
def update_log(
    req: LogUpdateRequest,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    set_id = req.set_id if req.set_id is not None else req.log_id
    if set_id is None:
        raise ValidationFailed("set_id is required")
    row = workout_service.update_set(
        db, identity.user_id, set_id, req.model_dump(exclude_unset=True, exclude={"set_id", "log_id"})
    )
    db.commit()
    db.refresh(row)
    return crud_success(set_to_dict(row), "Log updated")


# --- Single session ---

@router.get("/{session_id}")
def get_workout(
    session_id: int,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    session = workout_service.get_session(db, identity.user_id, session_id)
    return crud_success(session_to_dict(session))


@router.put("/{session_id}")
def update_workout(
    session_id: int,
    req: SessionUpdateRequest,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    session = workout_service.update_session(db, identity.user_id, session_id, _session_changes(req))
    db.commit()
    db.refresh(session)
    return crud_success(session_to_dict(session), "Workout session updated")


@router.delete("/{session_id}")
def delete_workout(
    session_id: int,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    workout_service.delete_sessions(db, identity.user_id, [session_id])
    db.commit()
    return crud_success({"id": session_id}, "Workout session deleted")


@router.post("/{session_id}/session-details", status_code=status.HTTP_201_CREATED)
def add_planned_exercises(
    session_id: int,
    req: PlannedExercisesRequest,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    added = workout_service.add_planned_exercises(
        db, identity.user_id, session_id, [e.model_dump() for e in req.exercises]
    )
    db.commit()
    for detail in added:
        db.refresh(detail)
    return crud_success(
        [session_detail_to_dict(d) for d in added],
        f"Added {len(added)} exercise(s) to session",
    )


@router.delete("/{session_id}/session-details")
def delete_session_detail(
    session_id: int,
    req: SessionDetailDeleteRequest = Body(...),
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    workout_service.delete_session_detail(db, identity.user_id, session_id, req.session_detail_id)
    db.commit()
    return crud_success({"session_detail_id": req.session_detail_id}, "Exercise removed from session")
