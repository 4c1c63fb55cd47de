from typing import Optional

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from api.responses import ai_success
from api.schemas import (
    IdsRequest,
    IdsStatusRequest,
    SessionCreateRequest,
    SessionDetailCreateRequest,
    SessionUpdateRequest,
    SetCreateRequest,
    SetUpdateRequest,
)
from api.serializers import session_detail_to_dict, session_to_dict, set_to_dict
from auth.utils import AuthenticatedUser, get_identity
from db.database import get_db
from services import workout_service
from services.errors import ValidationFailed

router = APIRouter(prefix="/ai", tags=["ai-workouts"])


# --- Sessions ---

@router.get("/sessions")
def get_sessions(
    id: Optional[int] = None,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    if id is not None:
        session = workout_service.get_session(db, identity.user_id, id)
        return ai_success([session_to_dict(session)])
    sessions = workout_service.list_sessions(db, identity.user_id)
    return ai_success([session_to_dict(s) for s in sessions])


@router.post("/sessions", status_code=status.HTTP_201_CREATED)
def create_session(
    req: SessionCreateRequest,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    session = workout_service.create_session(
        db,
        identity.user_id,
        scheduled_date=req.scheduled_date,
        session_type=req.type,
        notes=req.notes,
        status=req.status,
        exercises=[e.model_dump() for e in req.exercises],
    )
    db.commit()
    db.refresh(session)
    return ai_success(session_to_dict(session))


@router.put("/sessions")
def update_sessions(
    req: SessionUpdateRequest,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    if req.ids and req.status:
        updated = workout_service.batch_update_session_status(db, identity.user_id, req.ids, req.status)
        db.commit()
        return ai_success({"updated": updated})

    if req.session_id is None:
        raise ValidationFailed("Missing session_id")
    changes = req.model_dump(exclude_unset=True, exclude={"session_id", "ids"})
    session = workout_service.update_session(db, identity.user_id, req.session_id, changes)
    db.commit()
    db.refresh(session)
    return ai_success(session_to_dict(session, include_details=False))


@router.delete("/sessions")
def delete_sessions(
    req: IdsRequest = Body(...),
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    deleted = workout_service.delete_sessions(db, identity.user_id, req.ids)
    db.commit()
    return ai_success({"deleted": deleted})


# --- Session details ---

@router.get("/session-details")
def get_session_details(
    session_id: int,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    details = workout_service.list_session_details(db, identity.user_id, session_id)
    return ai_success([session_detail_to_dict(d, include_sets=False) for d in details])


@router.post("/session-details", status_code=status.HTTP_201_CREATED)
def create_session_detail(
    req: SessionDetailCreateRequest,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    detail = workout_service.add_session_detail(db, identity.user_id, req.session_id, req.exercise_id, req.status)
    db.commit()
    db.refresh(detail)
    return ai_success(session_detail_to_dict(detail, include_sets=False))


@router.put("/session-details")
def update_session_details(
    req: IdsStatusRequest,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    updated = workout_service.batch_update_detail_status(db, identity.user_id, req.ids, req.status)
    db.commit()
    return ai_success({"updated": updated})


# --- Sets ---

@router.get("/sets")
def get_sets(
    session_detail_id: int,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    rows = workout_service.list_sets(db, identity.user_id, session_detail_id)
    return ai_success([set_to_dict(r) for r in rows])


@router.post("/sets", status_code=status.HTTP_201_CREATED)
def create_set(
    req: SetCreateRequest,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    row = workout_service.create_set(
        db, identity.user_id, req.session_detail_id, req.model_dump(exclude={"session_detail_id"})
    )
    db.commit()
    db.refresh(row)
    return ai_success(set_to_dict(row))


@router.put("/sets")
def update_set(
    req: SetUpdateRequest,
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    row = workout_service.update_set(
        db, identity.user_id, req.set_id, req.model_dump(exclude_unset=True, exclude={"set_id"})
    )
    db.commit()
    db.refresh(row)
    return ai_success(set_to_dict(row))


@router.delete("/sets")
def delete_sets(
    req: IdsRequest = Body(...),
    identity: AuthenticatedUser = Depends(get_identity),
    db: Session = Depends(get_db),
):
    deleted = workout_service.delete_sets(db, identity.user_id, req.ids)
    db.commit()
    return ai_success({"deleted": deleted})
