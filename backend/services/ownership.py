"""
Ownership verification for nested resources.

Each chain lists the hops from a leaf row up to the row that carries user_id.
Every hop is fetched by primary key; a missing hop is EntityNotFound, a root
owned by someone else is AccessDenied. The two outcomes are never merged here;
the HTTP layer decides how to present them.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy.orm import Session

from db.models import ExerciseSet, Meal, MealDetail, SessionDetail, WorkoutSession
from services.errors import AccessDenied, EntityNotFound, ValidationFailed


@dataclass(frozen=True)
class Hop:
    model: type
    label: str
    parent_attr: str | None = None  # column holding the next hop's id; None on the root


SESSION_CHAIN: tuple[Hop, ...] = (
    Hop(WorkoutSession, "Workout session"),
)
SESSION_DETAIL_CHAIN: tuple[Hop, ...] = (
    Hop(SessionDetail, "Session detail", "session_id"),
    *SESSION_CHAIN,
)
SET_CHAIN: tuple[Hop, ...] = (
    Hop(ExerciseSet, "Set", "session_detail_id"),
    *SESSION_DETAIL_CHAIN,
)
MEAL_CHAIN: tuple[Hop, ...] = (
    Hop(Meal, "Meal"),
)
MEAL_DETAIL_CHAIN: tuple[Hop, ...] = (
    Hop(MealDetail, "Meal detail", "meal_id"),
    *MEAL_CHAIN,
)


def verify_chain(db: Session, chain: tuple[Hop, ...], leaf_id: Any, user_id: int):
    """Return the leaf row once its root is confirmed to belong to user_id."""
    leaf = None
    row = None
    current_id = leaf_id
    for index, hop in enumerate(chain):
        row = db.get(hop.model, current_id) if current_id is not None else None
        if row is None:
            raise EntityNotFound(f"{hop.label} not found")
        if index == 0:
            leaf = row
        if hop.parent_attr is not None:
            current_id = getattr(row, hop.parent_attr)

    if row.user_id != user_id:
        raise AccessDenied(f"{chain[-1].label} does not belong to user", entity=chain[0].label)
    return leaf


def verify_chain_batch(db: Session, chain: tuple[Hop, ...], ids: Iterable[Any], user_id: int) -> list:
    """All-or-nothing: every id must pass before the caller touches any of them."""
    unique_ids = list(dict.fromkeys(ids))
    if not unique_ids:
        raise ValidationFailed("Missing or invalid ids array")
    return [verify_chain(db, chain, leaf_id, user_id) for leaf_id in unique_ids]


def owned_session(db: Session, session_id: int, user_id: int) -> WorkoutSession:
    return verify_chain(db, SESSION_CHAIN, session_id, user_id)


def owned_session_detail(db: Session, detail_id: int, user_id: int) -> SessionDetail:
    return verify_chain(db, SESSION_DETAIL_CHAIN, detail_id, user_id)


def owned_set(db: Session, set_id: int, user_id: int) -> ExerciseSet:
    return verify_chain(db, SET_CHAIN, set_id, user_id)


def owned_meal(db: Session, meal_id: int, user_id: int) -> Meal:
    return verify_chain(db, MEAL_CHAIN, meal_id, user_id)
