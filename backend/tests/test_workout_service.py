from __future__ import annotations

from datetime import date

import pytest

from db.models import ExerciseSet, SessionDetail, WorkoutSession
from services import workout_service
from services.errors import AccessDenied, EntityNotFound, SessionAlreadyExists, ValidationFailed
from services.ownership import SET_CHAIN, verify_chain


def _create(db, user, exercises, status=None, day=date(2026, 3, 2)):
    session = workout_service.create_session(
        db, user.id, scheduled_date=day, session_type="push", status=status, exercises=exercises
    )
    db.commit()
    return session


def test_create_session_groups_entries_per_exercise(db, make_user, make_exercise):
    user = make_user()
    bench = make_exercise("Bench Press")
    session = _create(db, user, [
        {"exercise_id": bench.id, "sets": [{"reps": 10, "weight_kg": 50, "status": True}]},
        {"exercise_id": bench.id, "sets": [{"actual_reps": 8, "weight": 55, "status": "COMPLETED"}]},
    ])

    details = db.query(SessionDetail).filter(SessionDetail.session_id == session.id).all()
    assert len(details) == 1
    assert [(s.reps, s.weight_kg) for s in details[0].sets] == [(10, 50.0), (8, 55.0)]
    assert details[0].status == "COMPLETED"
    assert session.status == "PENDING"
    assert session.gr_score is None


def test_flat_entry_expands_into_identical_sets(db, make_user, make_exercise):
    user = make_user()
    squat = make_exercise("Squat", category="Legs")
    session = _create(db, user, [
        {"exercise_id": squat.id, "actual_sets": 3, "actual_reps": 5, "weight_kg": 100},
    ])
    rows = db.query(ExerciseSet).join(SessionDetail).filter(SessionDetail.session_id == session.id).all()
    assert len(rows) == 3
    assert {(r.reps, r.weight_kg, r.status) for r in rows} == {(5, 100.0, "UNFINISHED")}


def test_cardio_sets_only_carry_duration(db, make_user, make_exercise):
    user = make_user()
    run = make_exercise("Treadmill", category="Cardio", type="cardio")
    session = _create(db, user, [
        {"exercise_id": run.id, "sets": [{"reps": 12, "weight_kg": 40, "duration": 900}]},
    ])
    row = session.details[0].sets[0]
    assert (row.reps, row.weight_kg, row.duration) == (0, 0, 900)

    with pytest.raises(ValidationFailed):
        workout_service.update_set(db, user.id, row.id, {"reps": 10})
    db.rollback()

    workout_service.update_set(db, user.id, row.id, {"duration": 1200})
    db.commit()
    db.refresh(row)
    assert (row.reps, row.weight_kg, row.duration) == (0, 0, 1200)


def test_strength_set_rejects_duration(db, make_user, make_exercise):
    user = make_user()
    bench = make_exercise()
    session = _create(db, user, [{"exercise_id": bench.id, "sets": [{"reps": 10, "weight_kg": 40}]}])
    row = session.details[0].sets[0]

    with pytest.raises(ValidationFailed):
        workout_service.update_set(db, user.id, row.id, {"duration": 60})


def test_completed_session_gets_score_and_recomputes(db, make_user, make_exercise):
    user = make_user()
    bench = make_exercise(difficulty=1.5)
    session = _create(
        db, user, [{"exercise_id": bench.id, "sets": [{"reps": 10, "weight_kg": 40}]}], status="COMPLETED"
    )
    assert session.gr_score == 600

    workout_service.update_session(db, user.id, session.id, {"status": "COMPLETED"})
    db.commit()
    assert session.gr_score == 600

    row = session.details[0].sets[0]
    workout_service.update_set(db, user.id, row.id, {"weight_kg": 50})
    db.commit()
    assert session.gr_score == 600

    workout_service.update_session(db, user.id, session.id, {"completed": True})
    db.commit()
    assert session.gr_score == 750
    assert session.status == "COMPLETED"


def test_set_mutations_recompute_detail_status(db, make_user, make_exercise):
    user = make_user()
    bench = make_exercise()
    session = _create(db, user, [{"exercise_id": bench.id, "sets": [{"reps": 10, "weight_kg": 40, "status": True}]}])
    detail = session.details[0]
    assert detail.status == "COMPLETED"

    new_set = workout_service.create_set(db, user.id, detail.id, {"reps": 8, "weight_kg": 40})
    db.commit()
    assert detail.status == "UNFINISHED"

    workout_service.update_set(db, user.id, new_set.id, {"status": False})
    workout_service.update_set(db, user.id, new_set.id, {"status": "completed"})
    db.commit()
    assert detail.status == "COMPLETED"

    workout_service.delete_sets(db, user.id, [s.id for s in detail.sets])
    db.commit()
    db.refresh(detail)
    assert detail.status == "UNFINISHED"


def test_one_session_per_day(db, make_user):
    user = make_user()
    _create(db, user, [])
    with pytest.raises(SessionAlreadyExists):
        _create(db, user, [])


def test_storage_conflict_maps_to_session_already_exists(db, make_user):
    user = make_user()
    # pending row invisible to the pre-check because autoflush is off
    db.add(WorkoutSession(user_id=user.id, scheduled_date=date(2026, 3, 2), status="PENDING"))
    with pytest.raises(SessionAlreadyExists):
        workout_service.create_session(db, user.id, scheduled_date=date(2026, 3, 2))
    db.rollback()


def test_unknown_exercise_is_not_found(db, make_user):
    user = make_user()
    with pytest.raises(EntityNotFound):
        _create(db, user, [{"exercise_id": 999, "sets": [{"reps": 1}]}])


def test_ownership_chain_distinguishes_missing_and_foreign(db, make_user, make_exercise):
    owner = make_user()
    intruder = make_user()
    bench = make_exercise()
    session = _create(db, owner, [{"exercise_id": bench.id, "sets": [{"reps": 5, "weight_kg": 20}]}])
    set_id = session.details[0].sets[0].id

    assert verify_chain(db, SET_CHAIN, set_id, owner.id).id == set_id
    with pytest.raises(AccessDenied):
        verify_chain(db, SET_CHAIN, set_id, intruder.id)
    with pytest.raises(EntityNotFound):
        verify_chain(db, SET_CHAIN, 424242, owner.id)


def test_batch_delete_is_all_or_nothing(db, make_user, make_exercise):
    owner = make_user()
    other = make_user()
    bench = make_exercise()
    mine = _create(db, owner, [{"exercise_id": bench.id, "sets": [{"reps": 5}, {"reps": 6}]}])
    theirs = _create(db, other, [{"exercise_id": bench.id, "sets": [{"reps": 7}]}])
    ids = [s.id for s in mine.details[0].sets] + [theirs.details[0].sets[0].id]

    with pytest.raises(AccessDenied):
        workout_service.delete_sets(db, owner.id, ids)
    db.rollback()
    assert db.query(ExerciseSet).count() == 3

    with pytest.raises(ValidationFailed):
        workout_service.delete_sets(db, owner.id, [])


def test_delete_sessions_removes_children(db, make_user, make_exercise):
    user = make_user()
    bench = make_exercise()
    session = _create(db, user, [{"exercise_id": bench.id, "sets": [{"reps": 5}]}])

    assert workout_service.delete_sessions(db, user.id, [session.id, session.id]) == 1
    db.commit()
    assert db.query(WorkoutSession).count() == 0
    assert db.query(SessionDetail).count() == 0
    assert db.query(ExerciseSet).count() == 0


def test_planned_exercises_skip_existing(db, make_user, make_exercise):
    user = make_user()
    bench = make_exercise()
    row = make_exercise("Row", category="Back")
    session = _create(db, user, [{"exercise_id": bench.id, "sets": [{"reps": 5}]}])

    added = workout_service.add_planned_exercises(db, user.id, session.id, [
        {"exercise_id": bench.id, "planned_sets": 3, "planned_reps": 10},
        {"exercise_id": row.id, "planned_sets": 3, "planned_reps": 12},
    ])
    db.commit()
    assert [d.exercise_id for d in added] == [row.id]
    assert [(s.reps, s.status) for s in added[0].sets] == [(12, "UNFINISHED")] * 3


def test_list_sessions_by_month(db, make_user):
    user = make_user()
    _create(db, user, [], day=date(2026, 2, 27))
    _create(db, user, [], day=date(2026, 3, 2))
    march = workout_service.list_sessions(db, user.id, month="2026-03")
    assert [s.scheduled_date for s in march] == [date(2026, 3, 2)]
    with pytest.raises(ValidationFailed):
        workout_service.list_sessions(db, user.id, month="March")
