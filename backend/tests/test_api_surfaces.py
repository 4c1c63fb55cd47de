"""End-to-end checks of the CRUD (/api) and AI (/api/ai) routers."""
from __future__ import annotations

from datetime import date, timedelta

import pytest

from db.models import ExerciseSet
from utils.datetime_utils import today_utc


@pytest.fixture()
def owner(make_user):
    return make_user("owner@example.com")


@pytest.fixture()
def intruder(make_user):
    return make_user("intruder@example.com")


def _ai_session(client, headers, exercise_id, day="2026-03-02", status="PENDING", sets=None):
    return client.post(
        "/api/ai/sessions",
        headers=headers,
        json={
            "scheduled_date": day,
            "type": "strength",
            "status": status,
            "exercises": [{"exercise_id": exercise_id, "sets": sets or [{"reps": 10, "weight_kg": 40}]}],
        },
    )


def test_ai_session_created_once_per_day(client, owner, auth_headers, make_exercise):
    headers = auth_headers(owner)
    bench = make_exercise()

    created = _ai_session(client, headers, bench.id)
    assert created.status_code == 201
    assert created.json()["success"] is True
    assert created.json()["data"]["session_details"][0]["sets"][0]["reps"] == 10

    duplicate = _ai_session(client, headers, bench.id)
    assert duplicate.status_code == 409
    assert duplicate.json() == {
        "success": False,
        "error_code": "CONFLICT",
        "message": "Only one workout session is allowed per day.",
    }


def test_ai_surface_separates_forbidden_from_missing(client, owner, intruder, auth_headers, make_exercise):
    bench = make_exercise()
    session = _ai_session(client, auth_headers(owner), bench.id).json()["data"]
    set_id = session["session_details"][0]["sets"][0]["id"]

    foreign = client.put("/api/ai/sets", headers=auth_headers(intruder), json={"set_id": set_id, "reps": 1})
    assert foreign.status_code == 403
    assert foreign.json()["error_code"] == "ACCESS_DENIED"

    missing = client.put("/api/ai/sets", headers=auth_headers(intruder), json={"set_id": 999999, "reps": 1})
    assert missing.status_code == 404
    assert missing.json()["error_code"] == "ENTITY_NOT_FOUND"

    crud = client.get(f"/api/workouts/{session['id']}", headers=auth_headers(intruder))
    assert crud.status_code == 404
    assert crud.json()["message"] == "Workout session not found"


def test_ai_batch_delete_rejects_mixed_ownership(client, db, owner, intruder, auth_headers, make_exercise):
    bench = make_exercise()
    mine = _ai_session(client, auth_headers(owner), bench.id).json()["data"]
    theirs = _ai_session(client, auth_headers(intruder), bench.id).json()["data"]
    ids = [mine["session_details"][0]["sets"][0]["id"], theirs["session_details"][0]["sets"][0]["id"]]

    response = client.request("DELETE", "/api/ai/sets", headers=auth_headers(owner), json={"ids": ids})
    assert response.status_code == 403
    assert db.query(ExerciseSet).count() == 2

    empty = client.request("DELETE", "/api/ai/sets", headers=auth_headers(owner), json={"ids": []})
    assert empty.status_code == 400
    assert empty.json()["error_code"] == "VALIDATION_ERROR"


def test_ai_set_logging_updates_detail_status(client, owner, auth_headers, make_exercise):
    headers = auth_headers(owner)
    bench = make_exercise()
    session = _ai_session(client, headers, bench.id).json()["data"]
    detail_id = session["session_details"][0]["id"]
    first_set = session["session_details"][0]["sets"][0]["id"]

    added = client.post(
        "/api/ai/sets", headers=headers, json={"session_detail_id": detail_id, "reps": 8, "weight_kg": 45, "status": True}
    )
    assert added.status_code == 201
    assert added.json()["data"]["status"] == "COMPLETED"

    client.put("/api/ai/sets", headers=headers, json={"set_id": first_set, "status": "COMPLETED"})
    details = client.get("/api/ai/session-details", headers=headers, params={"session_id": session["id"]})
    assert details.json()["data"][0]["status"] == "COMPLETED"

    listed = client.get("/api/ai/sets", headers=headers, params={"session_detail_id": detail_id})
    assert [row["reps"] for row in listed.json()["data"]] == [10, 8]


def test_ai_batch_status_completes_and_scores(client, owner, auth_headers, make_exercise):
    headers = auth_headers(owner)
    bench = make_exercise(difficulty=2.0)
    session = _ai_session(client, headers, bench.id).json()["data"]

    updated = client.put("/api/ai/sessions", headers=headers, json={"ids": [session["id"]], "status": "COMPLETED"})
    assert updated.json() == {"success": True, "data": {"updated": 1}}

    fetched = client.get("/api/ai/sessions", headers=headers, params={"id": session["id"]})
    assert fetched.json()["data"][0]["gr_score"] == 800
    assert fetched.json()["data"][0]["status"] == "COMPLETED"


def test_ai_meal_foods_flow(client, owner, intruder, auth_headers, make_food):
    headers = auth_headers(owner)
    oats = make_food("Oats", calories_per_serving=100, protein_per_serving=4)

    meals = client.post("/api/ai/meals", headers=headers, json={"type": "breakfast"})
    assert meals.status_code == 201
    meal_id = meals.json()["data"][0]["id"]
    assert meals.json()["data"][0]["log_date"] == today_utc().isoformat()

    added = client.post(
        "/api/ai/meal-foods", headers=headers, json={"meal_id": meal_id, "foods": [{"food_id": oats.id, "numbers_of_serving": 2}]}
    )
    assert added.status_code == 201

    updated = client.put(
        "/api/ai/meal-foods", headers=headers, json={"meal_id": meal_id, "foods": [{"food_id": oats.id, "numbers_of_serving": 3}]}
    )
    assert updated.json()["data"]["total_calories"] == 300.0

    foreign = client.get(f"/api/ai/meal-foods/{meal_id}", headers=auth_headers(intruder))
    assert foreign.status_code == 403

    listed = client.get(f"/api/ai/meal-foods/{meal_id}", headers=headers)
    detail_id = listed.json()["data"][0]["id"]
    deleted = client.request("DELETE", "/api/ai/meal-foods", headers=headers, json={"ids": [detail_id]})
    assert deleted.json()["data"] == {"deleted": 1}


def test_crud_meal_includes_totals(client, owner, auth_headers, make_food):
    headers = auth_headers(owner)
    rice = make_food("Rice", calories_per_serving=100, carbs_per_serving=22.5)

    created = client.post(
        "/api/meals",
        headers=headers,
        json={"meal_type": "lunch", "log_date": "2026-03-02", "details": [{"food_id": rice.id, "numbers_of_serving": 2}]},
    )
    assert created.status_code == 201
    meal_id = created.json()["data"]["id"]

    fetched = client.get(f"/api/meals/{meal_id}", headers=headers)
    data = fetched.json()["data"]
    assert data["total_calories"] == 200.0
    assert data["total_carbs"] == 45.0
    assert data["total_zinc"] == 0.0

    assert client.delete(f"/api/meals/{meal_id}", headers=headers).status_code == 200
    assert client.get(f"/api/meals/{meal_id}", headers=headers).status_code == 404


def test_crud_override_rules(client, owner, intruder, make_user, auth_headers):
    admin = make_user("admin@example.com", role="admin")

    denied = client.get("/api/workouts", headers=auth_headers(intruder), params={"userId": owner.id})
    assert denied.status_code == 403

    allowed = client.get("/api/workouts", headers=auth_headers(admin), params={"userId": owner.id})
    assert allowed.status_code == 200
    assert allowed.json()["data"] == []


def test_crud_workout_logs_and_planned_exercises(client, owner, auth_headers, make_exercise):
    headers = auth_headers(owner)
    bench = make_exercise()
    row = make_exercise("Row", category="Back")

    created = client.post("/api/workouts", headers=headers, json={"scheduled_date": "2026-03-02"})
    assert created.status_code == 201
    session_id = created.json()["data"]["id"]

    planned = client.post(
        f"/api/workouts/{session_id}/session-details",
        headers=headers,
        json={"exercises": [{"exercise_id": bench.id, "planned_sets": 2, "planned_reps": 10}, {"exercise_id": row.id, "planned_sets": 1}]},
    )
    assert planned.status_code == 201
    bench_detail = planned.json()["data"][0]
    assert len(bench_detail["sets"]) == 2

    log = client.post(
        "/api/workouts/logs", headers=headers, json={"session_detail_id": bench_detail["id"], "reps": 12, "weight_kg": 20}
    )
    assert log.status_code == 201
    updated = client.put("/api/workouts/logs", headers=headers, json={"log_id": log.json()["data"]["id"], "weight_kg": 25})
    assert updated.json()["data"]["weight_kg"] == 25.0

    removed = client.request(
        "DELETE", f"/api/workouts/{session_id}/session-details", headers=headers, json={"session_detail_id": bench_detail["id"]}
    )
    assert removed.status_code == 200
    remaining = client.get(f"/api/workouts/{session_id}", headers=headers).json()["data"]["session_details"]
    assert [d["exercise_id"] for d in remaining] == [row.id]


def test_summary_endpoint_calendar_week(client, owner, auth_headers, make_exercise, make_food):
    headers = auth_headers(owner)
    bench = make_exercise(category="Chest")
    squat = make_exercise("Squat", category="Legs")
    start = date(2026, 3, 2)

    for offset, exercise_id in ((0, bench.id), (1, squat.id)):
        client.post(
            "/api/workouts",
            headers=headers,
            json={
                "scheduled_date": (start + timedelta(days=offset)).isoformat(),
                "status": "COMPLETED",
                "exercises": [{"exercise_id": exercise_id, "sets": [{"reps": 10, "weight_kg": 50}]}],
            },
        )
    client.post(
        "/api/workouts",
        headers=headers,
        json={
            "scheduled_date": (start - timedelta(days=3)).isoformat(),
            "status": "COMPLETED",
            "exercises": [{"exercise_id": bench.id, "sets": [{"reps": 10, "weight_kg": 50}]}],
        },
    )
    food = make_food("Shake", calories_per_serving=700, protein_per_serving=70)
    client.post(
        "/api/meals",
        headers=headers,
        json={"meal_type": "snack", "log_date": start.isoformat(), "details": [{"food_id": food.id}]},
    )

    response = client.get(
        "/api/summary", headers=headers, params={"period_type": "weekly", "period_start": start.isoformat()}
    )
    assert response.status_code == 200
    summary = response.json()["data"]
    assert summary["period_start"] == "2026-03-02"
    assert summary["period_end"] == "2026-03-09"
    assert summary["total_workouts"] == 2
    assert summary["gr_score"] == 1000
    assert summary["gr_score_change"] == 100
    assert summary["longest_streak"] == 2
    assert summary["total_volume"] == 1000
    assert {e["name"]: e["value"] for e in summary["muscle_split"]} == {"Chest": 50, "Legs": 50}
    assert summary["calories_avg"] == 100
    assert summary["protein_avg"] == 10


def test_progress_rejects_unknown_period(client, owner, auth_headers):
    response = client.get("/api/progress", headers=auth_headers(owner), params={"period": "yearly"})
    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.parametrize("period_type", ["daily", "WEEKLY", "monthy"])
def test_summary_rejects_unknown_period_type(client, owner, auth_headers, period_type):
    response = client.get("/api/summary", headers=auth_headers(owner), params={"period_type": period_type})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_goals_upsert_and_active_lookup(client, owner, auth_headers):
    headers = auth_headers(owner)
    client.post("/api/nutrition/goals", headers=headers, json={"start_date": "2026-01-01", "calories_target": 2000})
    client.post("/api/nutrition/goals", headers=headers, json={"start_date": "2026-03-01", "calories_target": 2200})
    client.post("/api/nutrition/goals", headers=headers, json={"start_date": "2026-03-01", "protein_target_g": 150})

    march = client.get("/api/nutrition/goals", headers=headers, params={"date": "2026-03-15"}).json()["data"]
    assert march["calories_target"] == 2200
    assert march["protein_target_g"] == 150

    feb = client.get("/api/nutrition/goals", headers=headers, params={"date": "2026-02-10"}).json()["data"]
    assert feb["calories_target"] == 2000

    before = client.get("/api/nutrition/goals", headers=headers, params={"date": "2025-12-31"}).json()
    assert before["data"] is None


def test_catalog_endpoints(client, make_food, make_exercise):
    make_food("Oat Milk")
    make_food("Rice")
    make_exercise("Deadlift", category="Back")

    foods = client.get("/api/foods", params={"search": "oat"}).json()["data"]
    assert [f["name"] for f in foods] == ["Oat Milk"]
    exercises = client.get("/api/exercises").json()["data"]
    assert exercises[0]["name"] == "Deadlift"

    assert client.get("/api/health").json()["status"] == "ok"
