from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("MAIL_ENABLED", "false")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from auth.utils import create_token, hash_password  # noqa: E402
from db.database import Base, create_db_engine, get_db  # noqa: E402
from db.models import Exercise, Food, User  # noqa: E402
from main import app  # noqa: E402
from services.email_service import get_email_service  # noqa: E402


class RecordingMailer:
    """Stands in for EmailService; keeps verification messages in memory."""

    def __init__(self):
        self.sent: list[dict] = []

    def send_verification_email(self, to_email: str, code: str, token: str) -> bool:
        self.sent.append({"to": to_email, "code": code, "token": token})
        return True


@pytest.fixture()
def engine():
    test_engine = create_db_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def mailer():
    return RecordingMailer()


@pytest.fixture()
def client(session_factory, mailer):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_email_service] = lambda: mailer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(email: str | None = None, *, role: str = "user", verified: bool = True, password: str = "secret123") -> User:
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            password_hash=hash_password(password),
            fullname=f"User {counter['n']}",
            phone="0123456789",
            role=role,
            verified=verified,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_token(user.id, user.email, user.role)}"}

    return _headers


@pytest.fixture()
def make_exercise(db):
    def _make(name: str = "Bench Press", *, category: str | None = "Chest", type: str = "strength", difficulty: float = 1.0) -> Exercise:
        exercise = Exercise(name=name, category=category, type=type, difficulty_factor=difficulty)
        db.add(exercise)
        db.commit()
        db.refresh(exercise)
        return exercise

    return _make


@pytest.fixture()
def make_food(db):
    def _make(name: str = "Oats", **per_serving) -> Food:
        food = Food(name=name, serving_type="serving", **per_serving)
        db.add(food)
        db.commit()
        db.refresh(food)
        return food

    return _make
