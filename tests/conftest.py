"""
Shared pytest fixtures.

Uses a file-backed SQLite database so no Postgres is required for tests.
Every test works with its own random user ids, so rows left by other tests
never change its assertions.
"""
import os

SQLITE_URL = "sqlite:///./test_baseline.db"

os.environ.setdefault("DATABASE_URL", SQLITE_URL)
os.environ.setdefault("BASELINE_MAX_WORKERS", "1")

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.db.base import Base, get_db, get_session_factory
from app.main import app
from app.models.baseline import BaselineMetrics, CALCULATION_METHOD
from app.models.medication import Medication
from app.models.sensor_sample import SensorSample

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Fixed reference instant for service-level tests.
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def override_get_session_factory():
    return TestingSessionLocal


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = override_get_session_factory
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def user_id() -> str:
    return f"user-{uuid.uuid4()}"


@pytest.fixture()
def now() -> datetime:
    return NOW


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------

@pytest.fixture()
def add_samples(db):
    """
    add_samples(user_id, metric_type, values, now=NOW, per_day=1)

    values[i] is stored i days before `now` (values[0] = today). With
    per_day > 1 each day gets that many identical readings an hour apart.
    """
    def _add(user_id, metric_type, values, now=NOW, per_day=1):
        for i, value in enumerate(values):
            for k in range(per_day):
                db.add(SensorSample(
                    user_id=user_id,
                    metric_type=metric_type,
                    metric_value=float(value),
                    sample_time=now - timedelta(days=i) - timedelta(hours=k),
                ))
        db.commit()
    return _add


@pytest.fixture()
def add_medication(db):
    def _add(user_id, created_at):
        db.add(Medication(
            user_id=user_id,
            med_name="sertraline",
            dosage="50mg",
            schedule="daily",
            start_date=created_at.date(),
            created_at=created_at,
        ))
        db.commit()
    return _add


@pytest.fixture()
def add_baseline(db):
    def _add(user_id, updated_at, **metrics):
        row = BaselineMetrics(
            user_id=user_id,
            calculation_method=CALCULATION_METHOD,
            window_days=60,
            medication_changes_detected=False,
            created_at=updated_at,
            updated_at=updated_at,
            **metrics,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    return _add


@pytest.fixture()
def session_factory():
    return TestingSessionLocal
