"""Shared fixtures: in-memory SQLite, offline Redis/Kafka, API client."""

import os
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CAPTCHA_ENABLED"] = "false"
os.environ["TRACING_ENABLED"] = "false"

from app import catalog
from app.auth import require_admin
from app.database import enable_sqlite_savepoints, get_db
from app.main import app
from app.models import Admin, Base
from app.relationships import create_professor


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    session = sessionmaker(bind=engine, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def kafka_producer():
    """Every test runs with Redis unreachable and a mock Kafka producer."""
    with patch("app.cache.get_redis", side_effect=ConnectionError("redis offline")), \
            patch("app.kafka_producer.get_producer") as mock_get_producer:
        yield mock_get_producer.return_value


@pytest.fixture
def client(session):
    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[require_admin] = lambda: Admin(id=1, email="admin@test.io", name="Admin")
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def faculty(session):
    return catalog.create_faculty(session, "Engineering", "ENG")


@pytest.fixture
def other_faculty(session):
    return catalog.create_faculty(session, "Law", "LAW")


@pytest.fixture
def subject(session, faculty):
    return catalog.create_subject(session, faculty, "Algebra", credits=6)


@pytest.fixture
def second_subject(session, faculty):
    return catalog.create_subject(session, faculty, "Calculus", credits=6)


@pytest.fixture
def professor(session, faculty, subject):
    prof, _ = create_professor(session, faculty, "Ana Ruiz", [subject.id])
    return prof
