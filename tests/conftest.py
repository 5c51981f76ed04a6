import os

# The app module builds its engine at import time; keep it off Postgres.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from blueprint_api import app
from database import models
from database.database import Base, build_engine, get_db


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def certification(db) -> models.Certification:
    cert = models.Certification(
        name="Security Fundamentals",
        code="SEC-101",
        description="Entry-level security exam",
        is_scored_exam=True,
        passing_score=750,
        max_score=900,
        is_active=True,
        is_archived=False,
    )
    db.add(cert)
    db.commit()
    db.refresh(cert)
    return cert


def build_blueprint(weights=(0.5, 0.5)) -> list[dict]:
    """
    Two domains, one objective each, two bullets per objective and a single
    sub-bullet on the very first bullet.
    """
    domains = []
    for index, weight in enumerate(weights):
        number = index + 1
        domains.append(
            {
                "name": f"Domain {number}",
                "weight": weight,
                "order": index,
                "objectives": [
                    {
                        "code": f"{number}.1",
                        "description": f"Objective {number}.1",
                        "difficulty": "intermediate",
                        "order": 0,
                        "bullets": [
                            {
                                "text": f"Bullet {number}.1.a",
                                "order": 0,
                                "sub_bullets": [{"text": "Only sub-bullet", "order": 0}] if index == 0 else [],
                            },
                            {"text": f"Bullet {number}.1.b", "order": 1},
                        ],
                    }
                ],
            }
        )
    return domains


@pytest.fixture
def sample_blueprint() -> list[dict]:
    return build_blueprint()
