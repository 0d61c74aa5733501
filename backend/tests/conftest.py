import os

# Settings are read once at import time, so the environment must be in place
# before anything under app/ is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ["ENV"] = "dev"
os.environ["API_AUTH_KEY"] = ""
os.environ["REFRESH_MIN_INTERVAL_SECONDS"] = "0"
os.environ["TOPIC_EXTRACTION_ENABLED"] = "false"
os.environ["OPENAI_API_KEY"] = ""
os.environ["OPENROUTER_API_KEY"] = ""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.db import Base, get_db
from app.models.company import Company
from app.models.data_point import DataPoint  # noqa: F401
from app.models.report import Report  # noqa: F401


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def company(db):
    acme = Company(name="Acme", owner_user_id="user-1")
    db.add(acme)
    db.commit()
    db.refresh(acme)
    return acme


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient

    from app.main import app

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
