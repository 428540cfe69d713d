import os

# Settings must exist before the app modules are imported
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_agency_site.db")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from jose import jwt
from database import Base
from models import PageVisit, UserRole
from app import app, get_db
from fastapi.testclient import TestClient

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite:///./test_test.db")
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False} if TEST_DATABASE_URL.startswith("sqlite") else {})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="session", autouse=True)
def setup_database():
    # Create tables before any tests
    Base.metadata.create_all(bind=engine)
    yield
    # Drop tables after all tests
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.query(PageVisit).delete()
        db.query(UserRole).delete()
        db.commit()
        db.close()

@pytest.fixture
def client(db):
    # Override get_db dependency to use the test DB
    def override_get_db():
        yield db
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides = {}

def create_jwt(user_id="admin-user"):
    payload = {"sub": user_id, "email": f"{user_id}@example.com"}
    return jwt.encode(payload, os.environ["JWT_SECRET_KEY"], algorithm="HS256")

@pytest.fixture
def auth_headers():
    def _headers(user_id="admin-user"):
        return {"Authorization": f"Bearer {create_jwt(user_id)}"}
    return _headers
