"""Shared fixtures: an in-memory MongoDB and a TestClient wired to it."""

import os

# Ensure tests never reach real services
os.environ.setdefault("MONGODB_URI", "")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_fake")

import mongomock
import pytest
from fastapi.testclient import TestClient

from config import settings
from database import MEALS, create_document, get_db
from main import app


@pytest.fixture
def db():
    return mongomock.MongoClient()["localchefbazar"]


@pytest.fixture
def client(db, monkeypatch):
    monkeypatch.setattr(settings, "require_auth", False)
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def meal_id(db):
    result = create_document(db, MEALS, {"name": "Chicken Biryani", "price": 12.5, "quantity": 10, "chefId": "chef-1234"})
    return result["insertedId"]
