import asyncio
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from mongomock_motor import AsyncMongoMockClient

# Allow importing from backend/tourism
sys.path.insert(0, str(Path(__file__).parent.parent))

from tourism.core.config import JWT_ALGORITHM, JWT_SECRET
from tourism.db import database
from tourism.main import app
from tourism.models.touristguide import TouristGuide
from tourism.models.user import User


def days_from_today(days: int):
    """A UTC calendar date relative to today."""
    return datetime.utcnow().date() + timedelta(days=days)


def midnight(days: int) -> datetime:
    d = days_from_today(days)
    return datetime(d.year, d.month, d.day)


def auth_headers(user_id, is_admin: bool = False) -> dict:
    token = jwt.encode({"id": str(user_id), "isAdmin": is_admin}, JWT_SECRET, algorithm=JWT_ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def db(monkeypatch):
    """In-memory MongoDB swapped in for the real connection, indexes included."""
    client = AsyncMongoMockClient()
    mock_db = client["tourism_test"]
    monkeypatch.setattr(database, "_client", client)
    monkeypatch.setattr(database, "_database", mock_db)
    asyncio.run(database.init_indexes())
    return mock_db


@pytest.fixture
def client(db):
    # Not used as a context manager, so the lifespan (real MongoDB ping) never runs
    return TestClient(app)


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(**overrides) -> dict:
        counter["n"] += 1
        fields = {
            "username": f"traveller{counter['n']}",
            "email": f"traveller{counter['n']}@example.com",
            "city": "Kathmandu",
        }
        fields.update(overrides)
        doc = User(**fields).model_dump()
        result = asyncio.run(db.users.insert_one(doc))
        doc["_id"] = result.inserted_id
        return doc

    return _make_user


@pytest.fixture
def make_guide(db, make_user):
    counter = {"n": 0}

    def _make_guide(**overrides) -> dict:
        counter["n"] += 1
        owner = overrides.pop("owner", None) or make_user(role="tourist guide")
        fields = {
            "user_id": str(owner["_id"]),
            "name": owner["username"],
            "email": owner["email"],
            "location": "Pokhara",
            "language": "Nepali",
            "experience": 4,
            "contact_number": "9800000000",
            "license_number": f"TCB/TG(KASKI)-12/{1000 + counter['n']}",
            "category": ["Trekking"],
            "price_per_day": 2000,
            "max_group_size": 5,
        }
        fields.update(overrides)
        doc = TouristGuide(**fields).model_dump()
        result = asyncio.run(db.touristguides.insert_one(doc))
        doc["_id"] = result.inserted_id
        doc["owner"] = owner
        return doc

    return _make_guide


@pytest.fixture
def find_guide(db):
    def _find_guide(guide_id) -> dict:
        return asyncio.run(db.touristguides.find_one({"_id": guide_id}))

    return _find_guide


@pytest.fixture
def insert_booking(db):
    """Write a booking straight to the collection, bypassing the protocol."""

    def _insert_booking(guide: dict, user: dict, start_days: int, end_days: int, status="confirmed") -> dict:
        doc = {
            "user_id": str(user["_id"]),
            "guide_id": str(guide["_id"]),
            "start_date": midnight(start_days),
            "end_date": midnight(end_days),
            "group_size": 2,
            "total_price": 1000,
            "payment_method": "cash",
            "status": status,
            "created_at": datetime.utcnow(),
            "updated_at": datetime.utcnow(),
        }
        result = asyncio.run(db.bookings.insert_one(doc))
        doc["_id"] = result.inserted_id
        return doc

    return _insert_booking
