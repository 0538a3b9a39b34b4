"""Tests for the database helpers and the optional unique indexes."""

from http import HTTPStatus

import pytest
from bson import ObjectId
from fastapi import Depends, FastAPI, HTTPException
from fastapi.testclient import TestClient

from database import (
    REVIEWS, USERS, create_document, ensure_indexes, find_and_update,
    get_db, get_documents, serialize_doc, to_object_id,
)
from main import _insert_unique


def test_to_object_id() -> None:
    oid = ObjectId()
    assert to_object_id(str(oid)) == oid
    assert to_object_id("nope") is None
    assert to_object_id(None) is None


def test_serialize_doc_stringifies_id() -> None:
    oid = ObjectId()
    assert serialize_doc({"_id": oid, "a": 1}) == {"_id": str(oid), "a": 1}
    assert serialize_doc(None) is None


def test_create_document_stamps_times(db) -> None:
    result = create_document(db, USERS, {"email": "a@mail.com"})
    doc = get_documents(db, USERS)[0]
    assert doc["_id"] == result["insertedId"]
    assert "createdAt" in doc and "updatedAt" in doc


def test_find_and_update_returns_new_document(db) -> None:
    create_document(db, USERS, {"email": "a@mail.com", "role": "user"})
    doc = find_and_update(db, USERS, {"email": "a@mail.com"}, {"$set": {"role": "admin"}})
    assert doc["role"] == "admin"
    assert find_and_update(db, USERS, {"email": "b@mail.com"}, {"$set": {"role": "admin"}}) is None


def test_unique_index_turns_race_into_conflict(db) -> None:
    ensure_indexes(db)
    doc = {"reviewerEmail": "bo@mail.com", "mealId": "m1", "rating": 4}
    create_document(db, REVIEWS, dict(doc))

    with pytest.raises(HTTPException) as err:
        _insert_unique(db, REVIEWS, dict(doc), "You have already reviewed this meal")

    assert err.value.status_code == HTTPStatus.CONFLICT


def test_get_db_without_database_is_503() -> None:
    app = FastAPI()
    app.state.db = None

    @app.get("/probe")
    def probe(db=Depends(get_db)):
        return {}

    response = TestClient(app).get("/probe")
    assert response.status_code == HTTPStatus.SERVICE_UNAVAILABLE


def test_existing_duplicates_do_not_break_index_creation(db) -> None:
    create_document(db, USERS, {"email": "a@mail.com"})
    create_document(db, USERS, {"email": "a@mail.com"})

    assert ensure_indexes(db) is False

    # the other collections still get their index
    create_document(db, REVIEWS, {"reviewerEmail": "bo@mail.com", "mealId": "m1"})
    with pytest.raises(HTTPException):
        _insert_unique(db, REVIEWS, {"reviewerEmail": "bo@mail.com", "mealId": "m1"}, "dup")
