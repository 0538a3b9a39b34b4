"""Tests for Firebase token verification."""

import base64
import json
from http import HTTPStatus

import pytest

import auth
from config import settings


@pytest.fixture
def enforced(monkeypatch):
    monkeypatch.setattr(settings, "require_auth", True)


def test_decode_service_key() -> None:
    key = {"type": "service_account", "project_id": "localchefbazar"}
    encoded = base64.b64encode(json.dumps(key).encode("utf-8")).decode("ascii")
    assert auth.decode_service_key(encoded) == key


def test_routes_open_by_default(client) -> None:
    assert client.get("/meals").status_code == HTTPStatus.OK


def test_root_never_needs_token(client, enforced) -> None:
    assert client.get("/").json() == {"message": "Hello from Server.."}


class TestEnforcedAuth:
    def test_missing_token(self, client, enforced) -> None:
        response = client.get("/meals")
        assert response.status_code == HTTPStatus.UNAUTHORIZED
        assert response.json()["detail"] == "Unauthorized Access!"

    def test_bearer_without_token(self, client, enforced) -> None:
        response = client.get("/meals", headers={"Authorization": "Bearer"})
        assert response.status_code == HTTPStatus.UNAUTHORIZED

    def test_valid_token(self, client, enforced, monkeypatch) -> None:
        seen = []

        def fake_verify(token):
            seen.append(token)
            return {"email": "ana@mail.com", "uid": "u1"}

        monkeypatch.setattr(auth.firebase_auth, "verify_id_token", fake_verify)

        response = client.get("/meals", headers={"Authorization": "Bearer good-token"})

        assert response.status_code == HTTPStatus.OK
        assert seen == ["good-token"]

    def test_rejected_token(self, client, enforced, monkeypatch) -> None:
        def fake_verify(token):
            raise ValueError("Token expired")

        monkeypatch.setattr(auth.firebase_auth, "verify_id_token", fake_verify)

        response = client.get("/meals", headers={"Authorization": "Bearer stale"})
        assert response.status_code == HTTPStatus.UNAUTHORIZED
