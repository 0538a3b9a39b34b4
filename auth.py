"""
Firebase ID token verification.

`verify_token` checks the bearer token against Firebase and records the
caller's email on `request.state.token_email`. `require_token` is what the
routes depend on: it only verifies when REQUIRE_AUTH is enabled, otherwise
the API stays open.
"""

import base64
import json
import logging
from typing import Optional

import firebase_admin
from fastapi import HTTPException, Request
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials

from config import Settings, settings

log = logging.getLogger("localchefbazar.auth")

UNAUTHORIZED = "Unauthorized Access!"


def decode_service_key(encoded: str) -> dict:
    return json.loads(base64.b64decode(encoded).decode("utf-8"))


def init_firebase(cfg: Settings) -> Optional[firebase_admin.App]:
    if not cfg.fb_service_key:
        log.warning("FB_SERVICE_KEY is not set, token verification will reject every request")
        return None
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass
    cred = credentials.Certificate(decode_service_key(cfg.fb_service_key))
    return firebase_admin.initialize_app(cred)


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization") or ""
    parts = header.split(" ")
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1]


def verify_token(request: Request) -> str:
    token = bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail=UNAUTHORIZED)
    try:
        decoded = firebase_auth.verify_id_token(token)
    except Exception as e:
        log.warning("Token verification failed: %s", e)
        raise HTTPException(status_code=401, detail=UNAUTHORIZED)
    email = decoded.get("email")
    request.state.token_email = email
    return email


def require_token(request: Request) -> Optional[str]:
    if not settings.require_auth:
        return None
    return verify_token(request)
