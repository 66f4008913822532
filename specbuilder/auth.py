"""
BI Spec Builder
Authentication middleware.

Provides:
    - Bearer JWT verification for all /api/v1/* endpoints (except health)
    - Acting-user resolution into ``g.current_user_id``
    - Content-Type enforcement for state-changing requests

Security model:
    - Identity is issued elsewhere; this service only verifies HS256 tokens
      signed with JWT_SECRET_KEY (falls back to SECRET_KEY)
    - ``sub`` is the user id; an ``email`` claim refreshes the users row
    - With API_AUTH_ENABLED off (development / testing) the acting user is
      taken from the X-User-Id header, else DEV_USER_ID

Token payload:
{
    "sub": "<user id>",
    "email": "ana@example.com",      # optional
    "type": "access",
    "iat": <issued_at>,
    "exp": <expires_at>
}
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app, g, request

from specbuilder.core.exceptions import ValidationError
from specbuilder.models import db
from specbuilder.services import user_service
from specbuilder.utils.errors import E, api_error

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
DEFAULT_ACCESS_EXPIRES = 900       # 15 minutes

_PUBLIC_PREFIX = "/api/v1/health"


def _get_secret():
    """Get the JWT secret key from app config."""
    return current_app.config.get("JWT_SECRET_KEY") or current_app.config["SECRET_KEY"]


def generate_access_token(user_id: str, email: str | None = None, expires_in: int | None = None) -> str:
    """Issue an access token (local tooling and tests)."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "type": "access",
        "iat": now,
        "exp": now + timedelta(seconds=expires_in or DEFAULT_ACCESS_EXPIRES),
        "jti": str(uuid.uuid4()),
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, _get_secret(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify an access token.

    Raises jwt.exceptions on failure (ExpiredSignatureError, InvalidTokenError, etc.)
    """
    payload = jwt.decode(token, _get_secret(), algorithms=[ALGORITHM])
    if payload.get("type", "access") != "access":
        raise jwt.InvalidTokenError(f"Expected access token, got {payload.get('type')}")
    if not payload.get("sub"):
        raise jwt.InvalidTokenError("Token has no subject")
    return payload


def _unauthorized(message: str):
    return api_error(E.UNAUTHORIZED, message)


# ── CSRF protection for API ──────────────────────────────────────────────────

def _check_content_type():
    """
    For state-changing requests (POST/PUT/PATCH/DELETE), require
    Content-Type: application/json whenever a body is sent.
    """
    if request.method in ("POST", "PUT", "PATCH", "DELETE"):
        ct = request.content_type or ""
        if "application/json" not in ct and request.content_length and request.content_length > 0:
            return api_error(
                E.UNSUPPORTED_MEDIA,
                "Content-Type must be application/json for state-changing requests",
            )
    return None


def _record_identity(payload: dict) -> None:
    email = payload.get("email")
    if not email:
        return
    try:
        user_service.upsert_user(str(payload["sub"]), email)
        db.session.commit()
    except ValidationError as exc:
        db.session.rollback()
        logger.warning("Ignoring email claim for user %s: %s", payload["sub"], exc)


def init_auth(app):
    """
    Install authentication middleware on the Flask app.

    - Attaches a before_request hook for API routes
    - Skips the health check and CORS pre-flight requests
    """
    @app.before_request
    def _before_request_auth():
        g.current_user_id = None
        if not request.path.startswith("/api/v1/"):
            return None
        if request.path.startswith(_PUBLIC_PREFIX) or request.method == "OPTIONS":
            return None

        csrf_error = _check_content_type()
        if csrf_error:
            return csrf_error

        if not app.config.get("API_AUTH_ENABLED", True):
            g.current_user_id = (
                request.headers.get("X-User-Id", "").strip() or app.config.get("DEV_USER_ID")
            )
            return None

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return _unauthorized("Authentication required. Provide a Bearer token.")

        try:
            payload = decode_access_token(auth_header[7:])
        except jwt.ExpiredSignatureError:
            return _unauthorized("Token expired")
        except jwt.InvalidTokenError as exc:
            logger.warning("Invalid token: %s", exc)
            return _unauthorized("Invalid token")

        g.current_user_id = str(payload["sub"])
        _record_identity(payload)
        return None

    logger.info("Auth middleware installed (enabled=%s)", app.config.get("API_AUTH_ENABLED"))
