"""
User Service: identity upsert from token claims and id → email lookup.
"""

import logging
from datetime import datetime, timezone

from email_validator import EmailNotValidError, validate_email

from specbuilder.core.exceptions import ValidationError
from specbuilder.models import db
from specbuilder.models.user import User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    try:
        return validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": str(email)})


def upsert_user(user_id: str, email: str | None = None) -> User:
    """Record a token subject; refresh its email and last-seen time."""
    user = db.session.get(User, user_id)
    if user is None:
        user = User(id=user_id)
        db.session.add(user)
    if email:
        user.email = normalize_email(email)
    user.last_seen_at = datetime.now(timezone.utc)
    db.session.flush()
    return user


def email_map(user_ids) -> dict[str, str | None]:
    ids = {str(uid) for uid in user_ids if uid}
    if not ids:
        return {}
    return {u.id: u.email for u in User.query.filter(User.id.in_(ids)).all()}


def get_user_emails(user_ids: list) -> list[dict]:
    """Resolve ids to ``{id, email}``; unknown ids come back with ``email: None``.

    Any authenticated caller may resolve any id.
    """
    if not isinstance(user_ids, list):
        raise ValidationError("user_ids must be a list", details={"user_ids": "list required"})
    emails = email_map(user_ids)
    seen = []
    for uid in user_ids:
        if uid in (None, ""):
            continue
        uid = str(uid)
        if uid not in seen:
            seen.append(uid)
    return [{"id": uid, "email": emails.get(uid)} for uid in seen]
