"""HTTP blueprints. Shared request helpers live here."""

from flask import g


def current_user_id() -> str | None:
    """Acting user resolved by the auth middleware."""
    return getattr(g, "current_user_id", None)
