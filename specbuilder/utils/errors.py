"""JSON error envelope shared by every API response that is not a success.

Body shape::

    {"error": "<human message>", "code": "ERR_...", "details": {...}}

``details`` is omitted when empty.  The HTTP status is derived from the
code unless the caller overrides it.

    from specbuilder.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Project not found")
    return api_error(E.VALIDATION_REQUIRED, "message is required")
    return api_error(E.RULE_VIOLATION, "Project must be done", details={"status": "draft"})
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error codes, grouped by the status they map to."""

    # 400: malformed or missing request input
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # 401 / 415: request rejected before it reaches a blueprint
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    UNSUPPORTED_MEDIA = "ERR_UNSUPPORTED_MEDIA"

    # 404 / 405
    NOT_FOUND = "ERR_NOT_FOUND"
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"

    # 409: unique / FK constraint hit on commit
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"

    # 422: well-formed input that breaks a lifecycle or field rule
    RULE_VIOLATION = "ERR_RULE_VIOLATION"

    # 429
    RATE_LIMITED = "ERR_RATE_LIMITED"

    # 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


STATUS_BY_CODE: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.UNAUTHORIZED: 401,
    E.UNSUPPORTED_MEDIA: 415,
    E.NOT_FOUND: 404,
    E.METHOD_NOT_ALLOWED: 405,
    E.CONFLICT_DUPLICATE: 409,
    E.RULE_VIOLATION: 422,
    E.RATE_LIMITED: 429,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """``(jsonify(body), status)`` ready to be returned from a view or hook.

    Unknown codes fall back to 400.
    """
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or STATUS_BY_CODE.get(code, 400)
