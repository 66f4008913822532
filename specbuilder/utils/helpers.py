"""Blueprint plumbing shared by every route module.

get_or_404          tuple-return lookup: ``obj, err = get_or_404(Project, pid)``
get_json_body       request body as a dict, ``{}`` for missing / non-object JSON
db_commit_or_error  the one commit per request, mapped to an API error on failure
"""
import logging

from flask import request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from specbuilder.models import db
from specbuilder.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def get_or_404(model, pk, label=None):
    """``(obj, None)`` when the row exists, else ``(None, error_response)``.

        project, err = get_or_404(Project, project_id)
        if err:
            return err
    """
    obj = db.session.get(model, pk)
    if obj is None:
        return None, api_error(E.NOT_FOUND, f"{label or model.__name__} not found")
    return obj, None


def get_json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def db_commit_or_error():
    """Commit; on failure roll back and return an error response tuple.

    Services only flush, so this is where constraint violations surface:
    IntegrityError → 409, any other SQLAlchemy error → 500.
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return api_error(E.CONFLICT_DUPLICATE, "Duplicate or constraint violation")
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error on commit")
        return api_error(E.DATABASE, "Database error")
    return None
