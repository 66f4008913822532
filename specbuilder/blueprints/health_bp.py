"""
Health endpoints (unauthenticated, not rate limited).

    GET /api/v1/health        process is up
    GET /api/v1/health/live   database round-trip + auto-save backlog
"""

import logging
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from specbuilder.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def health():
    return jsonify({"status": "ok"}), 200


def _database_check() -> dict:
    started = time.perf_counter()
    try:
        db.session.execute(db.text("SELECT 1"))
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Database health check failed: %s", exc)
        return {"status": "error", "detail": str(exc)}
    return {"status": "ok", "latency_ms": round((time.perf_counter() - started) * 1000, 1)}


@health_bp.route("/live", methods=["GET"])
def live():
    checks = {"database": _database_check()}
    saver = current_app.extensions.get("autosave")
    if saver is not None:
        checks["autosave"] = {"status": "ok", "pending_projects": saver.pending_count()}

    healthy = checks["database"]["status"] == "ok"
    body = {"status": "ok" if healthy else "degraded", "checks": checks}
    return jsonify(body), 200 if healthy else 503
