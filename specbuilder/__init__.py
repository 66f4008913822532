"""
BI Spec Builder application factory.

    from specbuilder import create_app
    app = create_app("testing")
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import event
from sqlalchemy.engine import Engine

from specbuilder.auth import init_auth
from specbuilder.config import config
from specbuilder.core.exceptions import NotFoundError, PersistenceError, ValidationError
from specbuilder.middleware.logging_config import configure_logging
from specbuilder.middleware.rate_limiter import init_rate_limits
from specbuilder.middleware.timing import init_request_timing
from specbuilder.models import db
from specbuilder.services.autosave import autosaver
from specbuilder.utils.errors import E, api_error

logger = logging.getLogger(__name__)


# SQLite leaves foreign keys, and so ON DELETE CASCADE, off per connection
@event.listens_for(Engine, "connect")
def _sqlite_foreign_keys(dbapi_conn, _record):
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def _register_error_handlers(app):
    @app.errorhandler(NotFoundError)
    def _not_found_error(e):
        return api_error(E.NOT_FOUND, f"{e.resource} not found")

    @app.errorhandler(ValidationError)
    def _validation_error(e):
        return api_error(E.RULE_VIOLATION, str(e), details=e.details or None)

    @app.errorhandler(PersistenceError)
    def _persistence_error(e):
        db.session.rollback()
        logger.error("Persistence failure: %s", e, exc_info=e.__cause__)
        return api_error(E.DATABASE, "Database error")

    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.METHOD_NOT_ALLOWED, "Method not allowed")

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(E.RATE_LIMITED, "Too many requests", details={"limit": e.description})

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")


def _init_extensions(app):
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    origins = app.config.get("CORS_ORIGINS", "*")
    if origins and origins != "*":
        CORS(app, origins=[o.strip() for o in origins.split(",") if o.strip()])
    else:
        CORS(app)
    autosaver.init_app(app)


def _register_blueprints(app):
    from specbuilder.blueprints.chat_bp import chat_bp
    from specbuilder.blueprints.export_bp import export_bp
    from specbuilder.blueprints.health_bp import health_bp
    from specbuilder.blueprints.project_bp import project_bp
    from specbuilder.blueprints.requirements_bp import requirements_bp
    from specbuilder.blueprints.task_bp import task_bp
    from specbuilder.blueprints.user_bp import user_bp

    for bp in (health_bp, project_bp, chat_bp, requirements_bp, task_bp, export_bp, user_bp):
        app.register_blueprint(bp)


def create_app(config_name=None):
    """Build the application for ``config_name`` (default: $APP_ENV or "development")."""
    config_name = config_name or os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())
    os.makedirs(app.instance_path, exist_ok=True)

    configure_logging(app)
    _init_extensions(app)
    init_request_timing(app)
    init_auth(app)

    # Model modules register their tables on db.metadata for create_all / Alembic
    from specbuilder.models import history, project, requirements, task, user  # noqa: F401

    _register_blueprints(app)
    _register_error_handlers(app)

    with app.app_context():
        db.create_all()

    init_rate_limits(app, limiter)
    logger.info("BI Spec Builder started (config=%s)", config_name)
    return app
