"""
Structured logging configuration.

- Development / testing: one colored line per record
- Production: one JSON object per record
- Level from LOG_LEVEL, format forced with LOG_FORMAT=json|readable

Every record emitted while a request is being served is stamped with the
request id, the acting user and, for project / chat routes, the project
id and conversation flow, so a single chat turn can be followed across
the blueprint, conversation engine and persistence gateway logs.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context, request

CONTEXT_FIELDS = ("request_id", "user_id", "project_id", "flow")
REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr")

_NOISY_LOGGERS = ("urllib3", "werkzeug", "sqlalchemy.engine", "flask_limiter")


class RequestContextFilter(logging.Filter):
    """Copy request-scoped identifiers onto the record (never overwrites ``extra=``)."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            return True
        view_args = request.view_args or {}
        values = {
            "request_id": getattr(g, "request_id", None),
            "user_id": getattr(g, "current_user_id", None),
            "project_id": view_args.get("project_id"),
            "flow": view_args.get("flow"),
        }
        for key, value in values.items():
            if value is not None and getattr(record, key, None) is None:
                setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production / log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for key in CONTEXT_FIELDS + REQUEST_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL [req project/flow] logger: message [12ms]``"""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        scope = []
        if getattr(record, "request_id", None):
            scope.append(record.request_id)
        project_id = getattr(record, "project_id", None)
        if project_id is not None:
            flow = getattr(record, "flow", None)
            scope.append(f"p{project_id}/{flow}" if flow else f"p{project_id}")
        scope_str = f" [{' '.join(scope)}]" if scope else ""

        duration = getattr(record, "duration_ms", None)
        dur_str = f" [{duration:.0f}ms]" if duration is not None else ""

        line = (
            f"{color}{ts} {record.levelname:<8}{self.RESET}{scope_str} "
            f"{record.name}: {record.getMessage()}{dur_str}"
        )
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _resolve_format(is_prod: bool) -> str:
    forced = os.getenv("LOG_FORMAT", "").lower()
    if forced in ("json", "readable"):
        return forced
    return "json" if is_prod else "readable"


def configure_logging(app):
    """
    Install a single stderr handler on the root logger.

    Default level: INFO in production, DEBUG otherwise.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)
    fmt = _resolve_format(is_prod)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if fmt == "json" else ReadableFormatter())
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)

    root = logging.getLogger()
    # create_app runs more than once per process in tests
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s", level_name, fmt)
