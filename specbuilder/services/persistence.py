"""
BI Spec Builder
Persistence Gateway: thin record CRUD over the SQLAlchemy session.

Every write made on behalf of the conversation engine, the change
interpreter and the preview editors goes through one of these table
gateways so that:

    - all writes ``flush`` (callers keep transaction control; the
      blueprint commits once per request)
    - database errors surface as ``PersistenceError`` after the session
      has been rolled back
    - "replace all rows" (tabs, filters) is a delete + insert pair that
      commits or fails together

Usage:
    from specbuilder.services.persistence import gateway

    tabs = gateway.table("dashboard_tabs")
    tabs.replace_all({"project_id": 7}, [{"name": "Overview", "order_index": 0}])
    fr = gateway.table("functional_requirements").upsert(
        {"project_id": 7}, {"metrics": ["Revenue"]},
    )
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from specbuilder.core.exceptions import PersistenceError
from specbuilder.models import db
from specbuilder.models.history import ChangeHistory
from specbuilder.models.project import Project
from specbuilder.models.requirements import (
    AdditionalRequirement,
    DashboardTab,
    DesignRequirements,
    Filter,
    FunctionalRequirements,
)
from specbuilder.models.task import Task
from specbuilder.models.user import User

logger = logging.getLogger(__name__)


class TableGateway:
    """insert / get_one / list / update / delete (+ upsert, replace_all) for one table."""

    def __init__(self, model):
        self.model = model
        self.table_name = model.__tablename__

    # ── Reads ────────────────────────────────────────────────────────────

    def get_one(self, **filters):
        """First row matching ``filters`` or None. ``None`` values match IS NULL."""
        return self.model.query.filter_by(**filters).first()

    def list(self, order_by: str | None = None, **filters) -> list:
        query = self.model.query.filter_by(**filters)
        if order_by:
            column = getattr(self.model, order_by.lstrip("-"))
            query = query.order_by(column.desc() if order_by.startswith("-") else column.asc())
        query = query.order_by(self.model.id.asc())
        return query.all()

    # ── Writes ───────────────────────────────────────────────────────────

    def insert(self, **values):
        def _op():
            row = self.model(**values)
            db.session.add(row)
            db.session.flush()
            return row
        return self._write("insert", _op)

    def update(self, filters: dict, patch: dict) -> int:
        """Apply ``patch`` to every matching row; returns the row count."""
        def _op():
            rows = self.model.query.filter_by(**filters).all()
            for row in rows:
                for key, value in patch.items():
                    setattr(row, key, value)
            db.session.flush()
            return len(rows)
        return self._write("update", _op)

    def delete(self, **filters) -> int:
        """Bulk delete; dependent rows go through the FK cascades."""
        if not filters:
            raise ValueError("delete() without filters is not allowed")

        def _op():
            count = self.model.query.filter_by(**filters).delete(synchronize_session=False)
            db.session.flush()
            # Rows removed by ON DELETE CASCADE may still sit in the identity map.
            db.session.expire_all()
            return count
        return self._write("delete", _op)

    def upsert(self, filters: dict, patch: dict):
        """Update the row matching ``filters`` or insert one with filters + patch."""
        def _op():
            row = self.model.query.filter_by(**filters).first()
            if row is None:
                row = self.model(**filters, **patch)
                db.session.add(row)
            else:
                for key, value in patch.items():
                    setattr(row, key, value)
            db.session.flush()
            return row
        return self._write("upsert", _op)

    def replace_all(self, filters: dict, rows: list[dict]) -> list:
        """Delete every row matching ``filters`` then insert ``rows``.

        Both statements run in the caller's transaction, so readers never
        observe the empty in-between state once the request commits.
        """
        def _op():
            self.model.query.filter_by(**filters).delete(synchronize_session=False)
            db.session.expire_all()
            created = [self.model(**filters, **values) for values in rows]
            db.session.add_all(created)
            db.session.flush()
            return created
        return self._write("replace_all", _op)

    # ── Internal ─────────────────────────────────────────────────────────

    def _write(self, operation: str, fn) -> Any:
        try:
            return fn()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.error(
                "Persistence %s on %s failed: %s", operation, self.table_name, exc,
            )
            raise PersistenceError(operation, self.table_name) from exc


class PersistenceGateway:
    """Registry of table gateways keyed by table name."""

    MODELS = (
        Project,
        FunctionalRequirements,
        DesignRequirements,
        DashboardTab,
        Filter,
        Task,
        AdditionalRequirement,
        ChangeHistory,
        User,
    )

    def __init__(self):
        self._tables = {m.__tablename__: TableGateway(m) for m in self.MODELS}

    def table(self, name: str) -> TableGateway:
        try:
            return self._tables[name]
        except KeyError:
            raise KeyError(f"Unknown table: {name}") from None

    @property
    def projects(self) -> TableGateway:
        return self._tables["projects"]


gateway = PersistenceGateway()
