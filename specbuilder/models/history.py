"""
BI Spec Builder
Change history model.

Models:
    - ChangeHistory: immutable, append-only audit trail of project
      lifecycle events (create / update / delete / version).
"""

import json
from datetime import UTC, datetime

from specbuilder.models import db

CHANGE_TYPES = {"create", "update", "delete", "version"}


class ChangeHistory(db.Model):
    """
    One row per lifecycle event.

    ``snapshot_json`` carries the changed fields (update) or the project
    state at the time of the event (create / version).
    """

    __tablename__ = "change_history"
    __table_args__ = (
        db.Index("idx_change_history_project", "project_id"),
        db.Index("idx_change_history_ts", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    change_type = db.Column(
        db.String(20), nullable=False,
        comment="create | update | delete | version",
    )
    change_description = db.Column(db.Text, nullable=False, default="")
    snapshot_json = db.Column(db.Text, default="{}")
    changed_by = db.Column(
        db.String(64), nullable=True, comment="users.id of the acting user",
    )
    timestamp = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(UTC),
    )

    @property
    def snapshot(self) -> dict:
        try:
            return json.loads(self.snapshot_json or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "change_type": self.change_type,
            "change_description": self.change_description,
            "snapshot": self.snapshot,
            "changed_by": self.changed_by,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<ChangeHistory {self.id}: {self.change_type} on project {self.project_id}>"


# ── Convenience writer ───────────────────────────────────────────────────────

def write_change(
    *,
    project_id: int,
    change_type: str,
    description: str = "",
    changed_by: str | None = None,
    snapshot: dict | None = None,
) -> ChangeHistory:
    """
    Append a single history row.  Uses ``flush`` so callers keep
    transaction control.
    """
    if change_type not in CHANGE_TYPES:
        raise ValueError(f"Unknown change_type: {change_type}")

    entry = ChangeHistory(
        project_id=project_id,
        change_type=change_type,
        change_description=description,
        changed_by=changed_by,
        snapshot_json=json.dumps(snapshot or {}, default=str),
    )
    db.session.add(entry)
    db.session.flush()
    return entry
