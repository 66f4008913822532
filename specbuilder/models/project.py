"""Project domain model: one dashboard specification and its version tree."""

from datetime import datetime, timezone

from specbuilder.models import db

PROJECT_STATUSES = {"draft", "done"}
DEFAULT_PROJECT_NAME = "New Dashboard Project"


def _utcnow():
    return datetime.now(timezone.utc)


class Project(db.Model):
    """Dashboard specification.

    ``parent_project_id`` links an enhancement to the root of its version
    tree (never to an intermediate version).  The appendix / metric-logic
    flags are tri-state: ``None`` means the question has not been answered.
    """

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, default=DEFAULT_PROJECT_NAME)
    description = db.Column(db.Text, nullable=False, default="")
    audience = db.Column(db.Text, nullable=False, default="")
    status = db.Column(
        db.String(20), nullable=False, default="draft", index=True,
        comment="draft | done",
    )
    version_number = db.Column(db.Integer, nullable=False, default=1)
    parent_project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    has_appendix_tab = db.Column(db.Boolean, nullable=True)
    has_metric_logic_tab = db.Column(db.Boolean, nullable=True)

    created_by = db.Column(
        db.String(64), nullable=True, comment="users.id of the acting user",
    )
    updated_by = db.Column(
        db.String(64), nullable=True, comment="users.id of the acting user",
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    # ── Dependent rows (FK cascade does the deleting) ──
    functional_requirements = db.relationship(
        "FunctionalRequirements", uselist=False, backref="project",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    design_requirements = db.relationship(
        "DesignRequirements", uselist=False, backref="project",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    tabs = db.relationship(
        "DashboardTab", backref="project", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="DashboardTab.order_index",
    )
    filters = db.relationship(
        "Filter", backref="project", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    tasks = db.relationship(
        "Task", backref="project", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="Task.order_index",
    )
    additional_requirements = db.relationship(
        "AdditionalRequirement", backref="project", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    history = db.relationship(
        "ChangeHistory", backref="project", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    @property
    def root_id(self) -> int:
        return self.parent_project_id or self.id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "audience": self.audience,
            "status": self.status,
            "version_number": self.version_number,
            "parent_project_id": self.parent_project_id,
            "has_appendix_tab": self.has_appendix_tab,
            "has_metric_logic_tab": self.has_metric_logic_tab,
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Project {self.id}: {self.name} v{self.version_number}>"
