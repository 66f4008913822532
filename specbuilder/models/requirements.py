"""
BI Spec Builder
Requirement domain models.

Models:
    - FunctionalRequirements: data sources / metrics (1:1 with Project)
    - DesignRequirements: size, palette, fonts, logo (1:1 with Project)
    - DashboardTab: ordered tab list
    - Filter: global (tab_id NULL) or tab-scoped filter
    - AdditionalRequirement: free-text notes captured at the end of a chat
"""

from datetime import datetime, timezone

from specbuilder.models import db

REQUIREMENT_CATEGORIES = {"functional", "design"}


def _utcnow():
    return datetime.now(timezone.utc)


def _project_fk():
    return db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class FunctionalRequirements(db.Model):
    __tablename__ = "functional_requirements"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    data_sources = db.Column(db.JSON, nullable=False, default=list)
    metrics = db.Column(db.JSON, nullable=False, default=list)
    filter_carryover = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "data_sources": list(self.data_sources or []),
            "metrics": list(self.metrics or []),
            "filter_carryover": bool(self.filter_carryover),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class DesignRequirements(db.Model):
    __tablename__ = "design_requirements"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    dashboard_size = db.Column(db.String(100), nullable=False, default="")
    color_palette = db.Column(db.JSON, nullable=False, default=list)
    fonts = db.Column(db.JSON, nullable=False, default=list)
    logo_url = db.Column(db.String(500), nullable=False, default="")
    logo_location = db.Column(db.String(200), nullable=False, default="")
    additional_requirements = db.Column(db.Text, nullable=False, default="")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "dashboard_size": self.dashboard_size,
            "color_palette": list(self.color_palette or []),
            "fonts": list(self.fonts or []),
            "logo_url": self.logo_url,
            "logo_location": self.logo_location,
            "additional_requirements": self.additional_requirements,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class DashboardTab(db.Model):
    __tablename__ = "dashboard_tabs"
    __table_args__ = (
        db.Index("ix_dashboard_tabs_project_order", "project_id", "order_index"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = _project_fk()
    name = db.Column(db.String(255), nullable=False)
    order_index = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    scoped_filters = db.relationship(
        "Filter", backref="tab", lazy="dynamic", passive_deletes=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "order_index": self.order_index,
        }


class Filter(db.Model):
    __tablename__ = "filters"

    id = db.Column(db.Integer, primary_key=True)
    project_id = _project_fk()
    tab_id = db.Column(
        db.Integer,
        db.ForeignKey("dashboard_tabs.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        comment="NULL = global filter",
    )
    name = db.Column(db.String(255), nullable=False)
    data_source = db.Column(db.String(255), nullable=False, default="")
    multi_select = db.Column(db.Boolean, nullable=False, default=False)
    default_value = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    @property
    def is_global(self) -> bool:
        return self.tab_id is None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "tab_id": self.tab_id,
            "name": self.name,
            "data_source": self.data_source,
            "multi_select": bool(self.multi_select),
            "default_value": self.default_value,
        }


class AdditionalRequirement(db.Model):
    __tablename__ = "additional_requirements"

    id = db.Column(db.Integer, primary_key=True)
    project_id = _project_fk()
    category = db.Column(
        db.String(20), nullable=False, default="functional",
        comment="functional | design",
    )
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "category": self.category,
            "content": self.content,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
