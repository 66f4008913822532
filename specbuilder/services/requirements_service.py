"""Requirement writes and preview-surface edits.

Two callers:
  - the conversation engine / change interpreter, which persist one
    field per chat message through the ``save_*`` / ``replace_*`` writers
  - the requirements blueprint, which edits individual tabs, filters and
    additional-requirement rows from the document preview

Every function flushes; the blueprint owns the commit.
"""

from __future__ import annotations

import logging

from specbuilder.core.exceptions import NotFoundError, ValidationError
from specbuilder.models import db
from specbuilder.models.project import Project
from specbuilder.models.requirements import (
    REQUIREMENT_CATEGORIES,
    AdditionalRequirement,
    DashboardTab,
    DesignRequirements,
    Filter,
    FunctionalRequirements,
)
from specbuilder.services.persistence import gateway

logger = logging.getLogger(__name__)

PROJECT_CHAT_FIELDS = ("name", "description", "audience", "has_appendix_tab", "has_metric_logic_tab")
FUNCTIONAL_FIELDS = ("data_sources", "metrics", "filter_carryover")
DESIGN_FIELDS = (
    "dashboard_size", "color_palette", "fonts",
    "logo_url", "logo_location", "additional_requirements",
)
_LIST_FIELDS = {"data_sources", "metrics", "color_palette", "fonts"}
NEW_FILTER_NAME = "New Filter"


# ═════════════════════════════════════════════════════════════════════════════
# Field writers (one write per chat step)
# ═════════════════════════════════════════════════════════════════════════════


def save_project_fields(project_id: int, patch: dict, *, actor_id: str | None = None) -> int:
    """Update scalar project columns. No change-history entry is written."""
    unknown = set(patch) - set(PROJECT_CHAT_FIELDS)
    if unknown:
        raise ValueError(f"Not a conversational project field: {sorted(unknown)}")
    values = dict(patch)
    if actor_id:
        values["updated_by"] = actor_id
    return gateway.projects.update({"id": project_id}, values)


def save_functional(project_id: int, patch: dict) -> FunctionalRequirements:
    return gateway.table("functional_requirements").upsert({"project_id": project_id}, patch)


def save_design(project_id: int, patch: dict) -> DesignRequirements:
    return gateway.table("design_requirements").upsert({"project_id": project_id}, patch)


def replace_tabs(project_id: int, names: list[str]) -> list[DashboardTab]:
    """Delete every tab of the project and insert ``names`` in order."""
    rows = [{"name": name, "order_index": index} for index, name in enumerate(names)]
    return gateway.table("dashboard_tabs").replace_all({"project_id": project_id}, rows)


def replace_global_filters(project_id: int, names: list[str]) -> list[Filter]:
    """Replace the project's global filters; tab-scoped filters are untouched."""
    rows = [{"name": name} for name in names]
    return gateway.table("filters").replace_all(
        {"project_id": project_id, "tab_id": None}, rows,
    )


def add_additional_requirement(project_id: int, category: str, content: str) -> AdditionalRequirement:
    if category not in REQUIREMENT_CATEGORIES:
        raise ValueError(f"Unknown requirement category: {category}")
    return gateway.table("additional_requirements").insert(
        project_id=project_id, category=category, content=content,
    )


# ═════════════════════════════════════════════════════════════════════════════
# Reads
# ═════════════════════════════════════════════════════════════════════════════


def get_requirements(project: Project) -> dict:
    """Full requirement graph of one project, as shown by the preview."""
    fr = project.functional_requirements
    dr = project.design_requirements
    tabs = project.tabs.all()
    filters = project.filters.order_by(Filter.id).all()
    additional = project.additional_requirements.order_by(AdditionalRequirement.id).all()
    return {
        "project": project.to_dict(),
        "functional": fr.to_dict() if fr else None,
        "design": dr.to_dict() if dr else None,
        "tabs": [
            {**t.to_dict(), "filters": [f.to_dict() for f in filters if f.tab_id == t.id]}
            for t in tabs
        ],
        "global_filters": [f.to_dict() for f in filters if f.is_global],
        "additional_requirements": [a.to_dict() for a in additional],
    }


# ═════════════════════════════════════════════════════════════════════════════
# Preview edits
# ═════════════════════════════════════════════════════════════════════════════


def _clean_patch(data: dict, allowed: tuple[str, ...]) -> dict:
    patch = {}
    errors = {}
    for key in allowed:
        if key not in data:
            continue
        value = data[key]
        if key in _LIST_FIELDS:
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                errors[key] = "must be a list of strings"
                continue
            value = [v.strip() for v in value if v.strip()]
        elif key == "filter_carryover":
            if not isinstance(value, bool):
                errors[key] = "must be a boolean"
                continue
        else:
            if value is None:
                value = ""
            if not isinstance(value, str):
                errors[key] = "must be a string"
                continue
            value = value.strip()
        patch[key] = value
    if errors:
        raise ValidationError("Invalid requirement fields", details=errors)
    if not patch:
        raise ValidationError(
            "No editable fields supplied", details={"allowed": list(allowed)},
        )
    return patch


def update_functional(project_id: int, data: dict) -> FunctionalRequirements:
    return save_functional(project_id, _clean_patch(data, FUNCTIONAL_FIELDS))


def update_design(project_id: int, data: dict) -> DesignRequirements:
    return save_design(project_id, _clean_patch(data, DESIGN_FIELDS))


def _reindex_tabs(project_id: int) -> None:
    for index, tab in enumerate(
        DashboardTab.query.filter_by(project_id=project_id)
        .order_by(DashboardTab.order_index, DashboardTab.id)
        .all()
    ):
        tab.order_index = index
    db.session.flush()


def update_tab(tab_id: int, data: dict) -> DashboardTab:
    tab = db.session.get(DashboardTab, tab_id)
    if not tab:
        raise NotFoundError("Tab", tab_id)
    name = str(data.get("name", "") or "").strip()
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    tab.name = name
    db.session.flush()
    return tab


def delete_tab(tab_id: int) -> None:
    """Delete one tab (its scoped filters cascade) and close the order gap."""
    tab = db.session.get(DashboardTab, tab_id)
    if not tab:
        raise NotFoundError("Tab", tab_id)
    project_id = tab.project_id
    gateway.table("dashboard_tabs").delete(id=tab_id)
    _reindex_tabs(project_id)


def _filter_values(data: dict) -> dict:
    values = {}
    if "name" in data:
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError("name cannot be empty", details={"name": "required"})
        values["name"] = name
    if "data_source" in data:
        values["data_source"] = str(data.get("data_source") or "").strip()
    if "multi_select" in data:
        values["multi_select"] = bool(data.get("multi_select"))
    if "default_value" in data:
        value = data.get("default_value")
        values["default_value"] = str(value).strip() if value not in (None, "") else None
    return values


def add_global_filter(project_id: int, data: dict) -> Filter:
    """Insert one project-wide filter; ``name`` defaults to "New Filter"."""
    values = {
        "name": NEW_FILTER_NAME,
        "data_source": "",
        "multi_select": False,
        "default_value": None,
        **_filter_values(data),
    }
    return gateway.table("filters").insert(project_id=project_id, tab_id=None, **values)


def update_filter(filter_id: int, data: dict) -> Filter:
    flt = db.session.get(Filter, filter_id)
    if not flt:
        raise NotFoundError("Filter", filter_id)
    for attr, value in _filter_values(data).items():
        setattr(flt, attr, value)
    db.session.flush()
    return flt


def delete_filter(filter_id: int) -> None:
    if not db.session.get(Filter, filter_id):
        raise NotFoundError("Filter", filter_id)
    gateway.table("filters").delete(id=filter_id)


def update_additional_requirement(req_id: int, data: dict) -> AdditionalRequirement:
    req = db.session.get(AdditionalRequirement, req_id)
    if not req:
        raise NotFoundError("AdditionalRequirement", req_id)
    if "content" in data:
        content = str(data.get("content") or "").strip()
        if not content:
            raise ValidationError("content cannot be empty", details={"content": "required"})
        req.content = content
    if "category" in data:
        category = data.get("category")
        if category not in REQUIREMENT_CATEGORIES:
            raise ValidationError(
                f"category must be one of {sorted(REQUIREMENT_CATEGORIES)}",
                details={"category": "invalid"},
            )
        req.category = category
    db.session.flush()
    return req


def delete_additional_requirement(req_id: int) -> None:
    if not db.session.get(AdditionalRequirement, req_id):
        raise NotFoundError("AdditionalRequirement", req_id)
    gateway.table("additional_requirements").delete(id=req_id)
