"""Project lifecycle: create, update, done, enhancement versions, delete, search."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import or_

from specbuilder.core.exceptions import NotFoundError, ValidationError
from specbuilder.models import db
from specbuilder.models.history import ChangeHistory, write_change
from specbuilder.models.project import DEFAULT_PROJECT_NAME, PROJECT_STATUSES, Project
from specbuilder.models.requirements import (
    AdditionalRequirement,
    DashboardTab,
    DesignRequirements,
    Filter,
    FunctionalRequirements,
)
from specbuilder.models.task import Task
from specbuilder.services import user_service
from specbuilder.services.persistence import gateway

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "name", "description", "audience", "has_appendix_tab", "has_metric_logic_tab", "status",
)
LIST_VIEWS = ("all", "recent", "modified")


def get_project(project_id: int) -> Project:
    project = db.session.get(Project, project_id)
    if not project:
        raise NotFoundError("Project", project_id)
    return project


# ── Listing ──────────────────────────────────────────────────────────────────


def list_projects(
    *,
    actor_id: str | None = None,
    q: str | None = None,
    view: str = "all",
    recent_days: int = 7,
) -> list[dict]:
    """Projects matching the search box and view tab, sorted by name.

    view:
        all       every project
        recent    updated within ``recent_days``
        modified  last updated by ``actor_id``
    """
    if view not in LIST_VIEWS:
        raise ValidationError(f"view must be one of {list(LIST_VIEWS)}", details={"view": view})

    query = Project.query
    term = (q or "").strip()
    if term:
        like = f"%{term}%"
        query = query.filter(or_(Project.name.ilike(like), Project.description.ilike(like)))
    if view == "recent":
        cutoff = datetime.now(timezone.utc) - timedelta(days=recent_days)
        query = query.filter(Project.updated_at >= cutoff)
    elif view == "modified":
        if not actor_id:
            return []
        query = query.filter(Project.updated_by == actor_id)

    projects = query.order_by(Project.name.asc(), Project.id.asc()).all()

    user_ids = {p.created_by for p in projects} | {p.updated_by for p in projects}
    emails = user_service.email_map(uid for uid in user_ids if uid)
    return [
        {
            **p.to_dict(),
            "creator_email": emails.get(p.created_by),
            "updater_email": emails.get(p.updated_by),
        }
        for p in projects
    ]


def list_versions(project: Project) -> list[Project]:
    """Every project of ``project``'s version tree, oldest version first."""
    root_id = project.root_id
    return (
        Project.query
        .filter(or_(Project.id == root_id, Project.parent_project_id == root_id))
        .order_by(Project.version_number.asc(), Project.id.asc())
        .all()
    )


def list_history(project: Project) -> list[ChangeHistory]:
    return (
        project.history
        .order_by(ChangeHistory.timestamp.desc(), ChangeHistory.id.desc())
        .all()
    )


# ── Create / update ──────────────────────────────────────────────────────────


def create_project(*, data: dict, actor_id: str | None = None) -> Project:
    name = str(data.get("name", "") or "").strip() or DEFAULT_PROJECT_NAME
    project = Project(
        name=name,
        description=str(data.get("description", "") or "").strip(),
        audience=str(data.get("audience", "") or "").strip(),
        status="draft",
        version_number=1,
        created_by=actor_id,
        updated_by=actor_id,
    )
    db.session.add(project)
    db.session.flush()
    write_change(
        project_id=project.id,
        change_type="create",
        description="Project created",
        changed_by=actor_id,
        snapshot=project.to_dict(),
    )
    logger.info("Project %s created by %s", project.id, actor_id)
    return project


def validate_update(data: dict) -> dict:
    patch = {}
    errors = {}
    for attr in UPDATABLE_FIELDS:
        if attr not in data:
            continue
        value = data[attr]
        if attr in ("has_appendix_tab", "has_metric_logic_tab"):
            if value is not None and not isinstance(value, bool):
                errors[attr] = "must be true, false or null"
                continue
        elif attr == "status":
            if value not in PROJECT_STATUSES:
                errors[attr] = f"must be one of {sorted(PROJECT_STATUSES)}"
                continue
        else:
            value = str(value or "").strip()
            if attr == "name" and not value:
                errors[attr] = "cannot be empty"
                continue
        patch[attr] = value
    if errors:
        raise ValidationError("Invalid project fields", details=errors)
    return patch


def update_project(project: Project, data: dict, *, actor_id: str | None = None) -> Project:
    """Apply whitelisted scalar fields and record an ``update`` history entry."""
    patch = validate_update(data)
    changed = {k: v for k, v in patch.items() if getattr(project, k) != v}
    if not changed:
        return project

    for attr, value in changed.items():
        setattr(project, attr, value)
    project.updated_at = datetime.now(timezone.utc)
    project.updated_by = actor_id
    db.session.flush()
    write_change(
        project_id=project.id,
        change_type="update",
        description="Updated " + ", ".join(sorted(changed)),
        changed_by=actor_id,
        snapshot=changed,
    )
    return project


def save_header(project_id: int, patch: dict, *, actor_id: str | None = None) -> int:
    """Debounced header write: no history entry, missing project is a no-op."""
    values = validate_update(patch)
    if not values:
        return 0
    if actor_id:
        values["updated_by"] = actor_id
    return gateway.projects.update({"id": project_id}, values)


def mark_done(project: Project, *, actor_id: str | None = None) -> bool:
    """Set status to done. Returns False (and writes nothing) when already done."""
    if project.status == "done":
        return False
    update_project(project, {"status": "done"}, actor_id=actor_id)
    return True


# ── Enhancement versions ─────────────────────────────────────────────────────


def next_version_number(project: Project) -> int:
    root_id = project.root_id
    current = (
        db.session.query(db.func.max(Project.version_number))
        .filter(or_(Project.id == root_id, Project.parent_project_id == root_id))
        .scalar()
    )
    return (current or project.version_number) + 1


def create_enhancement(
    project: Project,
    *,
    actor_id: str | None = None,
    deep_copy: bool = True,
) -> Project:
    """New draft version of a ``done`` project, parented on the tree root."""
    if project.status != "done":
        raise ValidationError(
            "Project must be marked as done before creating an enhancement",
            details={"status": project.status},
        )

    version = next_version_number(project)
    enhancement = Project(
        name=f"{project.name} - Enhancement v{version}",
        description=project.description,
        audience=project.audience,
        status="draft",
        version_number=version,
        parent_project_id=project.root_id,
        has_appendix_tab=project.has_appendix_tab,
        has_metric_logic_tab=project.has_metric_logic_tab,
        created_by=actor_id,
        updated_by=actor_id,
    )
    db.session.add(enhancement)
    db.session.flush()

    if deep_copy:
        _copy_dependents(project, enhancement)

    write_change(
        project_id=enhancement.id,
        change_type="version",
        description=f"Created enhancement version {version}",
        changed_by=actor_id,
        snapshot={"source_project_id": project.id, **enhancement.to_dict()},
    )
    logger.info("Project %s: enhancement v%s created as %s", project.id, version, enhancement.id)
    return enhancement


def _copy_dependents(source: Project, target: Project) -> None:
    fr = source.functional_requirements
    if fr:
        db.session.add(FunctionalRequirements(
            project_id=target.id,
            data_sources=list(fr.data_sources or []),
            metrics=list(fr.metrics or []),
            filter_carryover=fr.filter_carryover,
        ))
    dr = source.design_requirements
    if dr:
        db.session.add(DesignRequirements(
            project_id=target.id,
            dashboard_size=dr.dashboard_size,
            color_palette=list(dr.color_palette or []),
            fonts=list(dr.fonts or []),
            logo_url=dr.logo_url,
            logo_location=dr.logo_location,
            additional_requirements=dr.additional_requirements,
        ))

    tab_ids = {}
    for tab in source.tabs:
        copy = DashboardTab(project_id=target.id, name=tab.name, order_index=tab.order_index)
        db.session.add(copy)
        db.session.flush()
        tab_ids[tab.id] = copy.id

    for flt in source.filters.order_by(Filter.id):
        db.session.add(Filter(
            project_id=target.id,
            tab_id=tab_ids.get(flt.tab_id),
            name=flt.name,
            data_source=flt.data_source,
            multi_select=flt.multi_select,
            default_value=flt.default_value,
        ))

    for req in source.additional_requirements.order_by(AdditionalRequirement.id):
        db.session.add(AdditionalRequirement(
            project_id=target.id, category=req.category, content=req.content,
        ))

    for task in source.tasks:
        db.session.add(Task(
            project_id=target.id,
            description=task.description,
            order_index=task.order_index,
            completed=False,
        ))
    db.session.flush()


# ── Delete ───────────────────────────────────────────────────────────────────


def _descendant_ids(project_id: int) -> list[list[int]]:
    """Descendant ids grouped by depth, nearest level first."""
    levels = []
    frontier = [project_id]
    seen = {project_id}
    while frontier:
        children = [
            pid for (pid,) in
            db.session.query(Project.id).filter(Project.parent_project_id.in_(frontier)).all()
            if pid not in seen
        ]
        if not children:
            break
        seen.update(children)
        levels.append(children)
        frontier = children
    return levels


def delete_project(project_id: int) -> int:
    """Delete a project and every project descending from it, deepest first.

    Dependent rows go through the ``ON DELETE CASCADE`` foreign keys.
    Returns the number of projects removed.
    """
    get_project(project_id)
    deleted = 0
    for level in reversed(_descendant_ids(project_id)):
        for pid in level:
            deleted += gateway.projects.delete(id=pid)
    deleted += gateway.projects.delete(id=project_id)
    logger.info("Project %s deleted (%d projects including descendants)", project_id, deleted)
    return deleted
