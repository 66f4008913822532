"""
BI Spec Builder
Project blueprint: project lifecycle endpoints.

Endpoints summary:
    PROJECT  /api/v1/projects                        GET (q, view), POST
             /api/v1/projects/<id>                   GET, PUT, DELETE
             /api/v1/projects/<id>/autosave          PATCH   (debounced header save)
             /api/v1/projects/<id>/done              POST
             /api/v1/projects/<id>/enhancements      POST
             /api/v1/projects/<id>/versions          GET
             /api/v1/projects/<id>/history           GET
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from specbuilder.blueprints import current_user_id
from specbuilder.models.project import Project
from specbuilder.services import project_service
from specbuilder.utils.errors import E, api_error
from specbuilder.utils.helpers import db_commit_or_error, get_json_body, get_or_404

logger = logging.getLogger(__name__)

project_bp = Blueprint("project", __name__, url_prefix="/api/v1")

AUTOSAVE_FIELDS = ("name", "description", "audience")


@project_bp.route("/projects", methods=["GET"])
def list_projects():
    items = project_service.list_projects(
        actor_id=current_user_id(),
        q=request.args.get("q"),
        view=request.args.get("view", "all"),
        recent_days=current_app.config.get("RECENT_PROJECT_DAYS", 7),
    )
    return jsonify({"items": items, "total": len(items)})


@project_bp.route("/projects", methods=["POST"])
def create_project():
    project = project_service.create_project(data=get_json_body(), actor_id=current_user_id())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict()), 201


@project_bp.route("/projects/<int:project_id>", methods=["GET"])
def get_project(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    return jsonify(project.to_dict())


@project_bp.route("/projects/<int:project_id>", methods=["PUT"])
def update_project(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    data = get_json_body()
    if not data:
        return api_error(E.VALIDATION_REQUIRED, "Request body is required")
    project_service.update_project(project, data, actor_id=current_user_id())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict())


@project_bp.route("/projects/<int:project_id>", methods=["DELETE"])
def delete_project(project_id):
    deleted = project_service.delete_project(project_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": True, "projects_deleted": deleted})


@project_bp.route("/projects/<int:project_id>/autosave", methods=["PATCH"])
def autosave_project(project_id):
    """Queue a header edit; the write happens once typing pauses."""
    _, err = get_or_404(Project, project_id)
    if err:
        return err
    data = get_json_body()
    patch = {k: data[k] for k in AUTOSAVE_FIELDS if k in data}
    if not patch:
        return api_error(
            E.VALIDATION_REQUIRED,
            f"One of {', '.join(AUTOSAVE_FIELDS)} is required",
        )
    patch = project_service.validate_update(patch)
    pending = current_app.extensions["autosave"].schedule(
        project_id, patch, actor_id=current_user_id(),
    )
    return jsonify({"scheduled": True, "pending": pending}), 202


@project_bp.route("/projects/<int:project_id>/done", methods=["POST"])
def mark_done(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    changed = project_service.mark_done(project, actor_id=current_user_id())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({**project.to_dict(), "changed": changed})


@project_bp.route("/projects/<int:project_id>/enhancements", methods=["POST"])
def create_enhancement(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    enhancement = project_service.create_enhancement(
        project,
        actor_id=current_user_id(),
        deep_copy=current_app.config.get("ENHANCEMENT_DEEP_COPY", True),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(enhancement.to_dict()), 201


@project_bp.route("/projects/<int:project_id>/versions", methods=["GET"])
def list_versions(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    versions = project_service.list_versions(project)
    return jsonify({"items": [p.to_dict() for p in versions], "total": len(versions)})


@project_bp.route("/projects/<int:project_id>/history", methods=["GET"])
def list_history(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    entries = project_service.list_history(project)
    return jsonify({"items": [h.to_dict() for h in entries], "total": len(entries)})
