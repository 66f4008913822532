"""
BI Spec Builder
Task blueprint: per-project task checklist.

Endpoints summary:
    TASK  /api/v1/projects/<id>/tasks           GET, POST
          /api/v1/projects/<id>/tasks/reorder   PUT  {task_ids} | {task_id, to_index}
          /api/v1/tasks/<id>                    PUT, DELETE
"""

import logging

from flask import Blueprint, jsonify

from specbuilder.blueprints import current_user_id
from specbuilder.models.project import Project
from specbuilder.services import task_service
from specbuilder.utils.errors import E, api_error
from specbuilder.utils.helpers import db_commit_or_error, get_json_body, get_or_404

logger = logging.getLogger(__name__)

task_bp = Blueprint("task", __name__, url_prefix="/api/v1")


@task_bp.route("/projects/<int:project_id>/tasks", methods=["GET"])
def list_tasks(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    return jsonify(task_service.list_tasks(project))


@task_bp.route("/projects/<int:project_id>/tasks", methods=["POST"])
def create_task(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    data = get_json_body()
    task = task_service.add_task(project, str(data.get("description") or ""))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(task.to_dict()), 201


@task_bp.route("/projects/<int:project_id>/tasks/reorder", methods=["PUT"])
def reorder_tasks(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    data = get_json_body()
    if "task_ids" not in data and "task_id" not in data:
        return api_error(E.VALIDATION_REQUIRED, "task_ids or task_id is required")
    tasks = task_service.reorder_tasks(
        project,
        task_ids=data.get("task_ids"),
        task_id=data.get("task_id"),
        to_index=data.get("to_index"),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"items": [t.to_dict() for t in tasks], "total": len(tasks)})


@task_bp.route("/tasks/<int:task_id>", methods=["PUT"])
def update_task(task_id):
    task = task_service.update_task(task_id, get_json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(task.to_dict())


@task_bp.route("/tasks/<int:task_id>", methods=["DELETE"])
def delete_task(task_id):
    task_service.delete_task(task_id, actor_id=current_user_id())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": True})
