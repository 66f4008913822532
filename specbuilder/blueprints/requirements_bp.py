"""
BI Spec Builder
Requirements blueprint: preview reads and direct edits.

Endpoints summary:
    PREVIEW     /api/v1/projects/<id>/requirements               GET
    FUNCTIONAL  /api/v1/projects/<id>/requirements/functional    PUT
    DESIGN      /api/v1/projects/<id>/requirements/design        PUT
    TAB         /api/v1/tabs/<id>                                PUT, DELETE
    FILTERS     /api/v1/projects/<id>/filters                    POST (global filter)
    FILTER      /api/v1/filters/<id>                             PUT, DELETE
    ADDITIONAL  /api/v1/additional-requirements/<id>             PUT, DELETE
"""

import logging

from flask import Blueprint, jsonify

from specbuilder.models.project import Project
from specbuilder.services import requirements_service as reqs
from specbuilder.utils.helpers import db_commit_or_error, get_json_body, get_or_404

logger = logging.getLogger(__name__)

requirements_bp = Blueprint("requirements", __name__, url_prefix="/api/v1")


# ═════════════════════════════════════════════════════════════════════════════
# Project-level requirement documents
# ═════════════════════════════════════════════════════════════════════════════


@requirements_bp.route("/projects/<int:project_id>/requirements", methods=["GET"])
def get_requirements(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    return jsonify(reqs.get_requirements(project))


@requirements_bp.route("/projects/<int:project_id>/requirements/functional", methods=["PUT"])
def update_functional(project_id):
    _, err = get_or_404(Project, project_id)
    if err:
        return err
    fr = reqs.update_functional(project_id, get_json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(fr.to_dict())


@requirements_bp.route("/projects/<int:project_id>/requirements/design", methods=["PUT"])
def update_design(project_id):
    _, err = get_or_404(Project, project_id)
    if err:
        return err
    dr = reqs.update_design(project_id, get_json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(dr.to_dict())


# ═════════════════════════════════════════════════════════════════════════════
# Tabs, filters, additional requirements
# ═════════════════════════════════════════════════════════════════════════════


@requirements_bp.route("/tabs/<int:tab_id>", methods=["PUT"])
def update_tab(tab_id):
    tab = reqs.update_tab(tab_id, get_json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(tab.to_dict())


@requirements_bp.route("/tabs/<int:tab_id>", methods=["DELETE"])
def delete_tab(tab_id):
    reqs.delete_tab(tab_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": True})


@requirements_bp.route("/projects/<int:project_id>/filters", methods=["POST"])
def add_global_filter(project_id):
    _, err = get_or_404(Project, project_id)
    if err:
        return err
    flt = reqs.add_global_filter(project_id, get_json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(flt.to_dict()), 201


@requirements_bp.route("/filters/<int:filter_id>", methods=["PUT"])
def update_filter(filter_id):
    flt = reqs.update_filter(filter_id, get_json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(flt.to_dict())


@requirements_bp.route("/filters/<int:filter_id>", methods=["DELETE"])
def delete_filter(filter_id):
    reqs.delete_filter(filter_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": True})


@requirements_bp.route("/additional-requirements/<int:req_id>", methods=["PUT"])
def update_additional_requirement(req_id):
    req = reqs.update_additional_requirement(req_id, get_json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(req.to_dict())


@requirements_bp.route("/additional-requirements/<int:req_id>", methods=["DELETE"])
def delete_additional_requirement(req_id):
    reqs.delete_additional_requirement(req_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": True})
