"""
BI Spec Builder
Export blueprint: Markdown download of a full specification.

Endpoints summary:
    EXPORT  /api/v1/projects/<id>/export   GET → text/markdown attachment
"""

import io
from datetime import datetime, timezone

from flask import Blueprint, send_file

from specbuilder.models.project import Project
from specbuilder.services import export_service
from specbuilder.utils.helpers import get_or_404

export_bp = Blueprint("export", __name__, url_prefix="/api/v1")


@export_bp.route("/projects/<int:project_id>/export", methods=["GET"])
def export_markdown(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    snapshot = export_service.build_snapshot(project)
    body = export_service.render_markdown(snapshot, datetime.now(timezone.utc))
    return send_file(
        io.BytesIO(body.encode("utf-8")),
        mimetype=export_service.MARKDOWN_MIMETYPE,
        as_attachment=True,
        download_name=export_service.export_filename(snapshot.project),
        max_age=0,
    )
