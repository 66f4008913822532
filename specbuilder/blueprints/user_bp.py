"""
BI Spec Builder
User blueprint: id → email lookup for creator / updater display.

Endpoints summary:
    USER  /api/v1/users/emails   POST {user_ids: [...]}
"""

from flask import Blueprint, jsonify

from specbuilder.services import user_service
from specbuilder.utils.helpers import get_json_body

user_bp = Blueprint("user", __name__, url_prefix="/api/v1")


@user_bp.route("/users/emails", methods=["POST"])
def get_user_emails():
    data = get_json_body()
    items = user_service.get_user_emails(data.get("user_ids"))
    return jsonify({"items": items, "total": len(items)})
