"""
BI Spec Builder
Chat blueprint: guided requirement conversations.

The client owns the conversation state: GET returns the opening prompt and
a state positioned on the first unanswered step, POST echoes that state back
together with one user message.

Endpoints summary:
    CHAT  /api/v1/projects/<id>/chat/<flow>   GET   (start / resume)
                                              POST  {message, state?}
    flow ∈ {functional, design}
"""

import logging

from flask import Blueprint, jsonify

from specbuilder.blueprints import current_user_id
from specbuilder.models.project import Project
from specbuilder.services import conversation
from specbuilder.utils.errors import E, api_error
from specbuilder.utils.helpers import db_commit_or_error, get_json_body, get_or_404

logger = logging.getLogger(__name__)

chat_bp = Blueprint("chat", __name__, url_prefix="/api/v1")


def _check_flow(flow):
    if flow not in conversation.FLOWS:
        return api_error(
            E.VALIDATION_INVALID,
            f"Unknown conversation flow: {flow}",
            details={"flow": list(conversation.FLOWS)},
        )
    return None


@chat_bp.route("/projects/<int:project_id>/chat/<flow>", methods=["GET"])
def start_chat(project_id, flow):
    err = _check_flow(flow)
    if err:
        return err
    _, err = get_or_404(Project, project_id)
    if err:
        return err
    return jsonify(conversation.start(project_id, flow).to_dict())


@chat_bp.route("/projects/<int:project_id>/chat/<flow>", methods=["POST"])
def submit_chat(project_id, flow):
    err = _check_flow(flow)
    if err:
        return err
    _, err = get_or_404(Project, project_id)
    if err:
        return err

    data = get_json_body()
    message = data.get("message")
    if not isinstance(message, str):
        return api_error(E.VALIDATION_REQUIRED, "message is required")

    if data.get("state") is None:
        state = conversation.start(project_id, flow).state
    else:
        state = conversation.ConversationState.from_dict(flow, data["state"])

    result = conversation.submit(project_id, state, message, actor_id=current_user_id())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result.to_dict())
