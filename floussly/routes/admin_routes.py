import logging
import os

from flask import Blueprint, Response, current_app, jsonify
from flask_jwt_extended import jwt_required
from prometheus_client import REGISTRY, generate_latest, CONTENT_TYPE_LATEST

from floussly.utils.authz import require_role
from floussly.utils.fee_schedule import load_fee_schedule

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__)


@admin_bp.get("/admin/metrics")
@jwt_required()
def metrics():
    """Prometheus metrics endpoint. Requires a valid platform JWT."""
    return Response(
        generate_latest(REGISTRY),
        mimetype=CONTENT_TYPE_LATEST,
    )


@admin_bp.post("/admin/fees/reload")
@require_role("admin")
def reload_fee_schedule():
    """
    Re-read FEE_SCHEDULE_PATH and swap the active schedule in one assignment.
    A broken file raises InvalidFeeSchedule and the current schedule stays active.
    """
    path = os.getenv("FEE_SCHEDULE_PATH", "").strip()
    if not path:
        return jsonify({"error": "FEE_SCHEDULE_PATH is not set"}), 400

    previous = current_app.config["FEE_SCHEDULE"].version
    schedule = load_fee_schedule(path)
    current_app.config["FEE_SCHEDULE"] = schedule
    logger.info("fee schedule reloaded from %s: v%s -> v%s", path, previous, schedule.version)
    return jsonify({"ok": True, "previous_version": previous, "version": schedule.version}), 200
