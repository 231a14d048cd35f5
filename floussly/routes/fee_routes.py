from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required

from floussly.services.fee_service import build_preview, settle
from floussly.utils.fee_schedule import fee_schedule_to_dict
from floussly.utils.rate_limit import rate_limited

fees_bp = Blueprint("fees", __name__)


def _schedule():
    return current_app.config["FEE_SCHEDULE"]


def _body() -> dict:
    body = request.get_json(force=True, silent=True)
    return body if isinstance(body, dict) else {}


# GET /api/fees/schedule
@fees_bp.get("/api/fees/schedule")
def schedule():
    return jsonify(fee_schedule_to_dict(_schedule())), 200


# POST /api/fees/preview  { type, amount }
@fees_bp.post("/api/fees/preview")
@jwt_required()
@rate_limited("FEE_PREVIEW_RATE_LIMIT_PER_MINUTE", 600, key_prefix="fee_preview")
def preview():
    body = _body()
    tx_type = body.get("type")
    if tx_type is None or tx_type == "":
        return jsonify({"error": "type is required"}), 400
    return jsonify(build_preview(tx_type, body.get("amount"), _schedule())), 200


# POST /api/fees/settlement  { type, amount, fee, schedule_version? }
@fees_bp.post("/api/fees/settlement")
@jwt_required()
def settlement():
    body = _body()
    tx_type = body.get("type")
    if tx_type is None or tx_type == "" or "fee" not in body:
        return jsonify({"error": "type and fee are required"}), 400
    record = settle(
        tx_type,
        body.get("amount"),
        body.get("fee"),
        _schedule(),
        displayed_version=body.get("schedule_version"),
    )
    return jsonify(record), 200
