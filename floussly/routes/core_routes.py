from flask import Blueprint, current_app, jsonify

core = Blueprint("core", __name__)


@core.get("/")
def root():
    return jsonify(
        {
            "service": "floussly-fees",
            "ok": True,
            "schedule_version": current_app.config["FEE_SCHEDULE"].version,
        }
    )


@core.get("/api")
def api_index():
    return jsonify(
        {
            "endpoints": {
                "fees": [
                    "/api/fees/schedule (GET)",
                    "/api/fees/preview (POST)",
                    "/api/fees/settlement (POST)",
                ],
                "admin": ["/admin/metrics (GET)", "/admin/fees/reload (POST)"],
            }
        }
    )
