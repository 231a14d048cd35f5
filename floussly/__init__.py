# floussly/__init__.py
import logging
import os
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_jwt_extended import JWTManager
from werkzeug.middleware.proxy_fix import ProxyFix

from floussly.routes import core, fees_bp, admin_bp
from floussly.services.fee_service import record_unknown_type
from floussly.utils.errors import (
    FeeMismatch,
    InvalidAmount,
    InvalidFeeSchedule,
    UnknownTransactionType,
)
from floussly.utils.fee_schedule import DEFAULT_FEE_SCHEDULE, load_fee_schedule
from floussly.utils.logging_config import configure_logging

load_dotenv(dotenv_path=".env")

logger = logging.getLogger(__name__)


def create_app(config: dict | None = None):
    configure_logging()

    app = Flask(__name__)
    app.url_map.strict_slashes = False

    # JWT
    app.config["JWT_SECRET_KEY"] = os.getenv("JWT_SECRET", "dev-secret")
    app.config["JWT_TOKEN_LOCATION"] = ["headers"]
    app.config["JWT_HEADER_NAME"] = "Authorization"
    app.config["JWT_HEADER_TYPE"] = "Bearer"
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(minutes=15)

    # Pricing table: built once here, replaced whole on reload
    schedule_path = os.getenv("FEE_SCHEDULE_PATH", "").strip()
    if schedule_path:
        app.config["FEE_SCHEDULE"] = load_fee_schedule(schedule_path)
    else:
        app.config["FEE_SCHEDULE"] = DEFAULT_FEE_SCHEDULE

    if config:
        app.config.update(config)

    JWTManager(app)

    # honour X-Forwarded-For only from TRUSTED_PROXY_COUNT known proxies
    proxies = int(os.getenv("TRUSTED_PROXY_COUNT", "0") or 0)
    if proxies > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=proxies)
    logger.info(
        "fee schedule v%s active (%s)",
        app.config["FEE_SCHEDULE"].version,
        schedule_path or "built-in",
    )

    @app.get("/__ping")
    def __ping():
        return {"ok": True}, 200

    @app.errorhandler(UnknownTransactionType)
    def _unknown_type(e):
        record_unknown_type(e.transaction_type)
        return (
            jsonify({"error": "unknown transaction type", "type": e.transaction_type}),
            400,
        )

    @app.errorhandler(InvalidAmount)
    def _invalid_amount(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(FeeMismatch)
    def _fee_mismatch(e):
        return jsonify(e.to_dict()), 409

    @app.errorhandler(InvalidFeeSchedule)
    def _invalid_schedule(e):
        logger.error("invalid fee schedule: %s", e)
        return jsonify({"error": "invalid fee schedule", "detail": str(e)}), 500

    app.register_blueprint(core)
    app.register_blueprint(fees_bp)
    app.register_blueprint(admin_bp)

    return app
