"""
Pytest configuration and shared fixtures.
"""

import json
import os

import pytest
from flask_jwt_extended import create_access_token

from floussly import create_app
from floussly.utils.fee_schedule import DEFAULT_FEE_SCHEDULE, fee_schedule_to_dict
from floussly.utils.rate_limit import reset_rate_limits


@pytest.fixture
def app(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "0")
    monkeypatch.delenv("FEE_SCHEDULE_PATH", raising=False)
    monkeypatch.delenv("TRUSTED_PROXY_COUNT", raising=False)
    reset_rate_limits()
    app = create_app({"TESTING": True, "JWT_SECRET_KEY": "test-secret"})
    yield app
    reset_rate_limits()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_headers(app):
    def _make(role: str = "user") -> dict:
        with app.app_context():
            token = create_access_token(
                identity="test-user-id", additional_claims={"role": role}
            )
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def auth_headers(make_headers):
    return make_headers()


@pytest.fixture
def admin_headers(make_headers):
    return make_headers("admin")


@pytest.fixture
def schedule_doc():
    """A fresh, editable copy of the default schedule document."""
    return json.loads(json.dumps(fee_schedule_to_dict(DEFAULT_FEE_SCHEDULE)))


@pytest.fixture
def write_schedule(tmp_path):
    def _write(doc, name: str = "fee_schedule.json") -> str:
        path = tmp_path / name
        path.write_text(doc if isinstance(doc, str) else json.dumps(doc), encoding="utf-8")
        return os.fspath(path)

    return _write
