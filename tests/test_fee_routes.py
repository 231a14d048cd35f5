"""
HTTP API: fee schedule, preview, settlement, admin endpoints.
"""

from prometheus_client import REGISTRY

from floussly import create_app


class TestPublicEndpoints:
    def test_ping(self, client):
        resp = client.get("/__ping")
        assert resp.status_code == 200
        assert resp.get_json() == {"ok": True}

    def test_root_reports_schedule_version(self, client):
        body = client.get("/").get_json()
        assert body["ok"] is True
        assert body["schedule_version"] == "2"

    def test_api_index(self, client):
        body = client.get("/api").get_json()
        assert "/api/fees/preview (POST)" in body["endpoints"]["fees"]

    def test_schedule(self, client):
        resp = client.get("/api/fees/schedule")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["version"] == "2"
        assert body["rules"]["tontine_fee"]["max_fee"] == "750"
        assert set(body["rules"]) == {
            "wallet_to_wallet",
            "wallet_to_merchant",
            "bank_transfer",
            "cash_out",
            "merchant_fee",
            "tontine_fee",
        }


class TestPreview:
    def test_requires_jwt(self, client):
        resp = client.post("/api/fees/preview", json={"type": "cash_out", "amount": 500})
        assert resp.status_code == 401

    def test_reference_scenarios(self, client, auth_headers):
        cases = [
            ("wallet_to_wallet", 200, "0.00"),
            ("bank_transfer", 1200, "13.00"),
            ("bank_transfer", 500, "2.75"),
            ("merchant_fee", 3000, "21.00"),
            ("tontine_fee", 60000, "750.00"),
        ]
        for tx_type, amount, fee in cases:
            resp = client.post(
                "/api/fees/preview",
                json={"type": tx_type, "amount": amount},
                headers=auth_headers,
            )
            assert resp.status_code == 200, resp.get_json()
            assert resp.get_json()["fee"] == fee

    def test_preview_body(self, client, auth_headers):
        resp = client.post(
            "/api/fees/preview",
            json={"type": "CASH_OUT", "amount": "300"},
            headers=auth_headers,
        )
        body = resp.get_json()
        assert body["transaction_type"] == "cash_out"
        assert body["fee"] == "4.00"
        assert body["total"] == "304.00"
        assert body["band"] == "minimum"
        assert body["description"] == "Minimum fee: 4 MAD"
        assert body["label"] == "Withdrawal fee"

    def test_draft_amount_is_zero_fee_not_error(self, client, auth_headers):
        for amount in [None, "", "12,5", -3, 0]:
            resp = client.post(
                "/api/fees/preview",
                json={"type": "bank_transfer", "amount": amount},
                headers=auth_headers,
            )
            assert resp.status_code == 200
            assert resp.get_json()["no_fee"] is True

    def test_huge_amount_is_priced(self, client, auth_headers):
        resp = client.post(
            "/api/fees/preview",
            json={"type": "merchant_fee", "amount": "1e30"},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["fee"] == "7000000000000000000000000000.00"

    def test_missing_type(self, client, auth_headers):
        resp = client.post("/api/fees/preview", json={"amount": 10}, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "type is required"}

    def test_non_object_body(self, client, auth_headers):
        resp = client.post("/api/fees/preview", json=["cash_out", 10], headers=auth_headers)
        assert resp.status_code == 400

    def test_unknown_type_is_surfaced(self, client, auth_headers):
        before = REGISTRY.get_sample_value("floussly_fee_unknown_type_total") or 0.0
        resp = client.post(
            "/api/fees/preview",
            json={"type": "card_topup", "amount": 100},
            headers=auth_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "unknown transaction type", "type": "card_topup"}
        after = REGISTRY.get_sample_value("floussly_fee_unknown_type_total")
        assert after == before + 1


class TestSettlement:
    def test_settles_displayed_fee(self, client, auth_headers):
        preview = client.post(
            "/api/fees/preview",
            json={"type": "tontine_fee", "amount": 2000.01},
            headers=auth_headers,
        ).get_json()
        resp = client.post(
            "/api/fees/settlement",
            json={
                "type": "tontine_fee",
                "amount": 2000.01,
                "fee": preview["fee"],
                "schedule_version": preview["schedule_version"],
            },
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["total"] == "2030.01"

    def test_mismatch_is_conflict(self, client, auth_headers):
        resp = client.post(
            "/api/fees/settlement",
            json={"type": "bank_transfer", "amount": 1500, "fee": "2.75"},
            headers=auth_headers,
        )
        assert resp.status_code == 409
        body = resp.get_json()
        assert body["expected_fee"] == "13.00"
        assert body["displayed_fee"] == "2.75"

    def test_stale_schedule_version_is_conflict(self, client, auth_headers):
        resp = client.post(
            "/api/fees/settlement",
            json={"type": "cash_out", "amount": 500, "fee": "5.00", "schedule_version": "1"},
            headers=auth_headers,
        )
        assert resp.status_code == 409

    def test_malformed_amount(self, client, auth_headers):
        resp = client.post(
            "/api/fees/settlement",
            json={"type": "cash_out", "amount": -1, "fee": "4.00"},
            headers=auth_headers,
        )
        assert resp.status_code == 400

    def test_sub_cent_amount_is_rejected(self, client, auth_headers):
        resp = client.post(
            "/api/fees/settlement",
            json={"type": "bank_transfer", "amount": "1000.004", "fee": "13"},
            headers=auth_headers,
        )
        assert resp.status_code == 400
        assert "whole cents" in resp.get_json()["error"]

    def test_fee_required(self, client, auth_headers):
        resp = client.post(
            "/api/fees/settlement",
            json={"type": "cash_out", "amount": 500},
            headers=auth_headers,
        )
        assert resp.status_code == 400


class TestAdmin:
    def test_metrics_requires_jwt(self, client):
        assert client.get("/admin/metrics").status_code == 401

    def test_metrics(self, client, auth_headers):
        client.post(
            "/api/fees/preview",
            json={"type": "merchant_fee", "amount": 50},
            headers=auth_headers,
        )
        resp = client.get("/admin/metrics", headers=auth_headers)
        assert resp.status_code == 200
        assert b"floussly_fee_quotes_total" in resp.data

    def test_reload_requires_admin(self, client, auth_headers):
        resp = client.post("/admin/fees/reload", headers=auth_headers)
        assert resp.status_code == 403

    def test_reload_without_path(self, client, admin_headers):
        resp = client.post("/admin/fees/reload", headers=admin_headers)
        assert resp.status_code == 400

    def test_reload_swaps_schedule(
        self, app, client, admin_headers, auth_headers, schedule_doc, write_schedule, monkeypatch
    ):
        schedule_doc["version"] = "3"
        schedule_doc["rules"]["bank_transfer"]["low_fee"] = "3"
        monkeypatch.setenv("FEE_SCHEDULE_PATH", write_schedule(schedule_doc))

        resp = client.post("/admin/fees/reload", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json() == {"ok": True, "previous_version": "2", "version": "3"}
        assert app.config["FEE_SCHEDULE"].version == "3"

        preview = client.post(
            "/api/fees/preview",
            json={"type": "bank_transfer", "amount": 500},
            headers=auth_headers,
        ).get_json()
        assert preview["fee"] == "3.00"
        assert preview["schedule_version"] == "3"

    def test_broken_reload_keeps_current_schedule(
        self, app, client, admin_headers, write_schedule, monkeypatch
    ):
        monkeypatch.setenv("FEE_SCHEDULE_PATH", write_schedule('{"version": "9", "rules": {}}'))
        resp = client.post("/admin/fees/reload", headers=admin_headers)
        assert resp.status_code == 500
        assert resp.get_json()["error"] == "invalid fee schedule"
        assert app.config["FEE_SCHEDULE"].version == "2"


class TestStartupConfig:
    def test_schedule_from_env(self, monkeypatch, schedule_doc, write_schedule):
        schedule_doc["version"] = "7"
        monkeypatch.setenv("FEE_SCHEDULE_PATH", write_schedule(schedule_doc))
        app = create_app({"TESTING": True})
        assert app.config["FEE_SCHEDULE"].version == "7"
