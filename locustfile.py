"""
Locust load tests for the fee API.

Install: pip install -e ".[load]"
Run: locust -f locustfile.py --host=http://127.0.0.1:5050

For headless: locust -f locustfile.py --host=http://127.0.0.1:5050 \
    --users 50 --spawn-rate 10 --run-time 1m --headless

Preview and settlement need a token: LOCUST_TOKEN=$(python debug_jwt.py | sed -n 2p)
Set RATE_LIMIT_ENABLED=0 on the server, or every user shares one IP bucket.
"""

import os
import random
from locust import HttpUser, task, between

TYPES = [
    "wallet_to_wallet",
    "wallet_to_merchant",
    "bank_transfer",
    "cash_out",
    "merchant_fee",
    "tontine_fee",
]

# amounts around every threshold of the default schedule
AMOUNTS = [50, 300, 500, 999.99, 1000, 1000.01, 2000, 2000.01, 3000, 50000, 50000.01, 60000]


class FeeAPIUser(HttpUser):
    wait_time = between(0.1, 0.5)

    def on_start(self):
        self.token = os.getenv("LOCUST_TOKEN")

    def _headers(self):
        h = {"Content-Type": "application/json"}
        if self.token:
            h["Authorization"] = f"Bearer {self.token}"
        return h

    @task(2)
    def ping(self):
        self.client.get("/__ping")

    @task(3)
    def schedule(self):
        self.client.get("/api/fees/schedule")

    @task(20)
    def preview(self):
        self.client.post(
            "/api/fees/preview",
            json={"type": random.choice(TYPES), "amount": random.choice(AMOUNTS)},
            headers=self._headers(),
        )

    @task(5)
    def settlement(self):
        tx_type = random.choice(TYPES)
        amount = random.choice(AMOUNTS)
        with self.client.post(
            "/api/fees/preview",
            json={"type": tx_type, "amount": amount},
            headers=self._headers(),
            catch_response=True,
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"preview failed: {resp.status_code}")
                return
            quote = resp.json()
        self.client.post(
            "/api/fees/settlement",
            json={
                "type": tx_type,
                "amount": amount,
                "fee": quote["fee"],
                "schedule_version": quote["schedule_version"],
            },
            headers=self._headers(),
        )
