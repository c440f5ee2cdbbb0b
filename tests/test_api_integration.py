"""
Integration tests for the HTTP API
"""

import pytest
from fastapi.testclient import TestClient

from secbank.api import create_app
from secbank.config import SecbankConfig
from secbank.gateway import MockSwitchGateway
from secbank.system import BankingSystem


class TestAPIIntegration:

    def setup_method(self):
        self.gateway = MockSwitchGateway(rejected_bank_codes=["LBP"])
        self.system = BankingSystem(SecbankConfig(database_url="memory://"), gateway=self.gateway)
        self.client = TestClient(create_app(self.system))

        response = self.client.post("/customers", json={"name": "Juan Dela Cruz"})
        assert response.status_code == 201
        self.customer_id = response.json()["data"]["id"]

        response = self.client.post("/accounts", json={"customer_id": self.customer_id, "branch_code": "001"})
        assert response.status_code == 201
        self.account = response.json()["data"]

    def deposit(self, amount, account_id=None):
        return self.client.post("/transactions/deposit", json={
            "account_id": account_id or self.account["id"],
            "amount": amount,
        })

    def test_health_and_info(self):
        response = self.client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "instapay" in self.client.get("/").json()["endpoints"]

    def test_branches_seeded(self):
        data = self.client.get("/branches").json()["data"]
        assert [b["code"] for b in data] == ["001", "002", "003", "004", "005"]

    def test_account_created_with_zero_balance(self):
        assert self.account["balance"] == "0.00"
        assert self.account["status"] == "active"
        assert self.account["account_number"].startswith("001")

        by_number = self.client.get(f"/accounts/number/{self.account['account_number']}")
        assert by_number.json()["data"]["id"] == self.account["id"]

    def test_deposit_and_withdraw(self):
        response = self.deposit("1000.00")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["balance_after"] == "1000.00"
        assert body["data"]["transaction_type"] == "DEPOSIT"

        response = self.client.post("/transactions/withdraw", json={
            "account_id": self.account["id"], "amount": "300.00"
        })
        assert response.json()["data"]["amount"] == "-300.00"

        account = self.client.get(f"/accounts/{self.account['id']}").json()["data"]
        assert account["balance"] == "700.00"

        history = self.client.get(f"/accounts/{self.account['id']}/transactions").json()["data"]
        assert [h["amount"] for h in history] == ["-300.00", "1000.00"]

    def test_integer_amount_accepted(self):
        assert self.deposit(250).json()["data"]["amount"] == "250.00"

    def test_insufficient_balance_error_shape(self):
        self.deposit("100.00")
        response = self.client.post("/transactions/withdraw", json={
            "account_id": self.account["id"], "amount": "100.01"
        })
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "INSUFFICIENT_BALANCE"
        assert body["error"]["available_balance"] == "100.00"

    def test_validation_errors(self):
        assert self.deposit("0").json()["error"]["code"] == "VALIDATION_ERROR"
        assert self.deposit("1.234").status_code == 400

        response = self.client.post("/transactions/deposit", json={"account_id": self.account["id"]})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_not_found(self):
        response = self.deposit("10.00", account_id="missing")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"
        assert self.client.get("/accounts/missing").status_code == 404
        assert self.client.get("/transactions/reference/TXN20260115999999").status_code == 404

    def test_transfer(self):
        other = self.client.post("/accounts", json={
            "customer_id": self.customer_id, "branch_code": "002"
        }).json()["data"]
        self.deposit("500.00")

        response = self.client.post("/transactions/transfer", json={
            "from_account_id": self.account["id"],
            "to_account_number": other["account_number"],
            "amount": "125.50",
        })
        assert response.status_code == 200
        reference = response.json()["data"]["reference_number"]

        entry = self.client.get(f"/transactions/reference/{reference}").json()["data"]
        assert entry["related_account_number"] == other["account_number"]
        assert self.client.get(f"/accounts/{other['id']}").json()["data"]["balance"] == "125.50"

    def test_close_account_blocks_postings(self):
        response = self.client.patch(f"/accounts/{self.account['id']}/status", json={"status": "closed"})
        assert response.json()["data"]["status"] == "closed"

        response = self.deposit("10.00")
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "ACCOUNT_CLOSED"

        response = self.client.patch(f"/accounts/{self.account['id']}/status", json={"status": "active"})
        assert response.status_code == 400

    def test_customer_with_accounts_not_deletable(self):
        response = self.client.delete(f"/customers/{self.customer_id}")
        assert response.status_code == 400

        customer = self.client.get(f"/customers/{self.customer_id}").json()["data"]
        assert len(customer["accounts"]) == 1

    def test_instapay_send_and_callback(self):
        self.deposit("1000.00")

        response = self.client.post("/instapay/send", json={
            "source_account_id": self.account["id"],
            "bank_name": "Metrobank",
            "account_number": "1234567890",
            "account_name": "Maria Santos",
            "amount": "600.00",
        })
        assert response.status_code == 200
        data = response.json()["data"]
        reference = data["reference_number"]
        assert data["status"] == "PENDING"
        assert data["switch_accepted"] is True
        assert data["transfer"]["bank_code"] == "MBTC"
        assert data["transfer"]["switch_reference_number"] == f"SW{reference}"
        assert self.gateway.submitted[0].reference_number == reference

        pending = self.client.get("/instapay/pending").json()["data"]
        assert [p["reference_number"] for p in pending] == [reference]

        response = self.client.post("/instapay/callback", json={
            "reference_number": reference, "status": "FAILED", "message": "Closed account"
        })
        ack = response.json()["data"]
        assert ack["status"] == "FAILED"
        assert ack["already_final"] is False
        assert ack["reversal_reference_number"] is not None

        again = self.client.post("/instapay/callback", json={
            "reference_number": reference, "status": "FAILED"
        }).json()["data"]
        assert again["already_final"] is True

        assert self.client.get(f"/accounts/{self.account['id']}").json()["data"]["balance"] == "1000.00"
        status = self.client.get(f"/instapay/status/{reference}").json()["data"]
        assert status["status"] == "FAILED"
        assert status["status_message"] == "Closed account"

    def test_instapay_rejected_by_switch_is_reversed(self):
        self.deposit("1000.00")

        response = self.client.post("/instapay/send", json={
            "source_account_id": self.account["id"],
            "bank_name": "Landbank",
            "account_number": "1234567890",
            "account_name": "Maria Santos",
            "amount": "200.00",
        })
        data = response.json()["data"]
        assert data["switch_accepted"] is False
        assert data["status"] == "FAILED"
        assert self.client.get(f"/accounts/{self.account['id']}").json()["data"]["balance"] == "1000.00"

    def test_instapay_ceiling(self):
        response = self.client.post("/instapay/send", json={
            "source_account_id": self.account["id"],
            "bank_name": "BDO",
            "account_number": "1234567890",
            "account_name": "Maria Santos",
            "amount": "50000.01",
        })
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        assert len(self.gateway.submitted) == 0

    def test_instapay_callback_errors(self):
        response = self.client.post("/instapay/callback", json={
            "reference_number": "TXN20260115999999", "status": "SUCCESS"
        })
        assert response.status_code == 404

        assert self.client.get("/instapay/status/TXN20260115999999").status_code == 404

    def test_oversized_amount_is_validation_error(self):
        for amount in ("1e30", "1000000000000000000000000000", "1000000000000000.00"):
            response = self.deposit(amount)
            assert response.status_code == 400
            assert response.json()["success"] is False
            assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        assert self.client.get(f"/accounts/{self.account['id']}/balance").json()["data"]["balance"] == "0.00"

    def test_account_balance(self):
        self.deposit("1250.50")
        response = self.client.get(f"/accounts/{self.account['id']}/balance")
        assert response.status_code == 200
        assert response.json()["data"] == {
            "account_id": self.account["id"],
            "account_number": self.account["account_number"],
            "balance": "1250.50",
        }

        response = self.client.get("/accounts/does-not-exist/balance")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_customer_listing_totals(self):
        second = self.client.post("/accounts", json={"customer_id": self.customer_id, "branch_code": "002"})
        self.deposit("1000.00")
        self.deposit("250.25", account_id=second.json()["data"]["id"])
        self.client.post("/customers", json={"name": "Ana Reyes"})

        customers = {c["name"]: c for c in self.client.get("/customers").json()["data"]}
        assert customers["Juan Dela Cruz"]["account_count"] == 2
        assert customers["Juan Dela Cruz"]["total_balance"] == "1250.25"
        assert customers["Ana Reyes"]["account_count"] == 0
        assert customers["Ana Reyes"]["total_balance"] == "0.00"

    def test_instapay_listing_includes_settled_transfers(self):
        self.deposit("1000.00")
        sent = []
        for bank_name in ("BDO", "Landbank"):
            response = self.client.post("/instapay/send", json={
                "source_account_id": self.account["id"],
                "bank_name": bank_name,
                "account_number": "1234567890",
                "account_name": "Maria Santos",
                "amount": "100.00",
            })
            sent.append(response.json()["data"]["reference_number"])

        listing = self.client.get("/instapay").json()["data"]
        assert sorted(t["reference_number"] for t in listing) == sorted(sent)
        assert {t["reference_number"]: t["status"] for t in listing} == {
            sent[0]: "PENDING", sent[1]: "FAILED"
        }
        assert len(self.client.get("/instapay", params={"limit": 1}).json()["data"]) == 1
