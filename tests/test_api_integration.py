"""
Integration tests for the Lending Tracker API
Tests end-to-end workflows using FastAPI TestClient
"""

import pytest
from fastapi.testclient import TestClient

import lending_tracker.api.dependencies
from lending_tracker.api import app
from lending_tracker.api.dependencies import LendingSystem
from lending_tracker.config import LendingConfig


LOAN_REQUEST = {
    "user_id": "USER001",
    "borrower_name": "Asha",
    "borrower_email": "asha@example.com",
    "lender_name": "Ravi",
    "principal_amount": "120000",
    "annual_interest_rate_percent": "12",
    "tenure_months": 12,
    "originated_on": "2024-01-31"
}


@pytest.fixture
def system():
    """In-memory lending system with log notifications"""
    return LendingSystem(
        use_sqlite=False,
        settings=LendingConfig(notifications_enabled=True, notification_channel="log")
    )


@pytest.fixture
def client(system):
    """Create a test client with the global lending system replaced"""
    original_system = lending_tracker.api.dependencies.lending_system
    lending_tracker.api.dependencies.lending_system = system

    yield TestClient(app)

    lending_tracker.api.dependencies.lending_system = original_system


def create_loan(client, **overrides):
    body = dict(LOAN_REQUEST)
    body.update(overrides)
    r = client.post("/loans", json=body)
    assert r.status_code == 201, r.text
    return r.json()


class TestHealthEndpoints:

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"

    def test_root(self, client):
        r = client.get("/")
        assert r.status_code == 200
        assert "endpoints" in r.json()


class TestCalculator:

    def test_emi_preview(self, client):
        r = client.post("/calculator/emi", json={
            "principal_amount": "120000",
            "annual_interest_rate_percent": "12",
            "tenure_months": 12
        })
        assert r.status_code == 200
        data = r.json()
        assert data["installment_amount"] == "10661.85"
        assert data["total_payable"] == "127942.26"
        assert data["total_interest"] == "7942.26"

    def test_emi_preview_accepts_grouped_amount(self, client):
        r = client.post("/calculator/emi", json={
            "principal_amount": "1,20,000",
            "annual_interest_rate_percent": "0",
            "tenure_months": 12
        })
        assert r.status_code == 200
        assert r.json()["installment_amount"] == "10000.00"

    @pytest.mark.parametrize("body", [
        {"principal_amount": "0", "annual_interest_rate_percent": "12", "tenure_months": 12},
        {"principal_amount": "1000", "annual_interest_rate_percent": "-1", "tenure_months": 12},
        {"principal_amount": "1000", "annual_interest_rate_percent": "12", "tenure_months": 0},
        {"principal_amount": "lots", "annual_interest_rate_percent": "12", "tenure_months": 12},
        {"principal_amount": "1e5", "annual_interest_rate_percent": "12", "tenure_months": 12},
        {"principal_amount": "12abc", "annual_interest_rate_percent": "12", "tenure_months": 12},
        {"principal_amount": "1000", "annual_interest_rate_percent": "12pct", "tenure_months": 12},
    ])
    def test_invalid_terms(self, client, body):
        r = client.post("/calculator/emi", json=body)
        assert r.status_code == 400


class TestLoanFlow:
    """End-to-end loan lifecycle"""

    def test_create_loan(self, client):
        data = create_loan(client)

        assert data["id"]
        assert data["status"] == "active"
        assert data["installment_amount"] == "10661.85"
        assert data["remaining_principal"] == "120000.00"
        assert data["paid_installments"] == 0
        assert data["next_due_date"] == "2024-02-29"
        assert data["notification_sent"] is True

    def test_create_loan_without_email(self, client):
        data = create_loan(client, borrower_email=None)
        assert data["notification_sent"] is False

    def test_create_loan_notification_opt_out(self, client, system):
        data = create_loan(client, notify_borrower=False)
        assert data["notification_sent"] is False
        assert system.notification_service.get_notifications(data["id"]) == []

    def test_create_loan_invalid_terms(self, client):
        body = dict(LOAN_REQUEST, tenure_months=0)
        assert client.post("/loans", json=body).status_code == 400

    @pytest.mark.parametrize("amount", ["1e5", "12abc"])
    def test_create_loan_rejects_non_numeric_amount(self, client, system, amount):
        body = dict(LOAN_REQUEST, principal_amount=amount)
        assert client.post("/loans", json=body).status_code == 400
        assert system.loan_manager.list_user_loans(LOAN_REQUEST["user_id"]) == []

    def test_create_loan_invalid_type(self, client):
        body = dict(LOAN_REQUEST, loan_type="gifted")
        assert client.post("/loans", json=body).status_code == 400

    def test_get_loan(self, client):
        loan_id = create_loan(client)["id"]

        r = client.get(f"/loans/{loan_id}")
        assert r.status_code == 200
        assert r.json()["borrower_name"] == "Asha"

    def test_get_missing_loan(self, client):
        assert client.get("/loans/missing").status_code == 404

    def test_pay_installment(self, client):
        loan_id = create_loan(client)["id"]

        r = client.post(f"/loans/{loan_id}/pay", json={"payment_date": "2024-02-29"})
        assert r.status_code == 200
        data = r.json()

        assert data["payment"]["installment_number"] == 1
        assert data["payment"]["interest_component"] == "1200.00"
        assert data["payment"]["principal_component"] == "9461.85"
        assert data["payment"]["payment_date"] == "2024-02-29"
        assert data["loan"]["remaining_principal"] == "110538.15"
        assert data["loan"]["paid_installments"] == 1
        assert data["loan"]["next_due_date"] == "2024-03-29"
        assert data["loan"]["status"] == "active"

    def test_pay_without_body(self, client):
        loan_id = create_loan(client)["id"]
        r = client.post(f"/loans/{loan_id}/pay")
        assert r.status_code == 200
        assert r.json()["loan"]["paid_installments"] == 1

    def test_full_repayment_then_conflict(self, client):
        loan_id = create_loan(client)["id"]

        for _ in range(12):
            r = client.post(f"/loans/{loan_id}/pay")
            assert r.status_code == 200

        data = r.json()
        assert data["loan"]["status"] == "completed"
        assert data["loan"]["next_due_date"] is None
        assert data["loan"]["progress"] == "1.0000"
        assert data["message"] == "Loan completed"

        r = client.post(f"/loans/{loan_id}/pay")
        assert r.status_code == 409

        payments = client.get(f"/loans/{loan_id}/payments").json()["payments"]
        assert len(payments) == 12

    def test_pay_missing_loan(self, client):
        assert client.post("/loans/missing/pay").status_code == 404

    def test_pay_bad_date(self, client):
        loan_id = create_loan(client)["id"]
        r = client.post(f"/loans/{loan_id}/pay", json={"payment_date": "yesterday"})
        assert r.status_code == 400

    def test_schedule(self, client):
        loan_id = create_loan(client)["id"]

        r = client.get(f"/loans/{loan_id}/schedule")
        assert r.status_code == 200
        schedule = r.json()["schedule"]
        assert len(schedule) == 12
        assert schedule[0]["due_date"] == "2024-02-29"
        assert schedule[0]["remaining_principal"] == "110538.15"

    def test_schedule_missing_loan(self, client):
        assert client.get("/loans/missing/schedule").status_code == 404
        assert client.get("/loans/missing/payments").status_code == 404


class TestUserEndpoints:

    def test_user_loans_and_stats(self, client):
        done = create_loan(client, principal_amount="1000", annual_interest_rate_percent="0", tenure_months=1)
        create_loan(client)
        create_loan(client, user_id="USER002")
        client.post(f"/loans/{done['id']}/pay")

        loans = client.get("/users/USER001/loans").json()["loans"]
        assert len(loans) == 2

        active = client.get("/users/USER001/loans", params={"status": "active"}).json()["loans"]
        assert [loan["principal_amount"] for loan in active] == ["120000"]

        stats = client.get("/users/USER001/stats").json()
        assert stats == {
            "total_loans": 2,
            "active_loans": 1,
            "completed_loans": 1,
            "total_principal": "121000.00",
            "total_emi": "10661.85"
        }

    def test_invalid_status_filter(self, client):
        assert client.get("/users/USER001/loans", params={"status": "overdue"}).status_code == 400

    def test_user_payments(self, client):
        loan_id = create_loan(client)["id"]
        client.post(f"/loans/{loan_id}/pay", json={"payment_date": "2024-02-29"})
        client.post(f"/loans/{loan_id}/pay", json={"payment_date": "2024-03-29"})

        payments = client.get("/users/USER001/payments").json()["payments"]
        assert [p["installment_number"] for p in payments] == [2, 1]
        assert client.get("/users/nobody/payments").json()["payments"] == []


class TestDisplayPrecision:
    """Amounts are rounded to the configured number of places"""

    @pytest.fixture
    def system(self):
        return LendingSystem(
            use_sqlite=False,
            settings=LendingConfig(
                notifications_enabled=True, notification_channel="log", display_precision=3
            )
        )

    def test_calculator(self, client):
        r = client.post("/calculator/emi", json={
            "principal_amount": "120000",
            "annual_interest_rate_percent": "12",
            "tenure_months": 12
        })
        assert r.json()["installment_amount"] == "10661.855"

    def test_loan_payment_and_stats(self, client, system):
        loan = create_loan(client)
        assert loan["installment_amount"] == "10661.855"
        assert loan["remaining_principal"] == "120000.000"

        r = client.post(f"/loans/{loan['id']}/pay")
        assert r.json()["payment"]["interest_component"] == "1200.000"

        stats = client.get("/users/USER001/stats").json()
        assert stats["total_emi"] == "10661.855"

        body = system.notification_service.get_notifications(loan["id"])[0]["body"]
        assert "₹10,661.855" in body
