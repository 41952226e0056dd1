"""Tests for the dashboard JSON endpoints."""

import inspect

import pytest
from fastapi.routing import APIRoute

from equiledger.api import dashboard


@pytest.fixture
def biz(business):
    return {"businessId": business.id}


class TestBusinessIdRequired:
    """Every dashboard endpoint needs a business id."""

    @pytest.mark.parametrize(
        "path",
        ["/api/dashboard/stats", "/api/invoices", "/api/expenses", "/api/clients", "/api/settings"],
    )
    def test_missing_business_id(self, client, path):
        response = client.get(path)

        assert response.status_code == 400
        assert response.json() == {"error": "Business ID required"}

    def test_header_is_accepted(self, client, business):
        response = client.get("/api/dashboard/stats", headers={"X-Business-Id": business.id})

        assert response.status_code == 200


class TestInvoiceEndpoints:
    """Tests for /api/invoices."""

    def test_create_and_list(self, client, biz):
        created = client.post(
            "/api/invoices",
            params=biz,
            json={"clientName": "Acme", "amount": 1150, "description": "Web design"},
        )

        assert created.status_code == 201
        invoice = created.json()["invoice"]
        assert invoice["invoiceNumber"] == "INV-1"
        assert invoice["vatAmount"] == 150.0

        listed = client.get("/api/invoices", params=biz).json()
        assert listed["success"] is True
        assert [i["invoiceNumber"] for i in listed["invoices"]] == ["INV-1"]

    def test_create_missing_fields(self, client, biz):
        response = client.post("/api/invoices", params=biz, json={"clientName": "Acme"})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields"

    def test_send_and_mark_paid(self, client, biz):
        invoice = client.post(
            "/api/invoices",
            params=biz,
            json={"clientName": "Acme", "amount": 100, "description": "Work"},
        ).json()["invoice"]

        sent = client.post(f"/api/invoices/{invoice['id']}/send", params=biz)
        paid = client.post(
            f"/api/invoices/{invoice['id']}/paid",
            params=biz,
            json={"paymentMethod": "eft", "reference": "REF1"},
        )

        assert sent.json()["invoice"]["status"] == "SENT"
        assert paid.json()["payment"]["message"] == "Invoice INV-1 marked as paid"
        assert client.get("/api/invoices", params={**biz, "status": "PAID"}).json()["invoices"]

    def test_paid_twice_is_rejected(self, client, biz):
        invoice = client.post(
            "/api/invoices",
            params=biz,
            json={"clientName": "Acme", "amount": 100, "description": "Work"},
        ).json()["invoice"]
        client.post(f"/api/invoices/{invoice['id']}/paid", params=biz)

        response = client.post(f"/api/invoices/{invoice['id']}/paid", params=biz)

        assert response.status_code == 400
        assert "already paid" in response.json()["error"]

    def test_other_business_invoice_is_not_found(self, client, biz, other_business):
        invoice = client.post(
            "/api/invoices",
            params=biz,
            json={"clientName": "Acme", "amount": 100, "description": "Work"},
        ).json()["invoice"]

        response = client.post(
            f"/api/invoices/{invoice['id']}/paid", params={"businessId": other_business.id}
        )

        assert response.status_code == 404


class TestExpenseEndpoints:
    """Tests for /api/expenses."""

    def test_create_with_business_id_in_body(self, client, business):
        response = client.post(
            "/api/expenses",
            json={"businessId": business.id, "amount": 200, "description": "Fuel"},
        )

        assert response.status_code == 201
        expense = response.json()["expense"]
        assert expense["vatAmount"] == 30.0
        assert expense["category"] == "transport"

    def test_missing_fields(self, client, business):
        response = client.post("/api/expenses", json={"businessId": business.id, "amount": 10})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}

    def test_non_finite_amount_is_rejected(self, client, biz):
        response = client.post(
            "/api/expenses",
            params=biz,
            content='{"amount": NaN, "description": "Fuel"}',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"

    def test_list(self, client, biz):
        client.post("/api/expenses", params=biz, json={"amount": 50, "description": "Coffee"})

        expenses = client.get("/api/expenses", params=biz).json()["expenses"]

        assert [e["description"] for e in expenses] == ["Coffee"]


class TestClientEndpoints:
    """Tests for /api/clients."""

    def test_create_and_list(self, client, biz):
        created = client.post(
            "/api/clients", params=biz, json={"name": "Acme", "vatNumber": "4123456789"}
        )

        assert created.status_code == 201
        assert created.json()["client"]["vatNumber"] == "4123456789"
        clients = client.get("/api/clients", params=biz).json()["clients"]
        assert clients[0]["name"] == "Acme"
        assert clients[0]["invoiceCount"] == 0


class TestReportEndpoints:
    """Tests for stats and financial summaries."""

    def test_dashboard_stats(self, client, biz):
        client.post(
            "/api/invoices",
            params=biz,
            json={"clientName": "Acme", "amount": 1150, "description": "Work"},
        )

        stats = client.get("/api/dashboard/stats", params=biz).json()["stats"]

        assert stats["unpaidInvoices"] == 1
        assert stats["vatCollected"] == 150.0
        assert stats["activeClients"] == 1

    def test_financials_for_period(self, client, biz):
        client.post("/api/expenses", params=biz, json={"amount": 100, "description": "Paper"})

        summary = client.get("/api/financials", params={**biz, "period": "quarter"}).json()

        assert summary["summary"]["expenses"] == 100.0
        assert summary["summary"]["netVAT"] == -15.0

    def test_financials_for_date_range(self, client, biz):
        response = client.get(
            "/api/financials",
            params={**biz, "startDate": "2024-01-01", "endDate": "2024-01-31"},
        )

        assert response.json()["summary"]["startDate"] == "2024-01-01"
        assert response.json()["summary"]["endDate"] == "2024-01-31"

    def test_unknown_period(self, client, biz):
        response = client.get("/api/financials", params={**biz, "period": "decade"})

        assert response.status_code == 400


class TestSettingsAndBilling:
    """Tests for /api/settings and /api/billing."""

    def test_get_and_update_settings(self, client, biz):
        profile = client.get("/api/settings", params=biz).json()["business"]
        assert profile["name"] == "Test Traders"

        updated = client.put(
            "/api/settings", params=biz, json={"name": "Thandi's Bakery", "vatNumber": "4000"}
        ).json()["business"]

        assert updated["name"] == "Thandi's Bakery"
        assert updated["vatNumber"] == "4000"
        assert updated["vatRate"] == 0.15

    def test_non_finite_vat_rate_is_rejected(self, client, biz):
        response = client.put(
            "/api/settings",
            params=biz,
            content='{"vatRate": NaN}',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert client.get("/api/settings", params=biz).json()["business"]["vatRate"] == 0.15

    def test_billing(self, client, biz):
        billing = client.get("/api/billing", params=biz).json()

        assert billing["currentTier"] == "free"
        assert [plan["tier"] for plan in billing["plans"]] == ["free", "pro", "business"]
        assert billing["plans"][0]["invoicesPerMonth"] == 10

    def test_unknown_business(self, client):
        response = client.get("/api/settings", params={"businessId": "missing"})

        assert response.status_code == 404


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_ledger_endpoints_run_in_the_threadpool():
    """Plain ``def`` handlers keep blocking database calls off the event loop."""
    async_endpoints = {
        route.name
        for route in dashboard.router.routes
        if isinstance(route, APIRoute) and inspect.iscoroutinefunction(route.endpoint)
    }

    assert async_endpoints == {"run_workflow"}
