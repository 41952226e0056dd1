"""Tests for tenant-scoped ledger operations."""

from datetime import date, datetime, timedelta, timezone

import pytest

from equiledger import ledger
from equiledger.db import Invoice, InvoiceStatus
from equiledger.errors import NotFoundError, ValidationError


class TestInvoices:
    """Tests for invoice creation and lifecycle."""

    def test_create_invoice_vat_inclusive(self, session, business):
        invoice = ledger.create_invoice(
            session, business.id, client_name="Acme", amount=1150, description="Web design"
        )

        assert invoice["invoiceNumber"] == "INV-1"
        assert invoice["clientName"] == "Acme"
        assert invoice["amount"] == 1150.0
        assert invoice["vatAmount"] == 150.0
        assert invoice["totalAmount"] == 1150.0
        assert invoice["currency"] == "ZAR"
        assert invoice["status"] == "DRAFT"

    def test_create_invoice_vat_exclusive(self, session, business):
        invoice = ledger.create_invoice(
            session,
            business.id,
            client_name="Acme",
            amount=1000,
            description="Consulting",
            vat_included=False,
        )

        assert invoice["vatAmount"] == 150.0
        assert invoice["totalAmount"] == 1150.0

    def test_invoice_numbers_are_sequential_per_business(
        self, session, business, other_business
    ):
        first = ledger.create_invoice(session, business.id, "Acme", 100, "A")
        second = ledger.create_invoice(session, business.id, "Acme", 100, "B")
        other = ledger.create_invoice(session, other_business.id, "Acme", 100, "C")

        assert first["invoiceNumber"] == "INV-1"
        assert second["invoiceNumber"] == "INV-2"
        assert other["invoiceNumber"] == "INV-1"

    def test_clients_are_reused_by_name(self, session, business):
        ledger.create_invoice(session, business.id, "Acme", 100, "A")
        ledger.create_invoice(session, business.id, "Acme", 200, "B")

        clients = ledger.list_clients(session, business.id)

        assert len(clients) == 1
        assert clients[0]["invoiceCount"] == 2

    @pytest.mark.parametrize("amount", [0, -5, "abc", "NaN", float("nan"), float("inf")])
    def test_create_invoice_rejects_bad_amounts(self, session, business, amount):
        with pytest.raises(ValidationError):
            ledger.create_invoice(session, business.id, "Acme", amount, "Work")

    def test_list_invoices_filters_status(self, session, business):
        draft = ledger.create_invoice(session, business.id, "Acme", 100, "A")
        ledger.create_invoice(session, business.id, "Beta", 100, "B")
        ledger.send_invoice(session, business.id, draft["id"])

        sent = ledger.list_invoices(session, business.id, status="sent")

        assert [invoice["id"] for invoice in sent] == [draft["id"]]
        assert len(ledger.list_invoices(session, business.id)) == 2

    def test_list_invoices_rejects_unknown_status(self, session, business):
        with pytest.raises(ValidationError, match="Unknown invoice status"):
            ledger.list_invoices(session, business.id, status="lost")

    def test_send_only_drafts(self, session, business):
        invoice = ledger.create_invoice(session, business.id, "Acme", 100, "A")
        sent = ledger.send_invoice(session, business.id, invoice["invoiceNumber"])

        assert sent["status"] == "SENT"
        with pytest.raises(ValidationError, match="only drafts"):
            ledger.send_invoice(session, business.id, invoice["id"])

    def test_mark_paid_records_full_payment(self, session, business):
        invoice = ledger.create_invoice(
            session, business.id, "Acme", 1000, "Work", vat_included=False
        )

        result = ledger.mark_invoice_paid(
            session, business.id, invoice["id"], payment_method="eft", reference="REF1"
        )

        assert result["invoiceNumber"] == "INV-1"
        assert result["amount"] == 1150.0
        assert result["message"] == "Invoice INV-1 marked as paid"
        detail = ledger.get_invoice(session, business.id, invoice["id"])
        assert detail["status"] == "PAID"
        assert detail["payments"][0]["method"] == "eft"
        assert detail["payments"][0]["reference"] == "REF1"

    def test_mark_paid_twice_fails(self, session, business):
        invoice = ledger.create_invoice(session, business.id, "Acme", 100, "A")
        ledger.mark_invoice_paid(session, business.id, invoice["id"])

        with pytest.raises(ValidationError, match="already paid"):
            ledger.mark_invoice_paid(session, business.id, invoice["id"])

    def test_update_overdue_invoices(self, session, business):
        invoice = ledger.create_invoice(session, business.id, "Acme", 100, "A", due_days=5)
        ledger.send_invoice(session, business.id, invoice["id"])

        later = datetime.now(timezone.utc).date() + timedelta(days=10)
        assert ledger.update_overdue_invoices(session, business.id, today=later) == 1
        assert session.get(Invoice, invoice["id"]).status == InvoiceStatus.OVERDUE


class TestTenantIsolation:
    """One business never reaches another's records."""

    def test_invoice_from_other_business_is_not_found(
        self, session, business, other_business
    ):
        invoice = ledger.create_invoice(session, business.id, "Acme", 100, "A")

        with pytest.raises(NotFoundError):
            ledger.get_invoice(session, other_business.id, invoice["id"])
        with pytest.raises(NotFoundError):
            ledger.mark_invoice_paid(session, other_business.id, invoice["id"])

    def test_lists_only_show_own_records(self, session, business, other_business):
        ledger.create_invoice(session, business.id, "Acme", 100, "A")
        ledger.log_expense(session, business.id, 50, "Fuel")

        assert ledger.list_invoices(session, other_business.id) == []
        assert ledger.list_expenses(session, other_business.id) == []
        assert ledger.list_clients(session, other_business.id) == []

    def test_unknown_business(self, session):
        with pytest.raises(NotFoundError):
            ledger.create_invoice(session, "missing", "Acme", 100, "A")


class TestExpenses:
    """Tests for expense logging."""

    def test_log_expense_computes_vat_and_category(self, session, business):
        expense = ledger.log_expense(session, business.id, 200, "Petrol for delivery van")

        assert expense["amount"] == 200.0
        assert expense["vatAmount"] == 30.0
        assert expense["category"] == "transport"

    @pytest.mark.parametrize("amount", [float("nan"), float("inf"), "Infinity"])
    def test_log_expense_rejects_non_finite_amount(self, session, business, amount):
        with pytest.raises(ValidationError, match="Invalid amount"):
            ledger.log_expense(session, business.id, amount, "Fuel")

    def test_explicit_category_wins(self, session, business):
        expense = ledger.log_expense(session, business.id, 80, "Fuel", category="meals")

        assert expense["category"] == "meals"

    def test_log_expense_accepts_date(self, session, business):
        expense = ledger.log_expense(session, business.id, 80, "Paper", date="2024-03-01")

        assert expense["date"].startswith("2024-03-01")

    def test_log_expense_rejects_bad_date(self, session, business):
        with pytest.raises(ValidationError, match="Invalid date"):
            ledger.log_expense(session, business.id, 80, "Paper", date="yesterday")

    @pytest.mark.parametrize(
        ("description", "category"),
        [
            ("Office rent for March", "rent"),
            ("Eskom electricity", "utilities"),
            ("Lunch with client", "meals"),
            ("Something else", "other"),
        ],
    )
    def test_categorize_expense(self, description, category):
        assert ledger.categorize_expense(description) == category


class TestReports:
    """Tests for financial summaries and dashboard stats."""

    def test_financial_summary(self, session, business):
        ledger.create_invoice(session, business.id, "Acme", 1150, "Work")
        ledger.log_expense(session, business.id, 200, "Fuel")
        ledger.log_expense(session, business.id, 100, "Printer paper")
        today = datetime.now(timezone.utc).date()

        summary = ledger.get_financial_summary(session, business.id, today, today)

        assert summary["revenue"] == 1150.0
        assert summary["expenses"] == 300.0
        assert summary["profit"] == 850.0
        assert summary["vatCollected"] == 150.0
        assert summary["vatClaimable"] == 45.0
        assert summary["netVAT"] == 105.0
        assert summary["invoiceCount"] == 1
        assert summary["expenseCount"] == 2
        assert summary["expensesByCategory"] == {"office-supplies": 100.0, "transport": 200.0}

    def test_summary_excludes_out_of_range(self, session, business):
        ledger.log_expense(session, business.id, 100, "Paper", date="2020-01-15")

        summary = ledger.get_financial_summary(
            session, business.id, "2020-02-01", "2020-02-29"
        )

        assert summary["expenseCount"] == 0

    def test_summary_rejects_reversed_range(self, session, business):
        with pytest.raises(ValidationError):
            ledger.get_financial_summary(session, business.id, "2024-02-01", "2024-01-01")

    def test_summary_requires_both_dates(self, session, business):
        with pytest.raises(ValidationError, match="Missing start_date"):
            ledger.get_financial_summary(session, business.id, None, "2024-01-31")

    def test_period_bounds(self):
        start, end = ledger.period_bounds("month", today=date(2024, 3, 31))

        assert end == date(2024, 3, 31)
        assert start == date(2024, 3, 2)
        with pytest.raises(ValidationError):
            ledger.period_bounds("decade")

    def test_dashboard_stats(self, session, business):
        paid = ledger.create_invoice(session, business.id, "Acme", 1150, "Work")
        ledger.create_invoice(session, business.id, "Beta", 575, "More work")
        ledger.mark_invoice_paid(session, business.id, paid["id"])
        ledger.log_expense(session, business.id, 200, "Fuel")

        stats = ledger.get_dashboard_stats(session, business.id)

        assert stats == {
            "totalRevenue": 1150.0,
            "totalExpenses": 200.0,
            "unpaidInvoices": 1,
            "activeClients": 2,
            "vatCollected": 225.0,
            "vatClaimable": 30.0,
        }


class TestBusinessProfile:
    """Tests for the settings page profile."""

    def test_update_business(self, session, business):
        updated = ledger.update_business(
            session, business.id, name="Thandi's Bakery", vat_rate="0.15"
        )

        profile = ledger.business_to_dict(updated)
        assert profile["name"] == "Thandi's Bakery"
        assert profile["vatRate"] == 0.15
        assert profile["subscriptionTier"] == "free"

    def test_update_business_rejects_bad_rate(self, session, business):
        with pytest.raises(ValidationError):
            ledger.update_business(session, business.id, vat_rate=15)

    @pytest.mark.parametrize("rate", ["NaN", float("nan"), float("-inf"), "abc"])
    def test_update_business_rejects_non_finite_rate(self, session, business, rate):
        with pytest.raises(ValidationError):
            ledger.update_business(session, business.id, vat_rate=rate)

    def test_update_business_rejects_unknown_fields(self, session, business):
        with pytest.raises(ValidationError, match="Unknown business fields"):
            ledger.update_business(session, business.id, subscription_tier="business")
