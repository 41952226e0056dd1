"""Tenant-scoped ledger operations.

Every function takes the ``business_id`` it acts for and filters every
query by it; callers are expected to have verified that id against the
active business context.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from equiledger.config import get_settings
from equiledger.db.models import (
    Business,
    Client,
    Expense,
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    Payment,
)
from equiledger.errors import NotFoundError, ValidationError
from equiledger.vat import expense_vat, invoice_totals, net_vat, quantize, to_decimal

logger = structlog.get_logger(__name__)

_INVOICE_NUMBER_RE = re.compile(r"^INV-(\d+)$")

# First match wins; checked against the lower-cased description.
EXPENSE_CATEGORIES: list[tuple[str, tuple[str, ...]]] = [
    ("transport", ("fuel", "petrol", "diesel", "uber", "taxi", "toll", "parking", "flight")),
    ("rent", ("rent", "lease")),
    ("utilities", ("electricity", "water", "eskom", "municipal", "gas bill")),
    ("telecoms", ("airtime", "data bundle", "internet", "fibre", "cellphone", "phone bill")),
    ("software", ("software", "subscription", "saas", "licence", "license", "hosting")),
    ("office-supplies", ("stationery", "paper", "printer", "ink", "toner", "office")),
    ("equipment", ("laptop", "computer", "equipment", "machine", "tools")),
    ("meals", ("lunch", "dinner", "coffee", "restaurant", "meal", "catering")),
    ("marketing", ("advert", "marketing", "facebook ads", "google ads", "flyer", "promotion")),
    ("professional-fees", ("accountant", "legal", "lawyer", "consulting", "audit")),
    ("salaries", ("salary", "salaries", "wages", "payroll")),
    ("bank-charges", ("bank fee", "bank charge", "service fee")),
]

_PERIOD_DAYS = {"week": 7, "month": 30, "quarter": 91, "year": 365}


def _money(amount: Decimal) -> float:
    return float(quantize(amount))


def _parse_date(value: str | date | None, field: str) -> date:
    if value is None:
        raise ValidationError(f"Missing {field}")
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(value).date()
    except ValueError as e:
        raise ValidationError(f"Invalid {field}: {value!r}") from e


def _parse_datetime(value: str | datetime | None) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    if isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"Invalid date: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _positive_amount(value: Any) -> Decimal:
    try:
        amount = to_decimal(value)
    except (ArithmeticError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    return quantize(amount)


# === Business ===


def get_business(session: Session, business_id: str) -> Business:
    business = session.get(Business, business_id)
    if business is None:
        raise NotFoundError(f"Business {business_id} not found")
    return business


BUSINESS_EDITABLE_FIELDS = ("name", "vat_number", "email", "phone", "currency", "vat_rate")


def update_business(session: Session, business_id: str, **fields: Any) -> Business:
    """Update the business profile shown on the settings page."""
    business = get_business(session, business_id)
    unknown = set(fields) - set(BUSINESS_EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown business fields: {', '.join(sorted(unknown))}")

    if "vat_rate" in fields and fields["vat_rate"] is not None:
        try:
            rate = to_decimal(fields["vat_rate"])
        except (ArithmeticError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid VAT rate: {fields['vat_rate']!r}") from e
        if not rate.is_finite() or not Decimal("0") <= rate < Decimal("1"):
            raise ValidationError("VAT rate must be between 0 and 1")
        fields["vat_rate"] = rate

    for key, value in fields.items():
        if value is not None:
            setattr(business, key, value)
    session.flush()
    logger.info("business_updated", business_id=business_id, fields=sorted(fields))
    return business


def business_to_dict(business: Business) -> dict[str, Any]:
    return {
        "id": business.id,
        "name": business.name,
        "vatNumber": business.vat_number,
        "email": business.email,
        "phone": business.phone,
        "currency": business.currency,
        "vatRate": float(business.vat_rate),
        "subscriptionTier": business.subscription_tier.value,
    }


# === Clients ===


def _client_to_dict(client: Client) -> dict[str, Any]:
    return {
        "id": client.id,
        "name": client.name,
        "email": client.email,
        "phone": client.phone,
        "vatNumber": client.vat_number,
    }


def create_client(
    session: Session,
    business_id: str,
    name: str,
    email: str | None = None,
    phone: str | None = None,
    vat_number: str | None = None,
) -> dict[str, Any]:
    if not name or not name.strip():
        raise ValidationError("Client name is required")
    get_business(session, business_id)

    client = Client(
        business_id=business_id,
        name=name.strip(),
        email=email,
        phone=phone,
        vat_number=vat_number,
    )
    session.add(client)
    session.flush()
    logger.info("client_created", business_id=business_id, client_id=client.id)
    return _client_to_dict(client)


def get_or_create_client(session: Session, business_id: str, name: str) -> Client:
    client = session.scalars(
        select(Client).where(Client.business_id == business_id, Client.name == name)
    ).first()
    if client is None:
        client = Client(business_id=business_id, name=name)
        session.add(client)
        session.flush()
        logger.info("client_created", business_id=business_id, client_id=client.id)
    return client


def list_clients(session: Session, business_id: str, limit: int = 100) -> list[dict[str, Any]]:
    rows = session.execute(
        select(Client, func.count(Invoice.id))
        .outerjoin(Invoice, Invoice.client_id == Client.id)
        .where(Client.business_id == business_id)
        .group_by(Client.id)
        .order_by(Client.name)
        .limit(limit)
    ).all()
    return [
        {**_client_to_dict(client), "invoiceCount": invoice_count}
        for client, invoice_count in rows
    ]


# === Invoices ===


def next_invoice_number(session: Session, business_id: str) -> str:
    """Next sequential ``INV-n`` number for the business."""
    numbers = session.scalars(
        select(Invoice.invoice_number).where(Invoice.business_id == business_id)
    ).all()
    highest = 0
    for number in numbers:
        match = _INVOICE_NUMBER_RE.match(number)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"INV-{highest + 1}"


def _invoice_summary(invoice: Invoice) -> dict[str, Any]:
    return {
        "id": invoice.id,
        "invoiceNumber": invoice.invoice_number,
        "clientName": invoice.client.name,
        "amount": _money(invoice.items_total),
        "vatAmount": _money(invoice.vat_amount),
        "totalAmount": _money(invoice.total_amount),
        "currency": invoice.currency,
        "status": invoice.status.value,
        "dueDate": invoice.due_date.isoformat() if invoice.due_date else None,
        "createdAt": invoice.created_at.isoformat(),
    }


def create_invoice(
    session: Session,
    business_id: str,
    client_name: str,
    amount: Any,
    description: str,
    currency: str | None = None,
    vat_included: bool = True,
    vat_rate: Any = None,
    due_days: int = 30,
) -> dict[str, Any]:
    """Create a DRAFT invoice with a single line item."""
    if not client_name or not description:
        raise ValidationError("Client name and description are required")
    gross = _positive_amount(amount)
    business = get_business(session, business_id)

    rate = to_decimal(vat_rate) if vat_rate is not None else business.vat_rate
    totals = invoice_totals(gross, rate, vat_included)
    client = get_or_create_client(session, business_id, client_name.strip())
    today = datetime.now(timezone.utc).date()

    invoice = Invoice(
        business_id=business_id,
        client_id=client.id,
        invoice_number=next_invoice_number(session, business_id),
        currency=currency or business.currency,
        vat_included=vat_included,
        vat_rate=rate,
        vat_amount=totals.vat,
        status=InvoiceStatus.DRAFT,
        issue_date=today,
        due_date=today + timedelta(days=due_days),
        items=[InvoiceItem(description=description, quantity=1, unit_price=gross)],
    )
    invoice.client = client
    session.add(invoice)
    session.flush()

    logger.info(
        "invoice_created",
        business_id=business_id,
        invoice_number=invoice.invoice_number,
        total=str(totals.total),
    )
    return _invoice_summary(invoice)


def _find_invoice(session: Session, business_id: str, invoice_ref: str) -> Invoice:
    invoice = session.scalars(
        select(Invoice)
        .options(selectinload(Invoice.items), selectinload(Invoice.client))
        .where(
            Invoice.business_id == business_id,
            (Invoice.id == invoice_ref) | (Invoice.invoice_number == invoice_ref),
        )
    ).first()
    if invoice is None:
        raise NotFoundError(f"Invoice {invoice_ref} not found")
    return invoice


def get_invoice(session: Session, business_id: str, invoice_id: str) -> dict[str, Any]:
    """Look up an invoice by id or invoice number, with its lines and payments."""
    invoice = _find_invoice(session, business_id, invoice_id)
    return {
        **_invoice_summary(invoice),
        "items": [
            {
                "description": item.description,
                "quantity": item.quantity,
                "unitPrice": _money(item.unit_price),
            }
            for item in invoice.items
        ],
        "payments": [
            {
                "amount": _money(payment.amount),
                "method": payment.method,
                "reference": payment.reference,
                "paidAt": payment.paid_at.isoformat(),
            }
            for payment in invoice.payments
        ],
    }


def list_invoices(
    session: Session,
    business_id: str,
    status: str | None = None,
    limit: int = 10,
) -> list[dict[str, Any]]:
    query = (
        select(Invoice)
        .options(selectinload(Invoice.items), selectinload(Invoice.client))
        .where(Invoice.business_id == business_id)
        .order_by(Invoice.created_at.desc())
        .limit(min(max(limit, 1), 100))
    )
    if status:
        try:
            query = query.where(Invoice.status == InvoiceStatus(status.upper()))
        except ValueError as e:
            raise ValidationError(f"Unknown invoice status: {status}") from e
    return [_invoice_summary(invoice) for invoice in session.scalars(query)]


def send_invoice(session: Session, business_id: str, invoice_id: str) -> dict[str, Any]:
    invoice = _find_invoice(session, business_id, invoice_id)
    if invoice.status != InvoiceStatus.DRAFT:
        raise ValidationError(
            f"Invoice {invoice.invoice_number} is {invoice.status.value}, only drafts can be sent"
        )
    invoice.status = InvoiceStatus.SENT
    session.flush()
    logger.info("invoice_sent", business_id=business_id, invoice_number=invoice.invoice_number)
    return _invoice_summary(invoice)


def mark_invoice_paid(
    session: Session,
    business_id: str,
    invoice_id: str,
    payment_method: str = "manual",
    reference: str | None = None,
) -> dict[str, Any]:
    """Mark an invoice paid and record a payment for its full total."""
    invoice = _find_invoice(session, business_id, invoice_id)
    if invoice.status == InvoiceStatus.PAID:
        raise ValidationError(f"Invoice {invoice.invoice_number} is already paid")
    if invoice.status == InvoiceStatus.CANCELLED:
        raise ValidationError(f"Invoice {invoice.invoice_number} is cancelled")

    invoice.status = InvoiceStatus.PAID
    payment = Payment(
        amount=invoice.total_amount,
        method=payment_method or "manual",
        reference=reference,
    )
    invoice.payments.append(payment)
    session.flush()

    logger.info(
        "invoice_paid",
        business_id=business_id,
        invoice_number=invoice.invoice_number,
        amount=str(payment.amount),
    )
    return {
        "invoiceNumber": invoice.invoice_number,
        "paymentId": payment.id,
        "amount": _money(payment.amount),
        "message": f"Invoice {invoice.invoice_number} marked as paid",
    }


def update_overdue_invoices(
    session: Session, business_id: str, today: date | None = None
) -> int:
    """Flag SENT invoices past their due date as OVERDUE."""
    today = today or datetime.now(timezone.utc).date()
    invoices = session.scalars(
        select(Invoice).where(
            Invoice.business_id == business_id,
            Invoice.status == InvoiceStatus.SENT,
            Invoice.due_date < today,
        )
    ).all()
    for invoice in invoices:
        invoice.status = InvoiceStatus.OVERDUE
    session.flush()
    if invoices:
        logger.info("invoices_overdue", business_id=business_id, count=len(invoices))
    return len(invoices)


# === Expenses ===


def categorize_expense(description: str) -> str:
    text = description.lower()
    for category, keywords in EXPENSE_CATEGORIES:
        if any(keyword in text for keyword in keywords):
            return category
    return "other"


def _expense_to_dict(expense: Expense) -> dict[str, Any]:
    return {
        "id": expense.id,
        "description": expense.description,
        "amount": _money(expense.amount),
        "vatAmount": _money(expense.vat_amount),
        "category": expense.category,
        "date": expense.date.isoformat(),
    }


def log_expense(
    session: Session,
    business_id: str,
    amount: Any,
    description: str,
    category: str | None = None,
    date: str | datetime | None = None,
) -> dict[str, Any]:
    """Record an expense with claimable VAT at the business rate."""
    if not description:
        raise ValidationError("Description is required")
    value = _positive_amount(amount)
    business = get_business(session, business_id)

    expense = Expense(
        business_id=business_id,
        description=description,
        amount=value,
        vat_amount=expense_vat(value, business.vat_rate),
        category=category or categorize_expense(description),
        date=_parse_datetime(date),
    )
    session.add(expense)
    session.flush()

    logger.info(
        "expense_logged",
        business_id=business_id,
        expense_id=expense.id,
        category=expense.category,
        amount=str(value),
    )
    return _expense_to_dict(expense)


def list_expenses(session: Session, business_id: str, limit: int = 100) -> list[dict[str, Any]]:
    expenses = session.scalars(
        select(Expense)
        .where(Expense.business_id == business_id)
        .order_by(Expense.date.desc())
        .limit(min(max(limit, 1), 500))
    )
    return [_expense_to_dict(expense) for expense in expenses]


# === Reports ===


def period_bounds(period: str, today: date | None = None) -> tuple[date, date]:
    """Start and end dates for a named period ending today."""
    days = _PERIOD_DAYS.get(period)
    if days is None:
        raise ValidationError(f"Unknown period: {period}")
    end = today or datetime.now(timezone.utc).date()
    return end - timedelta(days=days - 1), end


def get_financial_summary(
    session: Session,
    business_id: str,
    start_date: str | date,
    end_date: str | date,
) -> dict[str, Any]:
    """Revenue, expenses, profit and VAT position for a date range.

    Both ends are inclusive; the end date covers its whole day.
    """
    start = _parse_date(start_date, "start_date")
    end = _parse_date(end_date, "end_date")
    if end < start:
        raise ValidationError("end_date must not be before start_date")

    start_dt = datetime.combine(start, time.min, tzinfo=timezone.utc)
    end_dt = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)

    invoices = session.scalars(
        select(Invoice)
        .options(selectinload(Invoice.items))
        .where(
            Invoice.business_id == business_id,
            Invoice.created_at >= start_dt,
            Invoice.created_at < end_dt,
        )
    ).all()
    expenses = session.scalars(
        select(Expense).where(
            Expense.business_id == business_id,
            Expense.date >= start_dt,
            Expense.date < end_dt,
        )
    ).all()

    revenue = sum((invoice.items_total for invoice in invoices), Decimal("0"))
    expense_total = sum((expense.amount for expense in expenses), Decimal("0"))
    vat_collected = sum((invoice.vat_amount for invoice in invoices), Decimal("0"))
    vat_claimable = sum((expense.vat_amount for expense in expenses), Decimal("0"))

    by_category: dict[str, Decimal] = {}
    for expense in expenses:
        by_category[expense.category] = (
            by_category.get(expense.category, Decimal("0")) + expense.amount
        )

    return {
        "startDate": start.isoformat(),
        "endDate": end.isoformat(),
        "revenue": _money(revenue),
        "expenses": _money(expense_total),
        "profit": _money(revenue - expense_total),
        "vatCollected": _money(vat_collected),
        "vatClaimable": _money(vat_claimable),
        "netVAT": float(net_vat(vat_collected, vat_claimable)),
        "invoiceCount": len(invoices),
        "expenseCount": len(expenses),
        "expensesByCategory": {key: _money(value) for key, value in sorted(by_category.items())},
    }


def get_dashboard_stats(session: Session, business_id: str) -> dict[str, Any]:
    """Headline numbers for the dashboard overview."""
    invoices = session.scalars(
        select(Invoice)
        .options(selectinload(Invoice.items))
        .where(Invoice.business_id == business_id)
    ).all()
    expenses = session.scalars(
        select(Expense).where(Expense.business_id == business_id)
    ).all()
    active_clients = session.scalar(
        select(func.count(Client.id)).where(Client.business_id == business_id)
    )

    total_revenue = sum(
        (invoice.items_total for invoice in invoices if invoice.status == InvoiceStatus.PAID),
        Decimal("0"),
    )
    unpaid = [
        invoice
        for invoice in invoices
        if invoice.status not in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED)
    ]

    return {
        "totalRevenue": _money(total_revenue),
        "totalExpenses": _money(sum((e.amount for e in expenses), Decimal("0"))),
        "unpaidInvoices": len(unpaid),
        "activeClients": active_clients or 0,
        "vatCollected": _money(sum((i.vat_amount for i in invoices), Decimal("0"))),
        "vatClaimable": _money(sum((e.vat_amount for e in expenses), Decimal("0"))),
    }
