"""JSON endpoints behind the dashboard pages."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from sqlalchemy.orm import Session

from equiledger import ledger
from equiledger.api.deps import get_business_id, get_session_factory, tenant_scope, tenant_session
from equiledger.api.schemas import (
    BillingOut,
    ClientCreate,
    ClientListResponse,
    ClientResponse,
    ExpenseCreate,
    ExpenseListResponse,
    ExpenseResponse,
    FinancialsResponse,
    InvoiceCreate,
    InvoiceListResponse,
    InvoiceResponse,
    MarkPaidRequest,
    PaymentResponse,
    Plan,
    SettingsResponse,
    SettingsUpdate,
    StatsResponse,
    WorkflowRequest,
    WorkflowResponse,
)
from equiledger.db.session import SessionFactory, get_session
from equiledger.workflows import snake_case_args

router = APIRouter(prefix="/api")

PLANS: list[Plan] = [
    Plan(
        tier="free",
        name="Free",
        price=0,
        invoices_per_month=10,
        users=1,
        features=["10 invoices/month", "Basic reporting", "No integrations"],
    ),
    Plan(
        tier="pro",
        name="Pro",
        price=199,
        invoices_per_month=None,
        users=5,
        features=["Unlimited invoices", "Advanced reporting", "Xero/QuickBooks integration"],
    ),
    Plan(
        tier="business",
        name="Business",
        price=499,
        invoices_per_month=None,
        users=None,
        features=["Unlimited everything", "Priority support", "Custom integrations"],
    ),
]


@router.get("/dashboard/stats", response_model=StatsResponse)
def dashboard_stats(
    business_id: str = Depends(get_business_id),
    session: Session = Depends(get_session),
):
    with tenant_scope(business_id):
        stats = ledger.get_dashboard_stats(session, business_id)
    return {"stats": stats}


# === Invoices ===


@router.get("/invoices", response_model=InvoiceListResponse)
def list_invoices(
    status: str | None = None,
    limit: int = Query(default=100, ge=1, le=100),
    business_id: str = Depends(get_business_id),
    session: Session = Depends(get_session),
):
    with tenant_scope(business_id):
        invoices = ledger.list_invoices(session, business_id, status=status, limit=limit)
    return {"invoices": invoices}


@router.post("/invoices", response_model=InvoiceResponse, status_code=201)
def create_invoice(
    body: InvoiceCreate,
    business_id: str = Depends(get_business_id),
    factory: SessionFactory = Depends(get_session_factory),
):
    with tenant_session(business_id, factory) as session:
        invoice = ledger.create_invoice(
            session,
            business_id,
            client_name=body.client_name,
            amount=body.amount,
            description=body.description,
            currency=body.currency,
            vat_included=body.vat_included,
            due_days=body.due_days,
        )
    return {"invoice": invoice}


@router.post("/invoices/{invoice_id}/send", response_model=InvoiceResponse)
def send_invoice(
    invoice_id: str,
    business_id: str = Depends(get_business_id),
    factory: SessionFactory = Depends(get_session_factory),
):
    with tenant_session(business_id, factory) as session:
        invoice = ledger.send_invoice(session, business_id, invoice_id)
    return {"invoice": invoice}


@router.post("/invoices/{invoice_id}/paid", response_model=PaymentResponse)
def mark_invoice_paid(
    invoice_id: str,
    body: MarkPaidRequest | None = None,
    business_id: str = Depends(get_business_id),
    factory: SessionFactory = Depends(get_session_factory),
):
    body = body or MarkPaidRequest()
    with tenant_session(business_id, factory) as session:
        payment = ledger.mark_invoice_paid(
            session,
            business_id,
            invoice_id,
            payment_method=body.payment_method,
            reference=body.reference,
        )
    return {"payment": payment}


# === Expenses ===


@router.get("/expenses", response_model=ExpenseListResponse)
def list_expenses(
    business_id: str = Depends(get_business_id),
    session: Session = Depends(get_session),
):
    with tenant_scope(business_id):
        expenses = ledger.list_expenses(session, business_id)
    return {"expenses": expenses}


@router.post("/expenses", response_model=ExpenseResponse, status_code=201)
def create_expense(
    body: ExpenseCreate,
    business_id: str | None = Query(default=None, alias="businessId"),
    x_business_id: str | None = Header(default=None),
    factory: SessionFactory = Depends(get_session_factory),
):
    # The business id may also travel in the JSON body
    business_id = business_id or x_business_id or body.business_id
    if not business_id or not body.amount or not body.description:
        raise HTTPException(status_code=400, detail="Missing required fields")

    with tenant_session(business_id, factory) as session:
        expense = ledger.log_expense(
            session,
            business_id,
            amount=body.amount,
            description=body.description,
            category=body.category,
            date=body.date,
        )
    return {"expense": expense}


# === Clients ===


@router.get("/clients", response_model=ClientListResponse)
def list_clients(
    business_id: str = Depends(get_business_id),
    session: Session = Depends(get_session),
):
    with tenant_scope(business_id):
        clients = ledger.list_clients(session, business_id)
    return {"clients": clients}


@router.post("/clients", response_model=ClientResponse, status_code=201)
def create_client(
    body: ClientCreate,
    business_id: str = Depends(get_business_id),
    factory: SessionFactory = Depends(get_session_factory),
):
    with tenant_session(business_id, factory) as session:
        client = ledger.create_client(
            session,
            business_id,
            name=body.name,
            email=body.email,
            phone=body.phone,
            vat_number=body.vat_number,
        )
    return {"client": client}


# === Reports ===


@router.get("/financials", response_model=FinancialsResponse)
def financials(
    period: str = "month",
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    business_id: str = Depends(get_business_id),
    session: Session = Depends(get_session),
):
    """Summary for an explicit date range, or the named period ending today."""
    if start_date or end_date:
        start = start_date or end_date
        end = end_date or datetime.now(timezone.utc).date().isoformat()
    else:
        start, end = ledger.period_bounds(period)

    with tenant_scope(business_id):
        summary = ledger.get_financial_summary(session, business_id, start, end)
    return {"summary": summary}


# === Settings & billing ===


@router.get("/settings", response_model=SettingsResponse)
def read_settings(
    business_id: str = Depends(get_business_id),
    session: Session = Depends(get_session),
):
    with tenant_scope(business_id):
        business = ledger.business_to_dict(ledger.get_business(session, business_id))
    return {"business": business}


@router.put("/settings", response_model=SettingsResponse)
def update_settings(
    body: SettingsUpdate,
    business_id: str = Depends(get_business_id),
    factory: SessionFactory = Depends(get_session_factory),
):
    with tenant_session(business_id, factory) as session:
        business = ledger.update_business(
            session, business_id, **body.model_dump(exclude_unset=True)
        )
        profile = ledger.business_to_dict(business)
    return {"business": profile}


@router.get("/billing", response_model=BillingOut)
def billing(
    business_id: str = Depends(get_business_id),
    session: Session = Depends(get_session),
):
    with tenant_scope(business_id):
        tier = ledger.get_business(session, business_id).subscription_tier.value
    return BillingOut(current_tier=tier, plans=PLANS)


# === Workflows ===


@router.post("/workflows", response_model=WorkflowResponse)
async def run_workflow(body: WorkflowRequest, request: Request):
    args = snake_case_args(body.args)
    if not args.get("business_id"):
        raise HTTPException(status_code=400, detail="Business ID required")

    outcome = await request.app.state.workflows.run(body.workflow_name, args)
    return WorkflowResponse(workflow_id=outcome["workflowId"], result=outcome["result"])
