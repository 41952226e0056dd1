"""Request and response models for the HTTP API.

Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Requests ===


class InvoiceCreate(ApiModel):
    client_name: str = Field(min_length=1)
    amount: float = Field(gt=0, allow_inf_nan=False)
    description: str = Field(min_length=1)
    currency: str | None = None
    vat_included: bool = True
    due_days: int = Field(default=30, ge=0)


class MarkPaidRequest(ApiModel):
    payment_method: str = "manual"
    reference: str | None = None


class ExpenseCreate(ApiModel):
    business_id: str | None = None
    amount: float | None = Field(default=None, allow_inf_nan=False)
    description: str | None = None
    category: str | None = None
    date: str | None = None


class ClientCreate(ApiModel):
    name: str = Field(min_length=1)
    email: str | None = None
    phone: str | None = None
    vat_number: str | None = None


class SettingsUpdate(ApiModel):
    name: str | None = None
    vat_number: str | None = None
    email: str | None = None
    phone: str | None = None
    currency: str | None = None
    vat_rate: float | None = Field(default=None, allow_inf_nan=False)


class WorkflowRequest(ApiModel):
    workflow_name: str
    args: dict[str, Any] = Field(default_factory=dict)


# === Responses ===


class InvoiceOut(ApiModel):
    id: str
    invoice_number: str
    client_name: str
    amount: float
    vat_amount: float
    total_amount: float
    currency: str
    status: str
    due_date: str | None
    created_at: str


class PaymentOut(ApiModel):
    invoice_number: str
    payment_id: str
    amount: float
    message: str


class ExpenseOut(ApiModel):
    id: str
    description: str
    amount: float
    vat_amount: float
    category: str
    date: str


class ClientOut(ApiModel):
    id: str
    name: str
    email: str | None = None
    phone: str | None = None
    vat_number: str | None = None
    invoice_count: int = 0


class DashboardStats(ApiModel):
    total_revenue: float
    total_expenses: float
    unpaid_invoices: int
    active_clients: int
    vat_collected: float
    vat_claimable: float


class FinancialSummary(ApiModel):
    start_date: str
    end_date: str
    revenue: float
    expenses: float
    profit: float
    vat_collected: float
    vat_claimable: float
    net_vat: float = Field(alias="netVAT")
    invoice_count: int
    expense_count: int
    expenses_by_category: dict[str, float]


class BusinessProfile(ApiModel):
    id: str
    name: str
    vat_number: str | None = None
    email: str | None = None
    phone: str | None = None
    currency: str
    vat_rate: float
    subscription_tier: str


class Plan(ApiModel):
    tier: Literal["free", "pro", "business"]
    name: str
    price: float
    currency: str = "ZAR"
    invoices_per_month: int | None
    users: int | None
    features: list[str]


class BillingOut(ApiModel):
    current_tier: str
    plans: list[Plan]


class WorkflowResponse(ApiModel):
    success: bool = True
    workflow_id: str
    status: Literal["completed"] = "completed"
    result: dict[str, Any]


# === Envelopes ===


class Envelope(ApiModel):
    success: bool = True


class StatsResponse(Envelope):
    stats: DashboardStats


class InvoiceListResponse(Envelope):
    invoices: list[InvoiceOut]


class InvoiceResponse(Envelope):
    invoice: InvoiceOut


class PaymentResponse(Envelope):
    payment: PaymentOut


class ExpenseListResponse(Envelope):
    expenses: list[ExpenseOut]


class ExpenseResponse(Envelope):
    expense: ExpenseOut


class ClientListResponse(Envelope):
    clients: list[ClientOut]


class ClientResponse(Envelope):
    client: ClientOut


class FinancialsResponse(Envelope):
    summary: FinancialSummary


class SettingsResponse(Envelope):
    business: BusinessProfile
