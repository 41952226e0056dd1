"""Multi-step financial workflows run in-process.

Each workflow runs inside the business context of the ``business_id`` it
is given, calls the same ledger operations as the chat tools, and returns a
plain result dict suitable for the ``/api/workflows`` endpoint.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from uuid import uuid4

import structlog
from pydantic.alias_generators import to_snake

from equiledger import ledger
from equiledger.clients import LLMClient, create_llm_client
from equiledger.db.context import business_context, verify_business_context
from equiledger.db.session import SessionFactory, session_scope
from equiledger.db.users import channel_address
from equiledger.errors import LedgerError
from equiledger.vat import to_decimal

logger = structlog.get_logger(__name__)

Notifier = Callable[[str, str, str], Awaitable[None]]

EXTRACT_INVOICE_TOOL: dict[str, Any] = {
    "name": "extract_invoice",
    "description": "Record the invoice details found in the user's message.",
    "input_schema": {
        "type": "object",
        "properties": {
            "client_name": {"type": "string", "description": "Who is being invoiced"},
            "amount": {"type": "number", "description": "Invoice amount"},
            "description": {"type": "string", "description": "What the invoice is for"},
            "vat_included": {
                "type": "boolean",
                "description": "Whether the amount includes VAT",
                "default": True,
            },
        },
        "required": ["client_name", "amount", "description"],
    },
}

EXTRACTION_PROMPT = """Extract invoice details from the user's message by calling
extract_invoice. Use only information present in the message; leave out any
field you cannot find."""


@dataclass
class InvoiceDraft:
    client_name: str | None = None
    amount: Decimal | None = None
    description: str | None = None
    vat_included: bool = True
    errors: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def validate_invoice_data(data: dict[str, Any]) -> InvoiceDraft:
    """Check extracted invoice fields; collect every problem found."""
    draft = InvoiceDraft(
        client_name=(data.get("client_name") or "").strip() or None,
        description=(data.get("description") or "").strip() or None,
        vat_included=bool(data.get("vat_included", True)),
    )
    if draft.client_name is None:
        draft.errors.append("client name")
    if draft.description is None:
        draft.errors.append("description")

    raw_amount = data.get("amount")
    try:
        draft.amount = to_decimal(raw_amount) if raw_amount is not None else None
    except (ArithmeticError, TypeError, ValueError):
        draft.amount = None
    if draft.amount is None or not draft.amount.is_finite() or draft.amount <= 0:
        draft.errors.append("amount")
    return draft


def financial_insights(metrics: dict[str, Any]) -> list[str]:
    """Rule-based observations on a financial summary."""
    insights: list[str] = []
    revenue = Decimal(str(metrics["revenue"]))
    expenses = Decimal(str(metrics["expenses"]))
    profit = Decimal(str(metrics["profit"]))
    net_vat = Decimal(str(metrics["netVAT"]))

    if revenue == 0 and expenses == 0:
        return ["No invoices or expenses were recorded in this period."]

    if revenue > 0:
        margin = (profit / revenue * 100).quantize(Decimal("0.1"))
        if profit >= 0:
            insights.append(f"Profit margin is {margin}% on revenue of {revenue:,.2f}.")
        else:
            insights.append(f"Expenses exceeded revenue; margin is {margin}%.")
    else:
        insights.append("No revenue was invoiced in this period.")

    if net_vat > 0:
        insights.append(f"Estimated VAT payable to SARS: {net_vat:,.2f}.")
    elif net_vat < 0:
        insights.append(f"Estimated VAT refund due: {-net_vat:,.2f}.")

    by_category: dict[str, float] = metrics.get("expensesByCategory") or {}
    if expenses > 0 and by_category:
        top_category, top_amount = max(by_category.items(), key=lambda item: item[1])
        share = (Decimal(str(top_amount)) / expenses * 100).quantize(Decimal("1"))
        if share >= 40:
            insights.append(
                f"'{top_category}' makes up {share}% of expenses; consider reviewing it."
            )
    return insights


def snake_case_args(args: dict[str, Any]) -> dict[str, Any]:
    """Normalise argument names so ``userMessage`` and ``user_message`` both bind.

    Keys of a nested ``context`` dict are normalised too.
    """
    normalised: dict[str, Any] = {}
    for key, value in args.items():
        key = to_snake(key)
        if key == "context" and isinstance(value, dict):
            value = {to_snake(inner): item for inner, item in value.items()}
        normalised[key] = value
    return normalised


class WorkflowRunner:
    """Runs the named workflows for a business."""

    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        llm_client: LLMClient | None = None,
        notifier: Notifier | None = None,
    ):
        self._session_factory = session_factory
        self._llm_client = llm_client
        self._notifier = notifier

    def _llm(self) -> LLMClient:
        if self._llm_client is None:
            self._llm_client = create_llm_client()
        return self._llm_client

    def _in_session(self, operation: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        with session_scope(self._session_factory) as session:
            return operation(session, *args, **kwargs)

    async def _db(self, operation: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run a ledger operation in a worker thread, inside the current business context."""
        return await asyncio.to_thread(self._in_session, operation, *args, **kwargs)

    async def run(self, name: str, args: dict[str, Any]) -> dict[str, Any]:
        workflow = WORKFLOWS.get(name)
        if workflow is None:
            raise LedgerError(f"Unknown workflow: {name}")
        args = snake_case_args(args)
        business_id = args.get("business_id")
        if not business_id:
            raise LedgerError("business_id is required")

        run_id = str(uuid4())
        logger.info("workflow_started", workflow=name, workflow_id=run_id)
        kwargs = {key: value for key, value in args.items() if key != "business_id"}
        try:
            inspect.signature(workflow).bind(self, business_id, **kwargs)
        except TypeError as e:
            raise LedgerError(f"Invalid arguments for {name}: {e}") from e

        with business_context(business_id):
            result = await workflow(self, business_id, **kwargs)
        logger.info(
            "workflow_completed",
            workflow=name,
            workflow_id=run_id,
            success=result.get("success"),
        )
        return {"workflowId": run_id, "result": result}

    async def extract_invoice_data(self, message: str) -> dict[str, Any]:
        response = await self._llm().generate(
            system_prompt=EXTRACTION_PROMPT,
            messages=[{"role": "user", "content": message}],
            tools=[EXTRACT_INVOICE_TOOL],
            tool_choice=EXTRACT_INVOICE_TOOL["name"],
        )
        for call in response.tool_calls:
            if call["name"] == EXTRACT_INVOICE_TOOL["name"]:
                return dict(call["arguments"])
        return {}

    async def process_invoice(
        self,
        business_id: str,
        user_message: str,
        context: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Extract, validate, create and announce an invoice from free text."""
        verify_business_context(business_id)

        draft = validate_invoice_data(await self.extract_invoice_data(user_message))
        if not draft.valid:
            logger.info("invoice_extraction_incomplete", missing=draft.errors)
            return {
                "success": False,
                "error": f"Missing or invalid invoice fields: {', '.join(draft.errors)}",
            }

        invoice = await self._db(
            ledger.create_invoice,
            business_id,
            client_name=draft.client_name or "",
            amount=draft.amount,
            description=draft.description or "",
            vat_included=draft.vat_included,
        )

        sent = False
        context = context or {}
        channel, user_id = context.get("channel"), context.get("user_id")
        recipient = None
        if self._notifier and channel and user_id:
            recipient = await self._db(channel_address, business_id, str(user_id), channel)
            if recipient is None:
                logger.warning("invoice_recipient_unknown", channel=channel, user_id=user_id)
        if recipient and self._notifier:
            await self._notifier(
                channel,
                recipient,
                f"Invoice {invoice['invoiceNumber']} for {invoice['clientName']} created: "
                f"{invoice['currency']} {invoice['totalAmount']:,.2f} "
                f"(VAT {invoice['vatAmount']:,.2f}).",
            )
            sent = True

        return {
            "success": True,
            "invoiceId": invoice["id"],
            "invoiceNumber": invoice["invoiceNumber"],
            "invoice": invoice,
            "sent": sent,
        }

    async def process_expense(
        self, business_id: str, expense_data: dict[str, Any]
    ) -> dict[str, Any]:
        """Categorise and save an expense, returning its claimable VAT."""
        verify_business_context(business_id)
        if not expense_data.get("amount") or not expense_data.get("description"):
            return {"success": False, "error": "Missing required fields"}

        expense = await self._db(
            ledger.log_expense,
            business_id,
            amount=expense_data["amount"],
            description=expense_data["description"],
            category=expense_data.get("category"),
            date=expense_data.get("date"),
        )
        return {
            "success": True,
            "expenseId": expense["id"],
            "category": expense["category"],
            "vatClaimable": expense["vatAmount"],
        }

    async def generate_financial_summary(
        self, business_id: str, start_date: str, end_date: str
    ) -> dict[str, Any]:
        verify_business_context(business_id)
        metrics = await self._db(ledger.get_financial_summary, business_id, start_date, end_date)
        return {
            "success": True,
            "metrics": metrics,
            "insights": financial_insights(metrics),
        }


WORKFLOWS: dict[str, Callable[..., Awaitable[dict[str, Any]]]] = {
    "process-invoice": WorkflowRunner.process_invoice,
    "process-expense": WorkflowRunner.process_expense,
    "generate-financial-summary": WorkflowRunner.generate_financial_summary,
}
