"""Tool definitions for LLM function calling against the ledger.

These schemas define the tools available to the assistant. Every tool takes
the ``business_id`` it acts on; the executor checks it against the active
business context before touching any data.
"""

from typing import Any

_BUSINESS_ID: dict[str, Any] = {
    "type": "string",
    "description": "The business ID for tenant isolation",
}

# === Invoice Tools ===

CREATE_INVOICE_TOOL: dict[str, Any] = {
    "name": "create_invoice",
    "description": "Create a new invoice for a client. The client is created if it does not exist yet.",
    "input_schema": {
        "type": "object",
        "properties": {
            "business_id": _BUSINESS_ID,
            "client_name": {
                "type": "string",
                "description": "The name of the client",
            },
            "amount": {
                "type": "number",
                "description": "The invoice amount",
            },
            "description": {
                "type": "string",
                "description": "Invoice description",
            },
            "currency": {
                "type": "string",
                "description": "ISO currency code, defaults to the business currency",
                "default": "ZAR",
            },
            "vat_included": {
                "type": "boolean",
                "description": "Whether the amount already includes VAT",
                "default": True,
            },
        },
        "required": ["business_id", "client_name", "amount", "description"],
    },
}

LIST_INVOICES_TOOL: dict[str, Any] = {
    "name": "list_invoices",
    "description": "List the most recent invoices for the business, optionally filtered by status.",
    "input_schema": {
        "type": "object",
        "properties": {
            "business_id": _BUSINESS_ID,
            "status": {
                "type": "string",
                "enum": ["DRAFT", "SENT", "PAID", "OVERDUE"],
                "description": "Only return invoices with this status",
            },
            "limit": {
                "type": "integer",
                "description": "Maximum number of invoices to return",
                "default": 10,
            },
        },
        "required": ["business_id"],
    },
}

SEND_INVOICE_TOOL: dict[str, Any] = {
    "name": "send_invoice",
    "description": "Mark a draft invoice as sent to the client.",
    "input_schema": {
        "type": "object",
        "properties": {
            "business_id": _BUSINESS_ID,
            "invoice_id": {
                "type": "string",
                "description": "Invoice ID or invoice number (e.g. INV-3)",
            },
        },
        "required": ["business_id", "invoice_id"],
    },
}

MARK_INVOICE_PAID_TOOL: dict[str, Any] = {
    "name": "mark_invoice_paid",
    "description": "Mark an invoice as paid and record the payment.",
    "input_schema": {
        "type": "object",
        "properties": {
            "business_id": _BUSINESS_ID,
            "invoice_id": {
                "type": "string",
                "description": "Invoice ID or invoice number (e.g. INV-3)",
            },
            "payment_method": {
                "type": "string",
                "description": "How the client paid (eft, cash, card...)",
                "default": "manual",
            },
            "reference": {
                "type": "string",
                "description": "Payment reference",
            },
        },
        "required": ["business_id", "invoice_id"],
    },
}

# === Expense Tools ===

LOG_EXPENSE_TOOL: dict[str, Any] = {
    "name": "log_expense",
    "description": "Log a business expense. VAT is claimable at the business rate.",
    "input_schema": {
        "type": "object",
        "properties": {
            "business_id": _BUSINESS_ID,
            "amount": {
                "type": "number",
                "description": "Expense amount",
            },
            "description": {
                "type": "string",
                "description": "What the money was spent on",
            },
            "category": {
                "type": "string",
                "description": "Expense category; inferred from the description when omitted",
            },
            "date": {
                "type": "string",
                "format": "date",
                "description": "Date of the expense (YYYY-MM-DD), defaults to today",
            },
        },
        "required": ["business_id", "amount", "description"],
    },
}

LIST_EXPENSES_TOOL: dict[str, Any] = {
    "name": "list_expenses",
    "description": "List the most recent expenses for the business.",
    "input_schema": {
        "type": "object",
        "properties": {
            "business_id": _BUSINESS_ID,
            "limit": {
                "type": "integer",
                "description": "Maximum number of expenses to return",
                "default": 20,
            },
        },
        "required": ["business_id"],
    },
}

# === Report Tools ===

GET_FINANCIAL_SUMMARY_TOOL: dict[str, Any] = {
    "name": "get_financial_summary",
    "description": "Get revenue, expenses, profit and the VAT position for a date range.",
    "input_schema": {
        "type": "object",
        "properties": {
            "business_id": _BUSINESS_ID,
            "start_date": {
                "type": "string",
                "format": "date",
                "description": "Start date (YYYY-MM-DD)",
            },
            "end_date": {
                "type": "string",
                "format": "date",
                "description": "End date (YYYY-MM-DD), inclusive",
            },
        },
        "required": ["business_id", "start_date", "end_date"],
    },
}

GET_DASHBOARD_STATS_TOOL: dict[str, Any] = {
    "name": "get_dashboard_stats",
    "description": "Get all-time totals: paid revenue, expenses, unpaid invoices, clients and VAT.",
    "input_schema": {
        "type": "object",
        "properties": {"business_id": _BUSINESS_ID},
        "required": ["business_id"],
    },
}

# === Client Tools ===

CREATE_CLIENT_TOOL: dict[str, Any] = {
    "name": "create_client",
    "description": "Create a new client.",
    "input_schema": {
        "type": "object",
        "properties": {
            "business_id": _BUSINESS_ID,
            "name": {"type": "string", "description": "Client name"},
            "email": {"type": "string", "format": "email", "description": "Client email"},
            "phone": {"type": "string", "description": "Client phone number"},
            "vat_number": {"type": "string", "description": "Client VAT registration number"},
        },
        "required": ["business_id", "name"],
    },
}

LIST_CLIENTS_TOOL: dict[str, Any] = {
    "name": "list_clients",
    "description": "List the business's clients with their invoice counts.",
    "input_schema": {
        "type": "object",
        "properties": {
            "business_id": _BUSINESS_ID,
            "limit": {"type": "integer", "default": 50},
        },
        "required": ["business_id"],
    },
}

# === Tool Collections ===

FINANCIAL_TOOLS: list[dict[str, Any]] = [
    # Invoices
    CREATE_INVOICE_TOOL,
    LIST_INVOICES_TOOL,
    SEND_INVOICE_TOOL,
    MARK_INVOICE_PAID_TOOL,
    # Expenses
    LOG_EXPENSE_TOOL,
    LIST_EXPENSES_TOOL,
    # Reports
    GET_FINANCIAL_SUMMARY_TOOL,
    GET_DASHBOARD_STATS_TOOL,
    # Clients
    CREATE_CLIENT_TOOL,
    LIST_CLIENTS_TOOL,
]
