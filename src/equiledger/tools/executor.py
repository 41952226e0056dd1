"""Tool executor that bridges LLM tool calls to tenant-scoped ledger operations."""

import asyncio
import inspect
from collections.abc import Callable
from typing import Any

import structlog

from equiledger import ledger
from equiledger.db.context import (
    BusinessContextError,
    get_business_context,
    verify_business_context,
)
from equiledger.db.session import SessionFactory, session_scope
from equiledger.errors import LedgerError

logger = structlog.get_logger(__name__)


class ToolExecutionError(Exception):
    """Error during tool execution."""

    def __init__(self, tool_name: str, message: str, details: Any = None):
        super().__init__(f"Tool '{tool_name}' failed: {message}")
        self.tool_name = tool_name
        self.details = details


class ToolExecutor:
    """Executes LLM tool calls against the ledger for the business in context."""

    def __init__(self, session_factory: SessionFactory | None = None):
        self._session_factory = session_factory
        self._tool_handlers: dict[str, Callable[..., Any]] = {
            # Invoices
            "create_invoice": ledger.create_invoice,
            "list_invoices": ledger.list_invoices,
            "send_invoice": ledger.send_invoice,
            "mark_invoice_paid": ledger.mark_invoice_paid,
            # Expenses
            "log_expense": ledger.log_expense,
            "list_expenses": ledger.list_expenses,
            # Reports
            "get_financial_summary": ledger.get_financial_summary,
            "get_dashboard_stats": ledger.get_dashboard_stats,
            # Clients
            "create_client": ledger.create_client,
            "list_clients": ledger.list_clients,
        }

    @property
    def tool_names(self) -> list[str]:
        return list(self._tool_handlers)

    def _resolve_business_id(self, arguments: dict[str, Any]) -> str:
        business_id = arguments.pop("business_id", None)
        if business_id:
            return str(business_id)
        context = get_business_context()
        if context is None:
            raise BusinessContextError(
                "No business context found. Call set_business_context() first."
            )
        return context.business_id

    def _run_handler(
        self, handler: Callable[..., Any], business_id: str, args: dict[str, Any]
    ) -> Any:
        with session_scope(self._session_factory) as session:
            return handler(session, business_id, **args)

    async def execute(self, tool_name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Execute a tool call and return the result."""
        handler = self._tool_handlers.get(tool_name)
        if not handler:
            raise ToolExecutionError(tool_name, f"Unknown tool: {tool_name}")

        logger.info("executing_tool", tool=tool_name, args=arguments)
        args = dict(arguments)

        try:
            business_id = self._resolve_business_id(args)
            verify_business_context(business_id)

            try:
                inspect.signature(handler).bind(None, business_id, **args)
            except TypeError as e:
                logger.warning("tool_bad_arguments", tool=tool_name, error=str(e))
                return {"success": False, "error": f"Invalid arguments: {e}"}

            result = await asyncio.to_thread(self._run_handler, handler, business_id, args)

            logger.info("tool_executed", tool=tool_name, success=True)
            return {"success": True, "result": result}
        except (BusinessContextError, LedgerError) as e:
            logger.warning("tool_rejected", tool=tool_name, error=str(e))
            return {"success": False, "error": str(e)}
        except Exception as e:
            logger.exception("tool_execution_error", tool=tool_name)
            return {"success": False, "error": str(e)}
