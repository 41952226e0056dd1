"""EquiLedger AI - the financial assistant behind the chat channels."""

import json
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import structlog

from equiledger.agents.base import AgentAction, AgentState, BaseAgent
from equiledger.clients import LLMClient, create_llm_client
from equiledger.config import get_settings
from equiledger.tools.definitions import FINANCIAL_TOOLS
from equiledger.tools.executor import ToolExecutionError, ToolExecutor

logger = structlog.get_logger(__name__)

FALLBACK_REPLY = "I apologize, but I could not process your request. Please try again."

SYSTEM_PROMPT_TEMPLATE = """You are EquiLedger AI, a financial assistant for South African SMEs.
You help with invoicing, expenses, VAT calculations, and financial management.

## Context
- Business ID: {business_id}
- Today's date: {today}
- Default currency: {currency}
- Standard VAT rate: {vat_rate_pct}%

## Guidelines
1. Always pass business_id "{business_id}" in every tool call. Never use another ID.
2. Use the tools to create invoices, log expenses, record payments and fetch
   summaries instead of describing how the user could do it.
3. Amounts are VAT-inclusive unless the user says otherwise.
4. If a required detail (client name, amount, description) is missing, ask for it.
5. After a tool succeeds, confirm the key numbers (invoice number, totals, VAT).
6. If a tool fails, explain the problem plainly.

Be concise, helpful, and professional. Replies are read on a phone, so keep
them short and avoid tables."""


class FinancialAssistant(BaseAgent):
    """Conversational agent that runs ledger tools for a single business."""

    def __init__(
        self,
        business_id: str,
        llm_client: LLMClient | None = None,
        tool_executor: ToolExecutor | None = None,
        agent_id: UUID | None = None,
    ):
        super().__init__(business_id=business_id, agent_id=agent_id, name="EquiLedger AI")
        self._llm_client = llm_client or create_llm_client()
        self._tool_executor = tool_executor or ToolExecutor()

    def _get_system_prompt(self) -> str:
        settings = get_settings()
        return SYSTEM_PROMPT_TEMPLATE.format(
            business_id=self.business_id,
            today=datetime.now(timezone.utc).date().isoformat(),
            currency=settings.default_currency,
            vat_rate_pct=(settings.default_vat_rate * 100).normalize(),
        )

    def _get_tools(self) -> list[dict[str, Any]]:
        return FINANCIAL_TOOLS

    async def _generate_response(self) -> AgentAction:
        response = await self._llm_client.generate(
            system_prompt=self._get_system_prompt(),
            messages=self._format_messages_for_llm(),
            tools=self._get_tools(),
        )

        self.add_assistant_message(content=response.content, tool_calls=response.tool_calls)

        if response.tool_calls:
            self.state = AgentState.ACTING
            return AgentAction(
                agent_id=self.id,
                action_type="tool_call",
                tool_calls=response.tool_calls,
                message=response.content,
            )

        self.state = AgentState.IDLE
        action_type = "complete" if response.stop_reason == "end_turn" else "message"
        return AgentAction(agent_id=self.id, action_type=action_type, message=response.content)

    async def _execute_tool_call(self, tool_call: dict[str, Any]) -> dict[str, Any]:
        try:
            return await self._tool_executor.execute(
                tool_call["name"], dict(tool_call.get("arguments") or {})
            )
        except ToolExecutionError as e:
            self._logger.warning("unknown_tool_requested", tool=e.tool_name)
            return {"success": False, "error": str(e)}

    async def run(self, message: str, max_iterations: int = 6) -> str:
        """Answer ``message``, running tool calls until the model is done.

        Args:
            message: The user's chat message.
            max_iterations: Maximum number of think-act-observe cycles.

        Returns:
            The assistant's final reply text.
        """
        self._logger.info("assistant_run_started", message_length=len(message))

        prompt: str | None = message
        final_response = ""

        for iteration in range(max_iterations):
            self._logger.debug("iteration", number=iteration + 1)
            action = await self.think(prompt)
            prompt = None

            if action.action_type != "tool_call":
                final_response = action.message or ""
                break

            for tool_call in action.tool_calls:
                result = await self._execute_tool_call(tool_call)
                self.add_tool_result(
                    tool_call_id=tool_call.get("id", "unknown"),
                    result=json.dumps(result, default=str),
                )
            final_response = action.message or ""
        else:
            self._logger.warning("max_iterations_reached", max_iterations=max_iterations)

        self.state = AgentState.IDLE
        self._logger.info("assistant_run_completed", response_length=len(final_response))
        return final_response or FALLBACK_REPLY
