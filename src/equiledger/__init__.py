"""EquiLedger - AI bookkeeping assistant for small businesses over chat."""

__version__ = "0.1.0"

from equiledger.agents import AgentState, BaseAgent, FinancialAssistant
from equiledger.clients import ClaudeClient, OpenAIClient, create_llm_client
from equiledger.config import configure_logging, get_settings
from equiledger.conversation import MessageRouter, process_message
from equiledger.db import business_context, get_business_context
from equiledger.errors import LedgerError, NotFoundError, ValidationError
from equiledger.tools import FINANCIAL_TOOLS, ToolExecutor
from equiledger.workflows import WORKFLOWS, WorkflowRunner

__all__ = [
    # Version
    "__version__",
    # Agents
    "AgentState",
    "BaseAgent",
    "FinancialAssistant",
    # LLM Clients
    "ClaudeClient",
    "OpenAIClient",
    "create_llm_client",
    # Messaging
    "MessageRouter",
    "process_message",
    # Tenancy
    "business_context",
    "get_business_context",
    # Errors
    "LedgerError",
    "NotFoundError",
    "ValidationError",
    # Tools & workflows
    "FINANCIAL_TOOLS",
    "ToolExecutor",
    "WORKFLOWS",
    "WorkflowRunner",
    # Config
    "get_settings",
    "configure_logging",
]
