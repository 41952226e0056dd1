"""Conversational agents for EquiLedger."""

from equiledger.agents.assistant import FALLBACK_REPLY, FinancialAssistant
from equiledger.agents.base import AgentAction, AgentMessage, AgentState, BaseAgent

__all__ = [
    "AgentAction",
    "AgentMessage",
    "AgentState",
    "BaseAgent",
    "FALLBACK_REPLY",
    "FinancialAssistant",
]
