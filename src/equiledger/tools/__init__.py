"""Tools module: LLM tool schemas and their executor."""

from equiledger.tools.definitions import FINANCIAL_TOOLS
from equiledger.tools.executor import ToolExecutionError, ToolExecutor

__all__ = [
    "FINANCIAL_TOOLS",
    "ToolExecutor",
    "ToolExecutionError",
]
