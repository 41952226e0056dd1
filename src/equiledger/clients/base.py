"""Provider-neutral response type and the shared generate() wrapper."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class LLMResponse:
    """One model turn.

    ``tool_calls`` entries are ``{"id", "name", "arguments"}`` with arguments
    already decoded to a dict. ``stop_reason`` is one of ``end_turn``,
    ``tool_use`` or ``max_tokens``.
    """

    content: str = ""
    tool_calls: list[dict[str, Any]] = field(default_factory=list)
    stop_reason: str = "end_turn"
    usage: dict[str, int] = field(
        default_factory=lambda: {"input_tokens": 0, "output_tokens": 0}
    )


class BaseLLMClient(ABC):
    """Common settings and logging around a provider's completion call.

    Conversation history uses three roles: ``user``, ``assistant`` (with
    optional ``tool_calls``) and ``tool_result`` (with ``tool_call_id``).
    Subclasses translate that history into their provider's wire format.
    """

    provider: ClassVar[str]
    api_error: ClassVar[type[Exception]] = Exception

    def __init__(self, model: str, max_tokens: int, temperature: float):
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._logger = logger.bind(client=self.provider, model=model)

    @abstractmethod
    async def _complete(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None,
        tool_choice: str | None,
    ) -> LLMResponse:
        """Send one request to the provider and normalise the reply."""

    async def generate(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = None,
    ) -> LLMResponse:
        """Ask the model for its next turn.

        Args:
            system_prompt: Instructions for the assistant.
            messages: Conversation history.
            tools: Tool definitions the model may call.
            tool_choice: Name of a tool the model must call, if any.
        """
        self._logger.debug(
            "llm_request",
            message_count=len(messages),
            tool_count=len(tools or ()),
            forced_tool=tool_choice,
        )
        try:
            response = await self._complete(system_prompt, messages, tools, tool_choice)
        except self.api_error as e:
            self._logger.error("llm_api_error", error=str(e))
            raise

        self._logger.info(
            "llm_response",
            stop_reason=response.stop_reason,
            tool_calls=[call["name"] for call in response.tool_calls],
            **response.usage,
        )
        return response
