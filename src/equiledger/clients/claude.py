"""Anthropic Messages API client."""

from typing import Any

import anthropic

from equiledger.clients.base import BaseLLMClient, LLMResponse
from equiledger.config import get_settings


def _is_tool_result_turn(message: dict[str, Any] | None) -> bool:
    if not message or message["role"] != "user":
        return False
    content = message["content"]
    return isinstance(content, list) and bool(content) and content[0].get("type") == "tool_result"


class ClaudeClient(BaseLLMClient):
    """Claude with tool use."""

    provider = "claude"
    api_error = anthropic.APIError

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        settings = get_settings()
        super().__init__(
            model=model or settings.claude_model,
            max_tokens=max_tokens or settings.llm_max_tokens,
            temperature=settings.llm_temperature if temperature is None else temperature,
        )
        self._api_key = api_key or settings.anthropic_api_key.get_secret_value()
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)

    @staticmethod
    def tool_specs(tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
        # Definitions are already in Anthropic's shape; drop anything extra.
        return [
            {key: tool[key] for key in ("name", "description", "input_schema")}
            for tool in tools
        ]

    @staticmethod
    def to_wire(messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Translate history; tool results for one turn share a user message."""
        wire: list[dict[str, Any]] = []

        for message in messages:
            role = message["role"]

            if role == "tool_result":
                block = {
                    "type": "tool_result",
                    "tool_use_id": message["tool_call_id"],
                    "content": message["content"],
                }
                if _is_tool_result_turn(wire[-1] if wire else None):
                    wire[-1]["content"].append(block)
                else:
                    wire.append({"role": "user", "content": [block]})

            elif role == "assistant":
                blocks = [{"type": "text", "text": message["content"]}] if message.get("content") else []
                blocks += [
                    {
                        "type": "tool_use",
                        "id": call["id"],
                        "name": call["name"],
                        "input": call["arguments"],
                    }
                    for call in message.get("tool_calls") or ()
                ]
                wire.append({"role": "assistant", "content": blocks or message.get("content", "")})

            else:
                wire.append({"role": "user", "content": message["content"]})

        return wire

    @staticmethod
    def from_wire(message: anthropic.types.Message) -> LLMResponse:
        texts = [block.text for block in message.content if block.type == "text"]
        calls = [
            {"id": block.id, "name": block.name, "arguments": block.input}
            for block in message.content
            if block.type == "tool_use"
        ]
        return LLMResponse(
            content="\n".join(texts),
            tool_calls=calls,
            stop_reason=message.stop_reason or "end_turn",
            usage={
                "input_tokens": message.usage.input_tokens,
                "output_tokens": message.usage.output_tokens,
            },
        )

    async def _complete(self, system_prompt, messages, tools, tool_choice) -> LLMResponse:
        request: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "system": system_prompt,
            "messages": self.to_wire(messages),
        }
        # Temperature is only sent for plain chat turns
        if not tools:
            request["temperature"] = self._temperature
        else:
            request["tools"] = self.tool_specs(tools)
            if tool_choice:
                request["tool_choice"] = {"type": "tool", "name": tool_choice}

        return self.from_wire(await self._client.messages.create(**request))
