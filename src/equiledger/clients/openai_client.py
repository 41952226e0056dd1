"""OpenAI chat completions client (also works with compatible endpoints)."""

import json
from typing import Any

import openai
import structlog

from equiledger.clients.base import BaseLLMClient, LLMResponse
from equiledger.config import get_settings

logger = structlog.get_logger(__name__)

FINISH_REASONS = {
    "stop": "end_turn",
    "tool_calls": "tool_use",
    "function_call": "tool_use",
    "length": "max_tokens",
}


def _decode_arguments(name: str, raw: str | None) -> dict[str, Any]:
    try:
        arguments = json.loads(raw or "{}")
    except json.JSONDecodeError:
        logger.warning("malformed_tool_arguments", tool=name)
        return {}
    return arguments if isinstance(arguments, dict) else {}


class OpenAIClient(BaseLLMClient):
    """GPT models with function calling."""

    provider = "openai"
    api_error = openai.APIError

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        settings = get_settings()
        super().__init__(
            model=model or settings.openai_model,
            max_tokens=max_tokens or settings.llm_max_tokens,
            temperature=settings.llm_temperature if temperature is None else temperature,
        )
        self._api_key = api_key or settings.openai_api_key.get_secret_value()
        self._client = openai.AsyncOpenAI(api_key=self._api_key, base_url=base_url)

    @staticmethod
    def tool_specs(tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool["name"],
                    "description": tool["description"],
                    "parameters": tool["input_schema"],
                },
            }
            for tool in tools
        ]

    @staticmethod
    def to_wire(system_prompt: str, messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
        wire: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]

        for message in messages:
            role = message["role"]
            if role == "tool_result":
                wire.append({
                    "role": "tool",
                    "tool_call_id": message["tool_call_id"],
                    "content": message["content"],
                })
            elif role == "assistant":
                turn: dict[str, Any] = {"role": "assistant", "content": message.get("content") or None}
                if message.get("tool_calls"):
                    turn["tool_calls"] = [
                        {
                            "id": call["id"],
                            "type": "function",
                            "function": {
                                "name": call["name"],
                                "arguments": json.dumps(call["arguments"]),
                            },
                        }
                        for call in message["tool_calls"]
                    ]
                wire.append(turn)
            else:
                wire.append({"role": "user", "content": message["content"]})

        return wire

    @staticmethod
    def from_wire(completion: openai.types.chat.ChatCompletion) -> LLMResponse:
        choice = completion.choices[0]
        calls = [
            {
                "id": call.id,
                "name": call.function.name,
                "arguments": _decode_arguments(call.function.name, call.function.arguments),
            }
            for call in choice.message.tool_calls or ()
        ]
        usage = completion.usage
        return LLMResponse(
            content=choice.message.content or "",
            tool_calls=calls,
            stop_reason=FINISH_REASONS.get(choice.finish_reason or "stop", "end_turn"),
            usage={
                "input_tokens": usage.prompt_tokens if usage else 0,
                "output_tokens": usage.completion_tokens if usage else 0,
            },
        )

    async def _complete(self, system_prompt, messages, tools, tool_choice) -> LLMResponse:
        request: dict[str, Any] = {
            "model": self._model,
            "messages": self.to_wire(system_prompt, messages),
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }
        if tools:
            request["tools"] = self.tool_specs(tools)
            request["tool_choice"] = (
                {"type": "function", "function": {"name": tool_choice}} if tool_choice else "auto"
            )

        return self.from_wire(await self._client.chat.completions.create(**request))
