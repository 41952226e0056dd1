"""Conversation state shared by the chat agents."""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

import structlog

logger = structlog.get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AgentState(str, Enum):
    """Where an agent is in its think-act loop."""

    IDLE = "idle"
    THINKING = "thinking"
    ACTING = "acting"
    ERROR = "error"


@dataclass
class AgentMessage:
    """One entry of the history sent to the LLM."""

    role: str  # user | assistant | tool_result
    content: str
    tool_calls: list[dict[str, Any]] = field(default_factory=list)
    tool_call_id: str | None = None
    timestamp: datetime = field(default_factory=_now)

    def for_llm(self) -> dict[str, Any]:
        payload = asdict(self)
        del payload["timestamp"]
        return payload


@dataclass
class AgentAction:
    """What the model decided on one turn."""

    agent_id: UUID
    action_type: str  # tool_call | message | complete
    tool_calls: list[dict[str, Any]] = field(default_factory=list)
    message: str | None = None
    timestamp: datetime = field(default_factory=_now)


class BaseAgent(ABC):
    """An agent bound to one business for the length of a conversation.

    ``think()`` appends the user's text (if any), asks the model for the next
    action and records it. Subclasses supply the prompt, the tools and the
    model call, and decide what to do with tool calls.
    """

    def __init__(self, business_id: str, agent_id: UUID | None = None, name: str = "Agent"):
        self.id = agent_id or uuid4()
        self.name = name
        self.business_id = business_id
        self.state = AgentState.IDLE
        self._messages: list[AgentMessage] = []
        self._actions: list[AgentAction] = []
        self._logger = logger.bind(agent=name, business_id=business_id)

    @property
    def conversation_history(self) -> list[AgentMessage]:
        return list(self._messages)

    @property
    def action_history(self) -> list[AgentAction]:
        return list(self._actions)

    @abstractmethod
    def _get_system_prompt(self) -> str: ...

    @abstractmethod
    def _get_tools(self) -> list[dict[str, Any]]: ...

    @abstractmethod
    async def _generate_response(self) -> AgentAction: ...

    def add_user_message(self, content: str) -> None:
        self._messages.append(AgentMessage("user", content))

    def add_assistant_message(self, content: str, tool_calls: list[dict[str, Any]] | None = None) -> None:
        self._messages.append(AgentMessage("assistant", content, tool_calls=list(tool_calls or ())))

    def add_tool_result(self, tool_call_id: str, result: str) -> None:
        self._messages.append(AgentMessage("tool_result", result, tool_call_id=tool_call_id))

    def _format_messages_for_llm(self) -> list[dict[str, Any]]:
        return [message.for_llm() for message in self._messages]

    async def think(self, prompt: str | None = None) -> AgentAction:
        """Ask the model for the next action."""
        self.state = AgentState.THINKING
        if prompt:
            self.add_user_message(prompt)

        try:
            action = await self._generate_response()
        except Exception:
            self.state = AgentState.ERROR
            raise

        self._actions.append(action)
        self._logger.info(
            "agent_action",
            action_type=action.action_type,
            tools=[call["name"] for call in action.tool_calls],
        )
        return action

    def __repr__(self) -> str:
        return f"{type(self).__name__}(business_id={self.business_id!r}, state={self.state.value})"
