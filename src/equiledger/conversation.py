"""Routing of inbound chat messages to the right business and assistant."""

import asyncio
from dataclasses import dataclass

import structlog

from equiledger.agents.assistant import FinancialAssistant
from equiledger.clients import LLMClient
from equiledger.db.context import business_context
from equiledger.db.session import SessionFactory, session_scope
from equiledger.db.users import Channel, ResolvedTenant, resolve_business_for_identity
from equiledger.tools.executor import ToolExecutor

logger = structlog.get_logger(__name__)

ERROR_REPLY = (
    "I encountered an error processing your request. "
    "Please try again or contact support."
)


async def process_message(
    business_id: str,
    user_message: str,
    *,
    user_id: str | None = None,
    llm_client: LLMClient | None = None,
    session_factory: SessionFactory | None = None,
) -> str:
    """Answer ``user_message`` on behalf of ``business_id``.

    Runs the assistant inside the business context so its tool calls can
    only reach this business. Failures are logged and turned into an apology
    for the user.
    """
    with business_context(business_id, user_id=user_id):
        try:
            assistant = FinancialAssistant(
                business_id=business_id,
                llm_client=llm_client,
                tool_executor=ToolExecutor(session_factory),
            )
            return await assistant.run(user_message)
        except Exception:
            logger.exception("ai_processing_error")
            return ERROR_REPLY


@dataclass
class RoutedReply:
    business_id: str
    user_id: str
    text: str
    new_business: bool = False


class MessageRouter:
    """Resolves a chat identity to its tenant and produces the reply."""

    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        llm_client: LLMClient | None = None,
    ):
        self._session_factory = session_factory
        self._llm_client = llm_client

    def resolve(self, channel: Channel, identity: str) -> ResolvedTenant:
        with session_scope(self._session_factory) as session:
            return resolve_business_for_identity(session, channel, identity)

    async def handle(self, channel: Channel, identity: str, text: str) -> RoutedReply:
        tenant = await asyncio.to_thread(self.resolve, channel, identity)
        logger.info(
            "message_routed",
            channel=channel,
            business_id=tenant.business_id,
            new_business=tenant.created,
        )
        reply = await process_message(
            tenant.business_id,
            text,
            user_id=tenant.user_id,
            llm_client=self._llm_client,
            session_factory=self._session_factory,
        )
        return RoutedReply(
            business_id=tenant.business_id,
            user_id=tenant.user_id,
            text=reply,
            new_business=tenant.created,
        )
