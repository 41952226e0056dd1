"""Pytest configuration and fixtures."""

import os
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock

import pytest

# Set test environment variables before importing settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("ANTHROPIC_API_KEY", "sk-ant-test")
os.environ.setdefault("TWILIO_ACCOUNT_SID", "AC123")
os.environ.setdefault("TWILIO_AUTH_TOKEN", "twilio-token")
os.environ.setdefault("TWILIO_WHATSAPP_NUMBER", "+14155238886")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123:abc")
os.environ.setdefault("TELEGRAM_WEBHOOK_SECRET", "tg-secret")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from equiledger.api import create_app  # noqa: E402
from equiledger.channels import TelegramClient, TwilioWhatsAppClient  # noqa: E402
from equiledger.clients import LLMResponse  # noqa: E402
from equiledger.db import Base, Business, session_scope  # noqa: E402


class ScriptedLLM:
    """LLM stand-in that plays back queued responses and records each call."""

    def __init__(self) -> None:
        self.responses: list[LLMResponse] = []
        self.calls: list[dict[str, Any]] = []

    def then_reply(self, text: str) -> "ScriptedLLM":
        self.responses.append(LLMResponse(content=text))
        return self

    def then_call(self, name: str, call_id: str | None = None, **arguments: Any) -> "ScriptedLLM":
        call_id = call_id or f"call_{len(self.responses) + 1}"
        self.responses.append(
            LLMResponse(
                tool_calls=[{"id": call_id, "name": name, "arguments": arguments}],
                stop_reason="tool_use",
            )
        )
        return self

    async def generate(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = None,
    ) -> LLMResponse:
        self.calls.append({
            "system_prompt": system_prompt,
            "messages": [dict(message) for message in messages],
            "tools": tools,
            "tool_choice": tool_choice,
        })
        if not self.responses:
            raise AssertionError("ScriptedLLM ran out of responses")
        return self.responses.pop(0)


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of a test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.close()


def _make_business(session_factory, name: str) -> Business:
    with session_scope(session_factory) as session:
        business = Business(name=name, currency="ZAR", vat_rate=Decimal("0.15"))
        session.add(business)
        session.flush()
    return business


@pytest.fixture
def business(session_factory) -> Business:
    return _make_business(session_factory, "Test Traders")


@pytest.fixture
def other_business(session_factory) -> Business:
    return _make_business(session_factory, "Other Co")


@pytest.fixture
def llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def whatsapp_client():
    client = TwilioWhatsAppClient(
        account_sid="AC123", auth_token="twilio-token", from_number="+14155238886"
    )
    client.send_message = AsyncMock(return_value="SM123")
    return client


@pytest.fixture
def telegram_client():
    client = TelegramClient(bot_token="123:abc", webhook_secret="tg-secret")
    client.send_message = AsyncMock(return_value={"ok": True})
    return client


@pytest.fixture
def app(session_factory, llm, whatsapp_client, telegram_client):
    return create_app(
        session_factory=session_factory,
        llm_client=llm,
        whatsapp=whatsapp_client,
        telegram=telegram_client,
    )


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client
