"""Telegram Bot API messaging."""

import hmac
from typing import Any

import httpx

from equiledger.channels.base import ChannelClient, ChannelError
from equiledger.config import get_settings

# Telegram caps a single message at 4096 characters
MAX_MESSAGE_LENGTH = 4096


class TelegramClient(ChannelClient):
    """Sends Telegram replies and checks the webhook secret token."""

    channel = "telegram"

    def __init__(
        self,
        bot_token: str | None = None,
        webhook_secret: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self._bot_token = bot_token or settings.telegram_bot_token.get_secret_value()
        if webhook_secret is None and settings.telegram_webhook_secret is not None:
            webhook_secret = settings.telegram_webhook_secret.get_secret_value()
        self._webhook_secret = webhook_secret or None
        super().__init__(base_url=base_url or settings.telegram_api_url, transport=transport)

    def verify_secret_token(self, header_value: str | None) -> bool:
        """Check ``X-Telegram-Bot-Api-Secret-Token``; open when no secret is set."""
        if not self._webhook_secret:
            return True
        if not header_value:
            return False
        return hmac.compare_digest(header_value.encode(), self._webhook_secret.encode())

    async def send_message(
        self, chat_id: int | str, text: str, parse_mode: str | None = "Markdown"
    ) -> dict[str, Any]:
        """Send ``text`` to ``chat_id``.

        A 400 with a parse mode usually means unbalanced Markdown entities;
        the message is then resent as plain text.
        """
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text[:MAX_MESSAGE_LENGTH]}
        if parse_mode:
            payload["parse_mode"] = parse_mode

        path = f"/bot{self._bot_token}/sendMessage"
        try:
            result = await self._post(path, json=payload)
        except ChannelError as e:
            if e.status_code != 400 or not parse_mode:
                raise
            self._logger.warning("markdown_rejected", chat_id=str(chat_id))
            payload.pop("parse_mode")
            result = await self._post(path, json=payload)

        self._logger.info("message_sent", chat_id=str(chat_id))
        return result
