"""WhatsApp messaging through Twilio."""

import base64
import hashlib
import hmac
from collections.abc import Mapping

import httpx

from equiledger.channels.base import ChannelClient
from equiledger.config import get_settings

WHATSAPP_PREFIX = "whatsapp:"


def as_whatsapp_address(number: str) -> str:
    """Twilio addresses WhatsApp numbers as ``whatsapp:+27...``."""
    return number if number.startswith(WHATSAPP_PREFIX) else f"{WHATSAPP_PREFIX}{number}"


def compute_twilio_signature(auth_token: str, url: str, params: Mapping[str, str]) -> str:
    """Twilio request signature: HMAC-SHA1 over the URL plus sorted POST params."""
    payload = url + "".join(f"{key}{params[key]}" for key in sorted(params))
    digest = hmac.new(auth_token.encode(), payload.encode(), hashlib.sha1).digest()
    return base64.b64encode(digest).decode()


class TwilioWhatsAppClient(ChannelClient):
    """Sends WhatsApp replies and validates inbound Twilio webhooks."""

    channel = "whatsapp"

    def __init__(
        self,
        account_sid: str | None = None,
        auth_token: str | None = None,
        from_number: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self._account_sid = account_sid or settings.twilio_account_sid
        self._auth_token = auth_token or settings.twilio_auth_token.get_secret_value()
        self._from_number = from_number or settings.twilio_whatsapp_number
        super().__init__(
            base_url=base_url or settings.twilio_api_url,
            transport=transport,
            auth=(self._account_sid, self._auth_token),
        )

    def validate_signature(self, url: str, params: Mapping[str, str], signature: str) -> bool:
        if not signature or not self._auth_token:
            return False
        expected = compute_twilio_signature(self._auth_token, url, params)
        return hmac.compare_digest(expected.encode(), signature.encode())

    async def send_message(self, to: str, body: str) -> str:
        """Send ``body`` to ``to`` and return the Twilio message SID."""
        result = await self._post(
            f"/2010-04-01/Accounts/{self._account_sid}/Messages.json",
            data={
                "To": as_whatsapp_address(to),
                "From": as_whatsapp_address(self._from_number),
                "Body": body,
            },
        )
        sid = str(result.get("sid", ""))
        self._logger.info("message_sent", sid=sid)
        return sid
