"""Outbound chat channels (WhatsApp via Twilio, Telegram)."""

from equiledger.channels.base import ChannelClient, ChannelError
from equiledger.channels.telegram import TelegramClient
from equiledger.channels.whatsapp import (
    TwilioWhatsAppClient,
    as_whatsapp_address,
    compute_twilio_signature,
)

__all__ = [
    "ChannelClient",
    "ChannelError",
    "TelegramClient",
    "TwilioWhatsAppClient",
    "as_whatsapp_address",
    "compute_twilio_signature",
]
