from funnels.senders.base import FORCE_FALLBACK, EmailSender, SendError, WhatsAppSender
from funnels.senders.factory import create_email_sender, create_whatsapp_sender

__all__ = [
    "FORCE_FALLBACK",
    "EmailSender",
    "SendError",
    "WhatsAppSender",
    "create_email_sender",
    "create_whatsapp_sender",
]
